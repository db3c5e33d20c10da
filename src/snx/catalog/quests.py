"""Quest catalog: social tasks, referral thresholds and the meta quest."""

from __future__ import annotations

DEMO_BADGE_UNLOCK = ["escrow_expert", "trust_guardian", "stellar_champion", "nexus_master"]

QUEST_CATALOG: dict[str, dict] = {
    "follow_both_accounts": {
        "title": "Social Butterfly",
        "description": "Follow both @TrustlessWork and @StellarOrg on X",
        "category": "social",
        "verification": "manual",
        "reward_experience": 250,
        "reward_points": 25,
        "badge_id": "social_butterfly",
        "unlock_requirements": DEMO_BADGE_UNLOCK,
    },
    "post_hashtags": {
        "title": "Share the Love",
        "description": "Post about Trustless Work with the Nexus hashtags",
        "category": "social",
        "verification": "manual",
        "reward_experience": 250,
        "reward_points": 25,
        "badge_id": "hashtag_hero",
        "unlock_requirements": DEMO_BADGE_UNLOCK,
    },
    "join_discord": {
        "title": "Join the Community",
        "description": "Join the Trustless Work Discord server",
        "category": "community",
        "verification": "manual",
        "reward_experience": 250,
        "reward_points": 25,
        "badge_id": "discord_warrior",
        "unlock_requirements": DEMO_BADGE_UNLOCK,
    },
    "refer_1_friend": {
        "title": "First Referral",
        "description": "Refer one friend",
        "category": "referral",
        "verification": "automatic",
        "threshold": 1,
        "reward_experience": 100,
        "reward_points": 50,
        "badge_id": "first_referral",
    },
    "refer_5_friends": {
        "title": "Referral Champion",
        "description": "Refer five friends",
        "category": "referral",
        "verification": "automatic",
        "threshold": 5,
        "reward_experience": 300,
        "reward_points": 150,
        "badge_id": "referral_champion",
    },
    "refer_10_friends": {
        "title": "Referral Legend",
        "description": "Refer ten friends",
        "category": "referral",
        "verification": "automatic",
        "threshold": 10,
        "reward_experience": 750,
        "reward_points": 300,
        "badge_id": "referral_legend",
    },
    "quest_master": {
        "title": "Quest Master",
        "description": "Complete every other quest",
        "category": "meta",
        "verification": "automatic",
        "reward_experience": 500,
        "reward_points": 100,
        "badge_id": "quest_master",
    },
}

QUEST_MASTER_ID = "quest_master"

QUEST_MASTER_REQUIREMENTS: list[str] = [
    "follow_both_accounts",
    "post_hashtags",
    "join_discord",
    "refer_1_friend",
    "refer_5_friends",
    "refer_10_friends",
]

REFERRAL_QUESTS: list[str] = sorted(
    (qid for qid, q in QUEST_CATALOG.items() if q["category"] == "referral"),
    key=lambda qid: QUEST_CATALOG[qid]["threshold"],
)


def get_quest(quest_id: str) -> dict | None:
    return QUEST_CATALOG.get(quest_id)


def is_manual_quest(quest_id: str) -> bool:
    quest = QUEST_CATALOG.get(quest_id)
    return quest is not None and quest["verification"] == "manual"
