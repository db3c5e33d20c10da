"""Badge catalog: names, rarity, point values and award conditions.

Badges are de-duplicated by ``name`` on the account, not by id.
"""

from __future__ import annotations

from snx.catalog.demos import DemoId

WELCOME_EXPLORER = "welcome_explorer"
NEXUS_MASTER = "nexus_master"
QUEST_MASTER = "quest_master"

BADGE_CATALOG: dict[str, dict] = {
    # Main achievements
    "welcome_explorer": {
        "name": "Welcome Explorer",
        "description": "Joined the Nexus Experience community",
        "category": "achievement",
        "rarity": "common",
        "points_value": 10,
    },
    "escrow_expert": {
        "name": "Escrow Expert",
        "description": "Mastered the basic escrow flow",
        "category": "demo",
        "rarity": "rare",
        "points_value": 30,
        "demo_id": DemoId.HELLO_MILESTONE.value,
    },
    "trust_guardian": {
        "name": "Trust Guardian",
        "description": "Resolved conflicts like a true arbitrator",
        "category": "demo",
        "rarity": "epic",
        "points_value": 50,
        "demo_id": DemoId.DISPUTE_RESOLUTION.value,
    },
    "stellar_champion": {
        "name": "Stellar Champion",
        "description": "Mastered the micro-task marketplace",
        "category": "demo",
        "rarity": "epic",
        "points_value": 100,
        "demo_id": DemoId.MICRO_MARKETPLACE.value,
    },
    "nexus_master": {
        "name": "Nexus Master",
        "description": "Master of all trustless work demos",
        "category": "special",
        "rarity": "legendary",
        "points_value": 200,
        "requires_demos": [
            DemoId.HELLO_MILESTONE.value,
            DemoId.DISPUTE_RESOLUTION.value,
            DemoId.MICRO_MARKETPLACE.value,
        ],
    },
    # Quest badges
    "social_butterfly": {
        "name": "Social Butterfly",
        "description": "Followed Trustless Work and Stellar on X",
        "category": "quest",
        "rarity": "common",
        "points_value": 25,
    },
    "hashtag_hero": {
        "name": "Hashtag Hero",
        "description": "Posted about Trustless Work with hashtags",
        "category": "quest",
        "rarity": "common",
        "points_value": 25,
    },
    "discord_warrior": {
        "name": "Discord Warrior",
        "description": "Joined the Trustless Work Discord server",
        "category": "quest",
        "rarity": "common",
        "points_value": 25,
    },
    "first_referral": {
        "name": "First Referral",
        "description": "Brought your first friend into the Nexus",
        "category": "referral",
        "rarity": "common",
        "points_value": 50,
    },
    "referral_champion": {
        "name": "Referral Champion",
        "description": "Referred five friends",
        "category": "referral",
        "rarity": "rare",
        "points_value": 150,
    },
    "referral_legend": {
        "name": "Referral Legend",
        "description": "Referred ten friends",
        "category": "referral",
        "rarity": "legendary",
        "points_value": 300,
    },
    "quest_master": {
        "name": "Quest Master",
        "description": "Completed all available quests",
        "category": "quest",
        "rarity": "epic",
        "points_value": 100,
    },
}

DEMO_BADGES: dict[str, str] = {
    badge["demo_id"]: badge_id
    for badge_id, badge in BADGE_CATALOG.items()
    if "demo_id" in badge
}

COMPOSITE_BADGES: list[str] = [
    badge_id for badge_id, badge in BADGE_CATALOG.items() if "requires_demos" in badge
]

# Holding all of these unlocks the referral program.
MAIN_BADGES: list[str] = [
    "welcome_explorer",
    "escrow_expert",
    "trust_guardian",
    "stellar_champion",
    "nexus_master",
]


def get_badge(badge_id: str) -> dict | None:
    return BADGE_CATALOG.get(badge_id)


def get_badge_for_demo(demo_id: str) -> str | None:
    """Badge id awarded for the first completion of a demo, if any."""
    return DEMO_BADGES.get(demo_id)
