"""Level thresholds and computation.

Every 1,000 experience is one level; titles past the table repeat the last one.
"""

from __future__ import annotations

XP_PER_LEVEL = 1000

LEVEL_TITLES: list[str] = [
    "Escrow Rookie",
    "Milestone Walker",
    "Contract Curious",
    "Trust Apprentice",
    "Dispute Mediator",
    "Escrow Artisan",
    "Stellar Navigator",
    "Trustless Veteran",
    "Nexus Guardian",
    "Nexus Legend",
]


def level_for_experience(experience: int) -> int:
    return max(experience, 0) // XP_PER_LEVEL + 1


def title_for_level(level: int) -> str:
    index = min(max(level, 1), len(LEVEL_TITLES)) - 1
    return LEVEL_TITLES[index]


def compute_level(experience: int) -> dict:
    """Compute level info from total experience."""
    level = level_for_experience(experience)
    xp_into_level = max(experience, 0) - (level - 1) * XP_PER_LEVEL
    return {
        "level": level,
        "title": title_for_level(level),
        "xp_into_level": xp_into_level,
        "xp_for_level": XP_PER_LEVEL,
        "next_level": level + 1,
        "next_title": title_for_level(level + 1),
    }
