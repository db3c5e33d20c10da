"""Demo catalog: canonical ids, legacy aliases, base points and unlock chain."""

from __future__ import annotations

from enum import Enum

DEFAULT_BASE_POINTS = 100


class DemoId(str, Enum):
    HELLO_MILESTONE = "hello-milestone"
    MILESTONE_VOTING = "milestone-voting"
    DISPUTE_RESOLUTION = "dispute-resolution"
    MICRO_MARKETPLACE = "micro-marketplace"


DEMO_CATALOG: dict[DemoId, dict] = {
    DemoId.HELLO_MILESTONE: {
        "name": "Baby Steps to Riches",
        "base_points": 100,
        "initial_status": "available",
    },
    DemoId.MILESTONE_VOTING: {
        "name": "Democracy in Action",
        "base_points": 150,
        "initial_status": "locked",
    },
    DemoId.DISPUTE_RESOLUTION: {
        "name": "Drama Queen Escrow",
        "base_points": 200,
        "initial_status": "locked",
    },
    DemoId.MICRO_MARKETPLACE: {
        "name": "Gig Economy Madness",
        "base_points": 250,
        "initial_status": "locked",
    },
}

# Older clients still send these ids.
DEMO_ALIASES: dict[str, DemoId] = {
    "demo1": DemoId.HELLO_MILESTONE,
    "demo2": DemoId.MILESTONE_VOTING,
    "demo3": DemoId.DISPUTE_RESOLUTION,
    "demo4": DemoId.MICRO_MARKETPLACE,
    "micro-task-marketplace": DemoId.MICRO_MARKETPLACE,
}

NEXT_DEMO: dict[DemoId, DemoId] = {
    DemoId.HELLO_MILESTONE: DemoId.MILESTONE_VOTING,
    DemoId.MILESTONE_VOTING: DemoId.DISPUTE_RESOLUTION,
    DemoId.DISPUTE_RESOLUTION: DemoId.MICRO_MARKETPLACE,
}


def resolve_demo_id(demo_id: str) -> str:
    """Map an incoming demo id (canonical or alias) to its canonical string.

    Unknown ids are returned unchanged (stripped) so they still earn the
    default base points.
    """
    raw = demo_id.strip()
    if raw in DEMO_ALIASES:
        return DEMO_ALIASES[raw].value
    try:
        return DemoId(raw).value
    except ValueError:
        return raw


def get_demo(demo_id: str) -> dict | None:
    """Catalog entry for a canonical demo id, or None."""
    try:
        return DEMO_CATALOG[DemoId(demo_id)]
    except ValueError:
        return None


def get_base_points(demo_id: str) -> int:
    demo = get_demo(demo_id)
    return demo["base_points"] if demo else DEFAULT_BASE_POINTS


def get_demo_name(demo_id: str) -> str:
    demo = get_demo(demo_id)
    return demo["name"] if demo else "Unknown Demo"


def get_next_demo(demo_id: str) -> str | None:
    """Successor demo unlocked by a first completion, if any."""
    try:
        successor = NEXT_DEMO.get(DemoId(demo_id))
    except ValueError:
        return None
    return successor.value if successor else None


def initial_demo_progress() -> dict[str, dict]:
    """Per-demo progress map for a brand new account."""
    return {
        demo.value: {
            "demo_id": demo.value,
            "demo_name": entry["name"],
            "status": entry["initial_status"],
            "attempts": 0,
            "score": 0,
            "points_earned": 0,
        }
        for demo, entry in DEMO_CATALOG.items()
    }
