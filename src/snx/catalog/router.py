"""Read-only reward catalog endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from snx.catalog.badges import BADGE_CATALOG
from snx.catalog.demos import DEMO_CATALOG, NEXT_DEMO
from snx.catalog.levels import LEVEL_TITLES, XP_PER_LEVEL

router = APIRouter(prefix="/api/v1/catalog", tags=["Catalog"])


@router.get("/badges")
async def list_badges() -> list[dict]:
    return [{"id": badge_id, **badge} for badge_id, badge in BADGE_CATALOG.items()]


@router.get("/demos")
async def list_demos() -> list[dict]:
    return [
        {
            "id": demo.value,
            "name": entry["name"],
            "base_points": entry["base_points"],
            "initial_status": entry["initial_status"],
            "unlocks": NEXT_DEMO[demo].value if demo in NEXT_DEMO else None,
        }
        for demo, entry in DEMO_CATALOG.items()
    ]


@router.get("/levels")
async def list_levels() -> list[dict]:
    return [
        {"level": i + 1, "title": title, "min_experience": i * XP_PER_LEVEL}
        for i, title in enumerate(LEVEL_TITLES)
    ]
