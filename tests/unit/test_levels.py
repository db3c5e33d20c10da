"""Level computation from experience."""

from snx.catalog.levels import LEVEL_TITLES, compute_level, level_for_experience, title_for_level


def test_level_one_at_zero():
    assert level_for_experience(0) == 1


def test_level_boundaries():
    assert level_for_experience(999) == 1
    assert level_for_experience(1000) == 2
    assert level_for_experience(2500) == 3


def test_negative_experience_is_level_one():
    assert level_for_experience(-50) == 1


def test_titles_cap_at_last():
    assert title_for_level(1) == LEVEL_TITLES[0]
    assert title_for_level(50) == LEVEL_TITLES[-1]


def test_compute_level_shape():
    info = compute_level(1250)
    assert info == {
        "level": 2,
        "title": LEVEL_TITLES[1],
        "xp_into_level": 250,
        "xp_for_level": 1000,
        "next_level": 3,
        "next_title": LEVEL_TITLES[2],
    }
