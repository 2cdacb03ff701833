from __future__ import annotations

from slugs import make_slug, timestamped_slug


def test_make_slug_lowercases_and_strips_punctuation() -> None:
    assert make_slug("Deep Cleaning & More!") == "deep-cleaning-more"
    assert make_slug("  Spring   Clean  ") == "spring-clean"


def test_make_slug_transliterates() -> None:
    assert make_slug("Café Crème") == "cafe-creme"


def test_timestamped_slug_appends_millis() -> None:
    assert timestamped_slug("Window Washing", now_ms=1700000000000) == "window-washing-1700000000000"


def test_timestamped_slug_without_letters_is_just_the_timestamp() -> None:
    assert timestamped_slug("!!!", now_ms=5) == "5"


def test_timestamped_slug_differs_over_time() -> None:
    assert timestamped_slug("Carpet", now_ms=1) != timestamped_slug("Carpet", now_ms=2)
