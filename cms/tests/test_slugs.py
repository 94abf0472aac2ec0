"""Tests for slug normalization and unique assignment."""

import re

import pytest

from cms.services.slugs import SLUG_PATTERN, slugify, unique_slug


@pytest.mark.parametrize(
    "title,expected",
    [
        ("My Trip!", "my-trip"),
        ("  Hello   World  ", "hello-world"),
        ("snake_case_title", "snake-case-title"),
        ("Café Déjà Vu", "cafe-deja-vu"),
        ("a -- b", "a-b"),
        ("--edge--", "edge"),
        ("2024: Year in Review", "2024-year-in-review"),
    ],
)
def test_slugify(title, expected):
    assert slugify(title) == expected


def test_slugify_can_be_empty():
    assert slugify("!!!") == ""
    assert slugify("مرحبا") == ""


def test_slugify_output_matches_pattern():
    for title in ["My Trip!", "Café", "x_y z", "  A  "]:
        assert re.match(SLUG_PATTERN, slugify(title))


def test_unique_slug_free_base():
    assert unique_slug("my-trip", []) == "my-trip"


def test_unique_slug_appends_counter():
    assert unique_slug("my-trip", ["my-trip"]) == "my-trip-2"
    assert unique_slug("my-trip", ["my-trip", "my-trip-2"]) == "my-trip-3"


def test_unique_slug_skips_gaps_only_when_taken():
    """Suffixes start at 2 and use the first free one."""
    assert unique_slug("a", ["a", "a-3"]) == "a-2"


def test_unique_slug_fallback_for_empty_base():
    assert unique_slug("", []) == "post"
    assert unique_slug("", ["post"]) == "post-2"
    assert unique_slug("", [], fallback="project") == "project"
