"""Tests for sitegen.naming — slugs, repository names and routes."""

import re

import pytest

from sitegen.models import PageSpec
from sitegen.naming import file_for_route, nav_label, page_routes, repo_name_for, slugify


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Acme Corp", "acme-corp"),
        ("  Bob's Plumbing & Heating!  ", "bob-s-plumbing-heating"),
        ("---", ""),
        ("Café 24/7", "caf-24-7"),
    ],
)
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_slugify_truncates_without_trailing_hyphen():
    assert slugify("abcd efgh", max_length=5) == "abcd"


def test_repo_name_contains_slug_and_timestamp():
    name = repo_name_for("Acme Corp", now_ms=1700000000123)
    assert name == "acme-corp-website-1700000000123"


def test_repo_name_is_bounded_and_has_numeric_suffix():
    name = repo_name_for("x" * 300)
    assert len(name) <= 100
    assert re.search(r"-website-\d+$", name)


def test_repo_name_for_unsluggable_company():
    assert repo_name_for("!!!", now_ms=1).startswith("site-website-")


def test_page_routes_first_page_is_root():
    pages = [
        PageSpec(title="Welcome", information="a"),
        PageSpec(title="Our Services", information="b"),
        PageSpec(title="Our Services", information="c"),
        PageSpec(title="???", information="d"),
    ]
    routes = [route for route, _ in page_routes(pages)]
    assert routes == ["/", "/our-services", "/our-services-2", "/page-4"]


def test_nav_label_and_file_mapping():
    assert nav_label("/", "Welcome") == "Home"
    assert nav_label("/services", "Services") == "Services"
    assert file_for_route("/") == "index.html"
    assert file_for_route("/services") == "services/index.html"
