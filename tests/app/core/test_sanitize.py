import pytest

from hunting_buddy.app.core.sanitize import (
    is_prohibited_key,
    sanitize,
    sanitize_query_params,
)


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("$gt", True),
        ("$where", True),
        ("profile.role", True),
        (".", True),
        ("company", False),
        ("price$", False),
        ("", False),
        (1, False),
    ],
)
def test_is_prohibited_key(key, expected):
    assert is_prohibited_key(key) is expected


def test_sanitize_removes_nested_operator_keys():
    value = {
        "email": {"$gt": ""},
        "$or": [{"a": 1}],
        "jobs": [{"$ne": None, "company": "Acme"}, "plain", 3],
        "position": "Engineer",
    }

    cleaned, removed = sanitize(value)

    assert removed is True
    assert cleaned == {
        "email": {},
        "jobs": [{"company": "Acme"}, "plain", 3],
        "position": "Engineer",
    }


def test_sanitize_does_not_mutate_input():
    value = {"filter": {"$gt": 1}}

    sanitize(value)

    assert value == {"filter": {"$gt": 1}}


def test_sanitize_clean_value():
    value = {"company": "Acme $5 Ltd.", "tags": ["a", "b"]}

    cleaned, removed = sanitize(value)

    assert removed is False
    assert cleaned == value


@pytest.mark.parametrize("scalar", ["text", 42, 1.5, True, None])
def test_sanitize_scalars(scalar):
    assert sanitize(scalar) == (scalar, False)


def test_sanitize_query_params():
    params = [("status", "pending"), ("$where", "1"), ("a.b", "c"), ("sort", "$desc")]

    kept, removed = sanitize_query_params(params)

    assert removed is True
    assert kept == [("status", "pending"), ("sort", "$desc")]


def test_sanitize_query_params_clean():
    params = [("status", "pending")]

    assert sanitize_query_params(params) == (params, False)
