import threading

import pytest
from flask import current_app

from fan_out import fan_out


def test_results_are_keyed_by_name(app):
    with app.app_context():
        results = fan_out({"one": lambda: 1, "two": lambda: "two", "none": lambda: None})

    assert results == {"one": 1, "two": "two", "none": None}


def test_empty_mapping(app):
    with app.app_context():
        assert fan_out({}) == {}


def test_queries_run_concurrently(app):
    # Both queries must be in flight at once to get past the barrier.
    barrier = threading.Barrier(2, timeout=5)

    def query(value):
        barrier.wait()
        return value

    with app.app_context():
        results = fan_out({"a": lambda: query("a"), "b": lambda: query("b")})

    assert results == {"a": "a", "b": "b"}


def test_first_failure_is_raised(app):
    def broken():
        raise LookupError("store unavailable")

    with app.app_context():
        with pytest.raises(LookupError, match="store unavailable"):
            fan_out({"ok": lambda: 1, "broken": broken})


def test_queries_run_inside_an_app_context(app):
    with app.app_context():
        results = fan_out({"name": lambda: current_app.name})

    assert results["name"] == app.name


def test_queries_can_use_the_stores(app, stores, author_id):
    from entity_store import get_store

    with app.app_context():
        results = fan_out({
            "author": lambda: get_store("author").find_by_id(author_id),
            "count": lambda: get_store("author").count(),
        })

    assert results["author"]["last_name"] == "Rothfuss"
    assert results["count"] == 1
