"""
Derived values for templates: names, display dates, URLs, form options.

All of these are computed from raw records on read and never stored.
"""

from datetime import date

from flask import url_for

from data_models import BOOK_INSTANCE_STATUSES, DEFAULT_STATUS


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def display_date(value: date | None) -> str:
    """
    'Jan 5th, 1970', or '?' when the date is unknown.
    """
    if not value:
        return "?"
    return f"{value:%b} {ordinal(value.day)}, {value.year}"


def due_back_display(value: date | None) -> str:
    """
    'Mon Jan 5th, 1970', or '' when unset.
    """
    if not value:
        return ""
    return f"{value:%a %b} {ordinal(value.day)}, {value.year}"


def input_date(value) -> str:
    """
    Value for an <input type="date">.
    """
    if isinstance(value, date):
        return value.isoformat()
    return ""


def author_name(author: dict | None) -> str:
    if not author:
        return ""
    return f"{author['last_name']}, {author['first_name']}"


def author_lifespan(author: dict) -> str:
    return f"{display_date(author.get('date_of_birth'))} - {display_date(author.get('date_of_death'))}"


def entity_url(kind: str, record) -> str:
    """
    Detail page URL for a record (or a bare id).
    """
    record_id = record["id"] if isinstance(record, dict) else record
    return url_for(f"catalog.{kind}_detail", **{f"{kind}_id": record_id})


def status_options() -> list:
    ordered = [DEFAULT_STATUS] + [s for s in BOOK_INSTANCE_STATUSES if s != DEFAULT_STATUS]
    return [{"label": status, "value": status} for status in ordered]


def mark_checked(genres: list, selected) -> list:
    """
    Copy the genre records, flagging those in the book's genre list.
    """
    selected = set(selected or [])
    return [dict(genre, checked=genre["id"] in selected) for genre in genres]


def register(app):
    """
    Expose the helpers to Jinja.
    """
    app.add_template_filter(display_date)
    app.add_template_filter(due_back_display)
    app.add_template_filter(input_date)
    app.add_template_filter(author_name)
    app.add_template_filter(author_lifespan)
    app.add_template_global(entity_url)
