"""
Form validation and sanitisation.

A rule set is an ordered tuple of Field specs. check_form() runs two
independent passes over it: every validator of every field (collecting
all failures), then every sanitiser (so a rejected form can be re-rendered
with cleaned values). Nothing stops early.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable

from markupsafe import escape as _html_escape

from data_models import BOOK_INSTANCE_STATUSES, DEFAULT_STATUS, MAX_ID


@dataclass(frozen=True)
class FieldError:
    """
    One failed rule: which field, what to tell the user, what was sent.
    """
    field: str
    message: str
    value: object = None


@dataclass(frozen=True)
class Check:
    test: Callable[[str], bool]
    message: str


# --- Validators ---

_ALNUM = re.compile(r"^[A-Za-z0-9]+$")
_DIGITS = re.compile(r"^\d+$")
_YEAR_MONTH = re.compile(r"^(\d{4})(?:-(\d{2}))?$")


def _blank(value) -> bool:
    return value is None or str(value).strip() == ""


def required(message: str) -> Check:
    return Check(lambda value: not _blank(value), message)


def alphanumeric(message: str) -> Check:
    # Blank values are left to required().
    return Check(lambda value: _blank(value) or bool(_ALNUM.match(value.strip())), message)


def _storable_id(value) -> bool:
    value = str(value).strip()
    return bool(_DIGITS.match(value)) and int(value) <= MAX_ID


def integer_id(message: str) -> Check:
    return Check(lambda value: _blank(value) or _storable_id(value), message)


def one_of(choices, message: str) -> Check:
    allowed = frozenset(choices)
    return Check(lambda value: _blank(value) or value.strip() in allowed, message)


def parse_iso_date(value: str):
    """
    Parse an ISO-8601 date or datetime string into a datetime.date.

    Returns:
        datetime.date or None when the string is not ISO-8601.
    """
    value = (value or "").strip()
    if not value:
        return None

    # Reduced precision: "2020" and "2020-05" mean the first day.
    reduced = _YEAR_MONTH.match(value)
    if reduced:
        try:
            return date(int(reduced.group(1)), int(reduced.group(2) or 1), 1)
        except ValueError:
            return None

    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        return None


def iso_date(message: str) -> Check:
    return Check(lambda value: _blank(value) or parse_iso_date(value) is not None, message)


# --- Sanitisers ---

def trim(value):
    return value.strip() if isinstance(value, str) else value


def escape(value):
    return str(_html_escape(value)) if isinstance(value, str) else value


def to_date(value):
    if isinstance(value, date):
        return value
    return parse_iso_date(value)


def to_int(value):
    """
    Coerce digit strings to int; anything else is returned unchanged so the
    form can echo it back.
    """
    if isinstance(value, str) and _DIGITS.match(value):
        return int(value)
    return value


def default(fallback):
    """
    Replace a blank value with fallback (called first if it is callable).
    """
    def apply(value):
        if value is None or value == "":
            return fallback() if callable(fallback) else fallback
        return value
    return apply


TEXT = (trim, escape)
REFERENCE = (trim, escape, to_int)
DATE = (trim, to_date)


@dataclass(frozen=True)
class Field:
    """
    Rules for one form field.

    optional: a blank or absent value skips validation entirely.
    many: the value is a list (checkbox group); rules apply per element.
    """
    name: str
    checks: tuple = ()
    sanitizers: tuple = TEXT
    optional: bool = False
    many: bool = False

    def validate(self, raw) -> list:
        values = raw if self.many else [raw]
        if self.optional and all(_blank(v) for v in values):
            return []

        errors = []
        for check in self.checks:
            for value in values:
                if not check.test("" if value is None else value):
                    errors.append(FieldError(self.name, check.message, value))
                    break
        return errors

    def sanitize(self, raw):
        if self.many:
            return [self._clean(value) for value in raw]
        return self._clean(raw)

    def _clean(self, value):
        value = "" if value is None else value
        for sanitizer in self.sanitizers:
            value = sanitizer(value)
        return value


def normalize_list(value) -> list:
    """
    A checkbox group arrives absent, as one scalar, or as a list.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def read_form(form, fields) -> dict:
    """
    Pull the raw value for every field out of a request form or plain dict.

    Multi-valued fields are normalised to lists here, before validation.
    """
    raw = {}
    for spec in fields:
        if hasattr(form, "getlist"):
            values = form.getlist(spec.name)
            value = values if spec.many else (values[0] if values else None)
        else:
            value = form.get(spec.name)
        raw[spec.name] = normalize_list(value) if spec.many else value
    return raw


def check_form(form, fields):
    """
    Validate then sanitise a submitted form.

    Returns:
        (candidate, errors): the sanitised record and the ordered list of
        FieldError. An empty list means the candidate can be written.
    """
    raw = read_form(form, fields)

    errors = []
    for spec in fields:
        errors.extend(spec.validate(raw[spec.name]))

    candidate = {spec.name: spec.sanitize(raw[spec.name]) for spec in fields}
    return candidate, errors


# --- Rule sets ---

AUTHOR_FIELDS = (
    Field("first_name", (
        required("First Name is required."),
        alphanumeric("First Name should contain only alpha-numeric characters."),
    )),
    Field("last_name", (
        required("Last Name is required."),
        alphanumeric("Last Name should contain only alpha-numeric characters."),
    )),
    Field("date_of_birth", (iso_date("Date of Birth is invalid."),), sanitizers=DATE, optional=True),
    Field("date_of_death", (iso_date("Date of Death is invalid."),), sanitizers=DATE, optional=True),
)

GENRE_FIELDS = (
    Field("name", (required("Genre Name is required."),)),
)

BOOK_FIELDS = (
    Field("title", (required("Book Title is required."),)),
    Field("author", (
        required("Author is required."),
        integer_id("Author is invalid."),
    ), sanitizers=REFERENCE),
    Field("summary", (required("Summary is required."),)),
    Field("isbn", (required("ISBN is required."),)),
    Field("genre", (integer_id("Genre selection is invalid."),), sanitizers=REFERENCE, optional=True, many=True),
)

BOOK_INSTANCE_FIELDS = (
    Field("book", (
        required("Book is required."),
        integer_id("Book is invalid."),
    ), sanitizers=REFERENCE),
    Field("imprint", (required("Imprint is required."),)),
    Field("status", (one_of(BOOK_INSTANCE_STATUSES, "Status is invalid."),),
          sanitizers=TEXT + (default(DEFAULT_STATUS),), optional=True),
    Field("due_back", (iso_date("Due Back Date is invalid."),),
          sanitizers=(trim, default(date.today), to_date), optional=True),
)
