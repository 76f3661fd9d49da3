"""
Validated-write workflow shared by the four catalog entities.

GET renders the form. POST goes through submit(): normalise and validate
the form, sanitise it into a candidate record, then branch. A valid
candidate is written (Committed, the view redirects to its detail page);
an invalid one is returned untouched with its errors (Rejected, the view
re-renders the form). Nothing is written on the Rejected branch.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable

from entity_store import EntityStore
from errors import DuplicateError
from validation import FieldError, check_form

logger = logging.getLogger(__name__)


class State(enum.Enum):
    COMMITTED = "committed"
    REJECTED = "rejected"


@dataclass
class Outcome:
    state: State
    candidate: dict
    errors: list = field(default_factory=list)
    record_id: int | None = None

    @property
    def committed(self) -> bool:
        return self.state is State.COMMITTED

    @property
    def messages(self) -> list:
        return [error.message for error in self.errors]


def submit(form, fields, write: Callable[[dict], int]) -> Outcome:
    """
    Validate the form and call write(candidate) only if it is clean.
    """
    candidate, errors = check_form(form, fields)
    if errors:
        logger.debug("submission rejected: %s", [e.field for e in errors])
        return Outcome(State.REJECTED, candidate, errors)

    record_id = write(candidate)
    return Outcome(State.COMMITTED, candidate, record_id=record_id)


def create(store: EntityStore, form, fields) -> Outcome:
    return submit(form, fields, store.insert)


def update(store: EntityStore, record_id, form, fields, duplicate_message: str | None = None) -> Outcome:
    """
    Full-record replace of an existing record.

    With duplicate_message set, a uniqueness clash is reported as a form
    error instead of propagating.
    """
    def write(candidate):
        store.update_by_id(record_id, candidate)
        return record_id

    try:
        outcome = submit(form, fields, write)
    except DuplicateError:
        if duplicate_message is None:
            raise
        candidate, _ = check_form(form, fields)
        outcome = Outcome(State.REJECTED, candidate, [FieldError(fields[0].name, duplicate_message)])

    outcome.candidate = dict(outcome.candidate, id=record_id)
    return outcome


def create_unique(store: EntityStore, form, fields, key: str) -> Outcome:
    """
    Create unless a record with the same key value already exists.

    An existing match (exact, case-sensitive) is returned as Committed
    with its own id and nothing is inserted.
    """
    def write(candidate):
        existing = store.find_one({key: candidate[key]})
        if existing is not None:
            logger.info("%s '%s' already exists as %s", store.name, candidate[key], existing["id"])
            return existing["id"]
        try:
            return store.insert(candidate)
        except DuplicateError:
            # Lost a race with a concurrent insert of the same value.
            existing = store.find_one({key: candidate[key]})
            if existing is None:
                raise
            return existing["id"]

    return submit(form, fields, write)
