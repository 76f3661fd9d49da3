"""
Error types shared by the store, the workflows and the views.
"""

from werkzeug.exceptions import NotFound


class StoreError(Exception):
    """
    A persistence call failed (connection, query, constraint).

    The original SQLAlchemy exception is chained as __cause__.
    """


class DuplicateError(StoreError):
    """
    A write was rejected by a uniqueness constraint.
    """


class NotFoundError(NotFound):
    """
    The requested record does not exist.

    Being an HTTPException, raising it from a view produces a 404 response.
    """

    def __init__(self, kind: str, record_id):
        self.kind = kind
        self.record_id = record_id
        super().__init__(description=f"{kind} not found")
