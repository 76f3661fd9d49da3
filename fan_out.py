"""
Fan-out query coordinator: run independent lookups concurrently and join.
"""

import logging
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, Mapping, TypeVar

from flask import current_app

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_WORKERS = 8


def fan_out(queries: Mapping[str, Callable[[], T]]) -> dict[str, T]:
    """
    Run every query thunk concurrently and return {name: result}.

    Each worker pushes its own application context, so every thunk gets a
    database session of its own. Completion order is not defined.

    Raises:
        The exception of the first query that fails. No partial results
        are returned; queries that have not started yet are cancelled.
    """
    if not queries:
        return {}

    app = current_app._get_current_object()
    max_workers = min(len(queries), app.config.get("FAN_OUT_MAX_WORKERS", DEFAULT_MAX_WORKERS))

    def run(name, thunk):
        with app.app_context():
            return thunk()

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fan-out") as pool:
        futures = {name: pool.submit(run, name, thunk) for name, thunk in queries.items()}
        done, pending = wait(futures.values(), return_when=FIRST_EXCEPTION)

        failed = [f for f in done if f.exception() is not None]
        if failed:
            for future in pending:
                future.cancel()
            name = next(n for n, f in futures.items() if f is failed[0])
            logger.debug("fan-out query '%s' failed: %s", name, failed[0].exception())
            raise failed[0].exception()

    return {name: future.result() for name, future in futures.items()}
