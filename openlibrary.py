"""
Book summary lookup against Open Library, used to pre-fill the book form.
"""

import logging

import requests
from flask import current_app

logger = logging.getLogger(__name__)


# Shared session; every Open Library call sends these headers.
SESSION = requests.Session()
SESSION.headers.update({
    "User-Agent": "LocalLibraryCatalog/1.0",
    "Accept": "application/json",
})


def normalize_isbn(isbn: str) -> str:
    """
    Normalize ISBN input by removing hyphens and spaces.
    """
    return (isbn or "").replace("-", "").replace(" ", "").strip()


def extract_summary(data: dict) -> str | None:
    """
    Pull the description out of an Open Library edition or work.

    The "description" field is either a plain string or a dict with a
    "value" key.
    """
    desc = data.get("description")

    if isinstance(desc, str):
        return desc.strip() or None

    if isinstance(desc, dict):
        return (desc.get("value") or "").strip() or None

    return None


def _get_json(url: str) -> dict | None:
    timeout = current_app.config.get("OPENLIBRARY_TIMEOUT", 8)
    try:
        response = SESSION.get(url, timeout=timeout)
        if response.status_code != 200:
            logger.debug("Open Library %s answered %s", url, response.status_code)
            return None
        data = response.json()
        return data if isinstance(data, dict) else None
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Open Library request %s failed: %s", url, exc)
        return None


def fetch_summary_by_isbn(isbn: str) -> str | None:
    """
    Fetch a book summary from Open Library using ISBN.

    Tries the edition (/isbn/{isbn}.json) first, then the first work the
    edition links to.
    """
    isbn = normalize_isbn(isbn)
    if not isbn:
        return None

    base_url = current_app.config.get("OPENLIBRARY_URL", "https://openlibrary.org").rstrip("/")

    edition = _get_json(f"{base_url}/isbn/{isbn}.json")
    if edition is None:
        return None

    summary = extract_summary(edition)
    if summary:
        return summary

    works = edition.get("works") or []
    if works and isinstance(works[0], dict) and "key" in works[0]:
        work = _get_json(f"{base_url}{works[0]['key']}.json")
        if work is not None:
            return extract_summary(work)

    return None
