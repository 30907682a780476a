"""
Job list response parsing.

The WorkflowMax list endpoint answers with either an XML document:

    <Response><Status>OK</Status><Jobs>
      <Job><ID>9000549</ID><Name>Smith &amp; Sons</Name>
           <DateCreated>2025-05-01T09:30:00</DateCreated></Job>
    </Jobs></Response>

or a JSON envelope where a single job is not wrapped in a list:

    {"Response": {"Job": [{"ID": "9000549", "Name": "..."}]}}
    {"Response": {"Job": {"ID": "9000549", "Name": "..."}}}

Both shapes normalize to Item. Bodies that are neither are logged and
read as an empty list; only an XML Status other than OK is a FetchError.
"""

import json
import logging
import warnings
from datetime import datetime, timezone
from typing import Any

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from pydantic import ValidationError

from src.tracking.errors import FetchError
from src.tracking.schemas import Item

logger = logging.getLogger(__name__)

# Preferred field first
CREATED_FIELDS = ("DateCreatedUtc", "DateCreated")
MODIFIED_FIELDS = ("DateModifiedUtc", "DateModified")


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a WorkflowMax timestamp into an aware UTC datetime.

    Naive values are taken as UTC. Unreadable values return None.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unreadable timestamp {text!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_job_list(body: str | None) -> list[Item]:
    """
    Parse a job list response body into items.

    Args:
        body: Raw response text

    Returns:
        Items in response order. Empty bodies, documents without jobs and
        bodies that are neither XML nor JSON yield an empty list.

    Raises:
        FetchError: An XML response whose Status is not OK
    """
    text = (body or "").strip()
    if not text:
        return []
    if text.startswith("<"):
        return _parse_xml(text)
    return _parse_json(text)


def _build_item(raw: dict[str, Any]) -> Item | None:
    identifier = raw.get("ID")
    if identifier is None or not str(identifier).strip():
        logger.warning(f"Skipping job without ID: {str(raw)[:200]}")
        return None

    created = next(
        (parse_timestamp(raw[k]) for k in CREATED_FIELDS if raw.get(k)), None
    )
    modified = next(
        (parse_timestamp(raw[k]) for k in MODIFIED_FIELDS if raw.get(k)), None
    )

    try:
        return Item(
            identifier=str(identifier).strip(),
            title=str(raw.get("Name") or ""),
            created_at=created,
            modified_at=modified,
        )
    except ValidationError as e:
        logger.warning(f"Skipping malformed job {identifier!r}: {e}")
        return None


def _parse_xml(text: str) -> list[Item]:
    # html.parser lowercases tag names; XML input is expected here
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
        soup = BeautifulSoup(text, "html.parser")

    response = soup.find("response")
    if response is not None:
        status = response.find("status", recursive=False)
        if status is not None and status.get_text(strip=True).upper() != "OK":
            description = response.find("errordescription", recursive=False)
            detail = description.get_text(strip=True) if description else None
            raise FetchError(
                f"Job list returned status {status.get_text(strip=True)}",
                detail=detail,
            )

    items = []
    for job in soup.find_all("job"):
        raw: dict[str, Any] = {}
        for field_name in ("ID", "Name", *CREATED_FIELDS, *MODIFIED_FIELDS):
            node = job.find(field_name.lower(), recursive=False)
            if node is not None:
                raw[field_name] = node.get_text()
        item = _build_item(raw)
        if item is not None:
            items.append(item)

    logger.debug(f"Parsed {len(items)} job(s) from XML response")
    return items


def _parse_json(text: str) -> list[Item]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(
            f"Job list response is neither XML nor JSON, treating as empty: {e}; body={text[:500]!r}"
        )
        return []

    if not isinstance(payload, dict):
        logger.warning(f"Unexpected JSON job list shape, treating as empty: body={text[:500]!r}")
        return []

    response = payload.get("Response") or {}
    jobs = response.get("Job") if isinstance(response, dict) else None
    if jobs is None and isinstance(response, dict):
        container = response.get("Jobs")
        if isinstance(container, dict):
            jobs = container.get("Job")

    if isinstance(jobs, dict):
        jobs = [jobs]
    if not isinstance(jobs, list):
        return []

    items = []
    for raw in jobs:
        if not isinstance(raw, dict):
            continue
        item = _build_item(raw)
        if item is not None:
            items.append(item)

    logger.debug(f"Parsed {len(items)} job(s) from JSON response")
    return items
