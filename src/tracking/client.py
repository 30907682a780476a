"""
WorkflowMax job list client.

Fetches the jobs created or modified inside a time window and hands the
raw body to the parser, which accepts both the XML and JSON shapes.
"""

import time
from datetime import datetime, timezone

import structlog

from src.config.settings import Settings
from src.observability.metrics import MetricsCollector, get_metrics
from src.tracking.errors import FetchError
from src.tracking.parser import parse_job_list
from src.tracking.schemas import Item
from src.transport.http_client import HTTPClient, HTTPClientError

logger = structlog.get_logger(__name__)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a trailing Z."""
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TrackingClient:
    """Read access to the WorkflowMax job list."""

    def __init__(
        self,
        http: HTTPClient,
        api_url: str,
        account_id: str | None,
        metrics: MetricsCollector | None = None,
    ):
        self._http = http
        self._api_url = api_url
        self._account_id = account_id
        self._metrics = metrics or get_metrics()

    @classmethod
    def from_settings(cls, settings: Settings, http: HTTPClient) -> "TrackingClient":
        return cls(http=http, api_url=settings.wfx_api_url, account_id=settings.wfx_account_id)

    async def fetch_items(
        self,
        access_token: str,
        since: datetime,
        until: datetime,
    ) -> list[Item]:
        """
        Fetch jobs with a created/modified time in [since, until).

        Raises:
            FetchError: The call failed or the XML Status was not OK
        """
        params = {"from": format_timestamp(since), "to": format_timestamp(until)}
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        if self._account_id:
            headers["account_id"] = self._account_id

        start = time.monotonic()
        try:
            response = await self._http.get(self._api_url, params=params, headers=headers)
        except HTTPClientError as e:
            logger.error(
                "Job list request failed",
                status_code=e.status_code,
                detail=(e.response_body or "")[:500],
            )
            raise FetchError(
                f"Job list request failed: {e}",
                detail=e.response_body,
            ) from e
        finally:
            self._metrics.record_fetch(time.monotonic() - start)

        body = response.text
        logger.debug("Raw job list response", body=body[:500])

        items = parse_job_list(body)
        logger.info(
            "Fetched jobs",
            count=len(items),
            since=params["from"],
            until=params["to"],
        )
        return items
