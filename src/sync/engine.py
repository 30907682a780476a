"""
One polling cycle: fetch the jobs in the open window and provision their folders.

The checkpoint only moves after the whole batch has been handled. An auth
or fetch failure (or anything unexpected) aborts the cycle and leaves the
checkpoint where it was, so the next cycle re-covers the same window.
That is safe because provisioning is idempotent.
"""

import time
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

import structlog

from src.observability.metrics import MetricsCollector, get_metrics
from src.sync.checker import FolderChecker
from src.sync.naming import format_name
from src.sync.provisioner import FolderProvisioner
from src.sync.routing import category_for, select_destination
from src.sync.schemas import (
    CycleResult,
    CycleStatus,
    ItemOutcome,
    ItemResult,
    SyncContext,
)
from src.tracking.client import TrackingClient
from src.tracking.errors import AuthError, FetchError
from src.tracking.schemas import Item
from src.tracking.tokens import TokenManager

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncEngine:
    """
    Runs polling cycles against an explicit SyncContext.

    Items are handled one at a time: the base-identifier screen relies on
    folders created earlier in the same cycle being visible to later lookups.
    """

    def __init__(
        self,
        context: SyncContext,
        token_manager: TokenManager,
        tracking: TrackingClient,
        checker: FolderChecker,
        provisioner: FolderProvisioner,
        clock: Callable[[], datetime] = _utc_now,
        metrics: MetricsCollector | None = None,
    ):
        self._context = context
        self._tokens = token_manager
        self._tracking = tracking
        self._checker = checker
        self._provisioner = provisioner
        self._clock = clock
        self._metrics = metrics or get_metrics()

    @property
    def context(self) -> SyncContext:
        return self._context

    async def run_cycle(self) -> CycleResult:
        """Run one cycle. Never raises; failures are reported on the result."""
        window_start = self._context.checkpoint.last_checked

        if not self._context.ready:
            reason = (
                "no destination folders resolved"
                if not self._context.destinations
                else "operating-context identity not resolved"
            )
            logger.error("Skipping cycle", reason=reason)
            self._metrics.record_cycle(CycleStatus.SKIPPED.value)
            return CycleResult(status=CycleStatus.SKIPPED, window_start=window_start, error=reason)

        now = self._clock()
        result = CycleResult(
            status=CycleStatus.FAILED,
            window_start=window_start,
            window_end=now,
        )
        start = time.monotonic()

        with structlog.contextvars.bound_contextvars(cycle_id=uuid.uuid4().hex[:8]):
            logger.info(
                "Starting job polling",
                since=window_start.isoformat(),
                until=now.isoformat(),
            )
            try:
                access_token = await self._tokens.get_valid_access_token()
                items = await self._tracking.fetch_items(access_token, window_start, now)
                await self._process_batch(items, result.items)
            except (AuthError, FetchError) as e:
                result.error = f"{type(e).__name__}: {e}"
                logger.error(
                    "Polling cycle aborted",
                    error_type=type(e).__name__,
                    error=str(e),
                    detail=(e.detail or "")[:500],
                )
            except Exception as e:
                result.error = f"{type(e).__name__}: {e}"
                logger.exception("Polling cycle aborted by unexpected error", error=str(e))
            else:
                self._context.checkpoint.advance(now)
                self._metrics.set_checkpoint(now)
                result.status = CycleStatus.COMPLETED
                logger.info(
                    "Polling cycle completed",
                    last_checked=now.isoformat(),
                    **{o.value: result.count(o) for o in ItemOutcome},
                )

        self._metrics.record_cycle(result.status.value, latency=time.monotonic() - start)
        return result

    async def _process_batch(self, items: list[Item], results: list[ItemResult]) -> None:
        logger.info("Processing jobs", count=len(items))
        seen: set[str] = set()

        for item in items:
            if item.identifier in seen:
                logger.info("Skipping duplicate job in batch", job=item.identifier)
                item_result = ItemResult(item.identifier, ItemOutcome.BATCH_DUPLICATE)
            else:
                seen.add(item.identifier)
                item_result = await self._process_item(item)

            results.append(item_result)
            self._metrics.record_item(item_result.outcome.value)

    async def _process_item(self, item: Item) -> ItemResult:
        job = item.identifier
        logger.debug(
            "Processing job",
            job=job,
            created=item.created_at.isoformat() if item.created_at else None,
        )

        parent = select_destination(job, self._context.destinations)
        if parent is None:
            category = category_for(job)
            if category is None:
                logger.info("Skipping job, prefix is not routed", job=job)
                detail = "unrouted prefix"
            else:
                logger.warning(
                    "Skipping job, destination folder was not resolved",
                    job=job,
                    category=category.value,
                )
                detail = f"{category.value} destination unresolved"
            return ItemResult(job, ItemOutcome.ROUTE_SKIP, detail=detail)

        name = format_name(job, item.title)

        if await self._checker.exists(parent, name):
            logger.info("Folder already exists", job=job, folder=name)
            return ItemResult(job, ItemOutcome.DUPLICATE_SKIP, folder_name=name, detail="exact match")

        if item.has_suffix:
            siblings = await self._checker.find_siblings(parent, item.base_identifier)
            if siblings:
                logger.warning(
                    "Found existing folder for base job, skipping variant",
                    job=job,
                    base_job=item.base_identifier,
                    existing=siblings,
                )
                return ItemResult(
                    job,
                    ItemOutcome.DUPLICATE_SKIP,
                    folder_name=name,
                    detail=f"base job folder exists: {', '.join(siblings)}",
                )

        provisioned = await self._provisioner.provision(parent, name)
        if provisioned.materialized:
            logger.info(
                "Folder ready",
                job=job,
                path=provisioned.path,
                already_existed=provisioned.already_existed,
                steps=[a.step.value for a in provisioned.attempts],
            )
            return ItemResult(job, ItemOutcome.PROVISIONED, folder_name=name, path=provisioned.path)

        logger.error("Failed to create folder", job=job, path=provisioned.path, error=str(provisioned.failure))
        return ItemResult(
            job,
            ItemOutcome.PROVISION_FAILED,
            folder_name=name,
            path=provisioned.path,
            detail=str(provisioned.failure),
        )
