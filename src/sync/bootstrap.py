"""
Wiring of the sync engine from settings.

Resolves the operating identity and the destination folders once, then
builds the engine around an explicit SyncContext.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog

from src.config.settings import Settings
from src.observability.metrics import get_metrics
from src.storage.client import NamespaceClient, TeamClient
from src.sync.checker import FolderChecker
from src.sync.engine import SyncEngine
from src.sync.errors import SyncConfigError
from src.sync.locator import resolve_destinations, resolve_operating_identity
from src.sync.provisioner import FolderProvisioner
from src.sync.schemas import Checkpoint, DestinationCategory, SyncContext
from src.tracking.client import TrackingClient
from src.tracking.tokens import TokenManager
from src.transport.http_client import HTTPClient

logger = structlog.get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SyncComponents:
    context: SyncContext
    engine: SyncEngine
    token_manager: TokenManager


async def bootstrap_sync(
    settings: Settings,
    http: HTTPClient,
    clock: Callable[[], datetime] = _utc_now,
) -> SyncComponents:
    """
    Resolve startup state and build the engine.

    Raises:
        SyncConfigError: Dropbox token or namespace not configured
        IdentityResolutionError: The operating-context member was not found
    """
    if not settings.storage_configured:
        raise SyncConfigError("DROPBOX_TOKEN and DROPBOX_NAMESPACE_ID must be set")
    if not settings.tracking_configured:
        logger.warning("WorkflowMax client credentials incomplete; cycles will fail until configured")

    team = TeamClient(http, settings.dropbox_token, settings.dropbox_api_url)
    member_id = await resolve_operating_identity(team, settings.dropbox_api_select_user_email)

    namespace = NamespaceClient(
        http,
        settings.dropbox_token,
        namespace_id=settings.dropbox_namespace_id,
        member_id=member_id,
        api_url=settings.dropbox_api_url,
    )
    logger.info("Using namespace", namespace_id=settings.dropbox_namespace_id)

    fragments = {
        DestinationCategory(key): fragment
        for key, fragment in settings.destination_fragments.items()
    }
    destinations = await resolve_destinations(namespace, fragments)
    get_metrics().set_destinations_resolved(len(destinations))

    context = SyncContext(
        checkpoint=Checkpoint.initial(clock(), timedelta(hours=settings.lookback_hours)),
        destinations=destinations,
        member_id=member_id,
        namespace_id=settings.dropbox_namespace_id,
    )

    token_manager = TokenManager.from_settings(settings, http)
    engine = SyncEngine(
        context=context,
        token_manager=token_manager,
        tracking=TrackingClient.from_settings(settings, http),
        checker=FolderChecker(namespace),
        provisioner=FolderProvisioner(namespace, settings.template_path),
        clock=clock,
    )
    return SyncComponents(context=context, engine=engine, token_manager=token_manager)
