"""
Startup resolution of the operating identity and the destination folders.

Both run once before the polling loop is armed. A missing destination is
tolerated (its jobs are skipped at routing time); a missing identity is not.
"""

from collections.abc import Mapping

import structlog

from src.storage.client import NamespaceClient, TeamClient
from src.storage.errors import FolderResolutionError, IdentityResolutionError, StorageApiError
from src.sync.schemas import DestinationCategory, DestinationFolder

logger = structlog.get_logger(__name__)


async def resolve_operating_identity(team_client: TeamClient, email: str | None) -> str:
    """
    Team member id for ``email`` (case-insensitive).

    Raises:
        IdentityResolutionError: No email configured, the member list could
            not be read or is empty, or nobody on the team has that email
    """
    if not email:
        raise IdentityResolutionError("No operating-context email configured")

    try:
        members = await team_client.list_members()
    except StorageApiError as e:
        raise IdentityResolutionError(f"Could not list team members: {e}") from e

    if not members:
        raise IdentityResolutionError("No team members found")

    logger.info("Fetched team members", count=len(members))
    wanted = email.lower()
    for member in members:
        if member.email.lower() == wanted:
            logger.info("Using team member", email=email, team_member_id=member.team_member_id)
            return member.team_member_id

    raise IdentityResolutionError(
        f"Could not find team member with email {email}",
        available=[f"{m.email} ({m.team_member_id})" for m in members],
    )


async def resolve_destinations(
    client: NamespaceClient,
    fragments: Mapping[DestinationCategory, str],
) -> dict[DestinationCategory, DestinationFolder]:
    """
    Match each category's name fragment against the namespace root folders.

    The first folder whose name contains the fragment (case-sensitive) wins.
    Categories without a match are left out and logged; a root listing
    failure yields an empty mapping.
    """
    try:
        entries = await client.list_folder("", include_mounted_folders=True)
    except StorageApiError as e:
        logger.error(
            "Could not list namespace root",
            namespace_id=client.namespace_id,
            error_summary=e.error_summary,
            error=str(e),
        )
        return {}

    folders = [e for e in entries if e.is_folder]
    logger.info("Listed namespace root", entries=len(entries), folders=len(folders))

    destinations: dict[DestinationCategory, DestinationFolder] = {}
    for category, fragment in fragments.items():
        match = next((f for f in folders if fragment in f.name), None)
        if match is None:
            continue
        destinations[category] = DestinationFolder(
            category=category,
            label=category.label,
            path=match.location,
        )
        logger.info("Destination resolved", category=category.value, path=match.location)

    missing = [c.value for c in fragments if c not in destinations]
    if missing:
        error = FolderResolutionError(
            f"Destination folders not found: {', '.join(missing)}",
            missing=missing,
        )
        logger.error(
            "Destination resolution incomplete; jobs routed to missing categories will be skipped",
            missing=error.missing,
            error=str(error),
        )
    return destinations
