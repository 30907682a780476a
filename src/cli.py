"""
Command-line interface for job-folder-sync.

Provides commands to run the sync loop with its web surface, serve the
OAuth pages on their own, run a single cycle, and check configuration.

Usage:
    job-folder-sync run        # Sync loop + web server
    job-folder-sync serve      # Web server only (first-time authorization)
    job-folder-sync sync-once  # One polling cycle
    job-folder-sync check      # Configuration and startup resolution
"""

import asyncio
import json
import signal
import sys

import click

from src.config.settings import get_settings
from src.observability.logging import setup_logging
from src.observability.metrics import get_metrics
from src.storage.errors import IdentityResolutionError
from src.sync.errors import SyncConfigError
from src.transport.http_client import HTTPClient


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Job Folder Sync - Dropbox folders for new WorkflowMax jobs."""
    if debug:
        import os
        os.environ["LOG_LEVEL"] = "DEBUG"

    setup_logging()


@main.command()
@click.option("--host", default=None, help="Web server host")
@click.option("--port", default=None, type=int, help="Web server port")
@click.option("--metrics/--no-metrics", default=None, help="Enable metrics server")
def run(host: str | None, port: int | None, metrics: bool | None) -> None:
    """Run the sync loop and the web server."""
    import uvicorn

    from src.api.app import create_app
    from src.api.dependencies import set_sync_service, set_token_manager
    from src.services.sync_service import SyncService
    from src.sync.bootstrap import bootstrap_sync

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port
    metrics = settings.metrics_enabled if metrics is None else metrics

    async def run_all():
        if metrics:
            get_metrics().start_server(port=settings.metrics_port)

        async with HTTPClient.from_settings(settings) as http:
            try:
                components = await bootstrap_sync(settings, http)
            except (SyncConfigError, IdentityResolutionError) as e:
                click.echo(click.style(f"Startup failed: {e}", fg="red"), err=True)
                sys.exit(1)

            service = SyncService(components.engine)
            set_token_manager(components.token_manager)
            set_sync_service(service)

            server = uvicorn.Server(
                uvicorn.Config(create_app(), host=host, port=port, log_level="info")
            )

            async def shutdown():
                server.should_exit = True
                await service.stop()

            # Handle shutdown signals
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, lambda: asyncio.create_task(shutdown()))

            async def serve_web():
                try:
                    await server.serve()
                finally:
                    await service.stop()

            click.echo(f"Starting web server on {host}:{port}")
            try:
                await asyncio.gather(service.start(), serve_web())
            finally:
                set_sync_service(None)
                set_token_manager(None)

    asyncio.run(run_all())


@main.command()
@click.option("--host", default=None, help="Web server host")
@click.option("--port", default=None, type=int, help="Web server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the web server without the sync loop."""
    import uvicorn

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    click.echo(f"Starting web server on {host}:{port}")
    click.echo(f"Authorize WorkflowMax at http://localhost:{port}/oauth/login")

    uvicorn.run(
        "src.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@main.command("sync-once")
def sync_once() -> None:
    """Run one polling cycle and print its summary."""
    from src.sync.bootstrap import bootstrap_sync
    from src.sync.schemas import CycleStatus

    settings = get_settings()

    async def run_cycle():
        async with HTTPClient.from_settings(settings) as http:
            try:
                components = await bootstrap_sync(settings, http)
            except (SyncConfigError, IdentityResolutionError) as e:
                click.echo(click.style(f"Startup failed: {e}", fg="red"), err=True)
                sys.exit(1)

            result = await components.engine.run_cycle()

        click.echo(json.dumps(result.summary(), indent=2))
        for item in result.items:
            line = f"  {item.identifier}: {item.outcome.value}"
            if item.detail:
                line += f" ({item.detail})"
            click.echo(line)

        sys.exit(0 if result.status == CycleStatus.COMPLETED else 1)

    asyncio.run(run_cycle())


@main.command()
def check() -> None:
    """Check configuration, identity and destination folders."""
    from src.storage.client import NamespaceClient, TeamClient
    from src.sync.locator import resolve_destinations, resolve_operating_identity
    from src.sync.schemas import DestinationCategory
    from src.tracking.tokens import TokenStore

    settings = get_settings()

    async def run_checks():
        results: dict[str, bool] = {
            "workflowmax_configured": settings.tracking_configured,
            "dropbox_configured": settings.storage_configured,
            "token_file_present": bool(TokenStore(settings.token_file).load().refresh_token),
        }
        details: dict[str, str] = {}

        if settings.storage_configured:
            async with HTTPClient.from_settings(settings) as http:
                team = TeamClient(http, settings.dropbox_token, settings.dropbox_api_url)
                try:
                    member_id = await resolve_operating_identity(
                        team, settings.dropbox_api_select_user_email
                    )
                    results["identity_resolved"] = True
                    details["identity_resolved"] = member_id
                except IdentityResolutionError as e:
                    results["identity_resolved"] = False
                    details["identity_resolved"] = str(e)
                    member_id = None

                if member_id:
                    namespace = NamespaceClient(
                        http,
                        settings.dropbox_token,
                        namespace_id=settings.dropbox_namespace_id,
                        member_id=member_id,
                        api_url=settings.dropbox_api_url,
                    )
                    fragments = {
                        DestinationCategory(k): v
                        for k, v in settings.destination_fragments.items()
                    }
                    destinations = await resolve_destinations(namespace, fragments)
                    for category in DestinationCategory:
                        key = f"destination_{category.value}"
                        folder = destinations.get(category)
                        results[key] = folder is not None
                        if folder is not None:
                            details[key] = folder.path

        click.echo("\nCheck Results:")
        click.echo("-" * 40)

        all_ok = True
        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            line = f"  {icon} {name}: {status}"
            if name in details:
                line += f" ({details[name]})"
            click.echo(click.style(line, fg=color))
            all_ok = all_ok and status

        click.echo("-" * 40)

        if all_ok:
            click.echo(click.style("Ready to sync!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Some checks failed!", fg="red"))
            sys.exit(1)

    asyncio.run(run_checks())


if __name__ == "__main__":
    main()
