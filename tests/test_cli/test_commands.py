"""Tests for the command-line interface."""

from unittest.mock import AsyncMock, MagicMock, patch

from click.testing import CliRunner

from src.cli import main
from src.config.settings import Settings
from src.storage.errors import IdentityResolutionError
from src.sync.schemas import CycleResult, CycleStatus, ItemOutcome, ItemResult

from tests.conftest import START


def _components(result: CycleResult) -> MagicMock:
    components = MagicMock()
    components.engine.run_cycle = AsyncMock(return_value=result)
    return components


class TestSyncOnce:
    """Tests for the sync-once command."""

    def test_prints_summary(self):
        result = CycleResult(
            status=CycleStatus.COMPLETED,
            window_start=START,
            window_end=START,
            items=[ItemResult("2000123", ItemOutcome.PROVISIONED, folder_name="2000123 - A")],
        )
        runner = CliRunner()

        with patch("src.sync.bootstrap.bootstrap_sync", AsyncMock(return_value=_components(result))):
            outcome = runner.invoke(main, ["sync-once"])

        assert outcome.exit_code == 0
        assert '"status": "completed"' in outcome.output
        assert "2000123: provisioned" in outcome.output

    def test_failed_cycle_exit_code(self):
        result = CycleResult(status=CycleStatus.FAILED, window_start=START, error="AuthError: no refresh token")
        runner = CliRunner()

        with patch("src.sync.bootstrap.bootstrap_sync", AsyncMock(return_value=_components(result))):
            outcome = runner.invoke(main, ["sync-once"])

        assert outcome.exit_code == 1

    def test_identity_failure_is_fatal(self):
        runner = CliRunner()
        failing = AsyncMock(side_effect=IdentityResolutionError("Could not find team member"))

        with patch("src.sync.bootstrap.bootstrap_sync", failing):
            outcome = runner.invoke(main, ["sync-once"])

        assert outcome.exit_code == 1
        assert "Startup failed" in outcome.output


class TestCheck:
    """Tests for the check command."""

    def test_reports_missing_configuration(self, tmp_path):
        settings = Settings(
            _env_file=None,
            wfx_client_id=None,
            dropbox_token=None,
            token_file=str(tmp_path / "tokens.json"),
        )
        runner = CliRunner()

        with patch("src.cli.get_settings", return_value=settings):
            outcome = runner.invoke(main, ["check"])

        assert outcome.exit_code == 1
        assert "dropbox_configured: False" in outcome.output
        assert "token_file_present: False" in outcome.output
        assert "Some checks failed!" in outcome.output
