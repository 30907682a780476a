"""
Folder provisioning as a small state machine.

    COPY_TEMPLATE --success/conflict--> MATERIALIZED
    COPY_TEMPLATE --not_found/error---> CREATE_EMPTY
    CREATE_EMPTY  --success/conflict--> MATERIALIZED
    CREATE_EMPTY  --not_found/error---> FAILED

Each state is attempted once per call. A conflict means the folder is
already there, which is success: provisioning the same name twice never
yields two folders because autorename is always off.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

import structlog

from src.observability.metrics import MetricsCollector, get_metrics
from src.storage.client import NamespaceClient
from src.storage.errors import StorageApiError
from src.storage.schemas import FolderEntry, join_path, normalize_path
from src.sync.errors import ProvisionFailure

logger = structlog.get_logger(__name__)


class ProvisionState(str, Enum):
    COPY_TEMPLATE = "copy_template"
    CREATE_EMPTY = "create_empty"
    MATERIALIZED = "materialized"
    FAILED = "failed"


class StepOutcome(str, Enum):
    SUCCESS = "success"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    ERROR = "error"


TRANSITIONS: dict[tuple[ProvisionState, StepOutcome], ProvisionState] = {
    (ProvisionState.COPY_TEMPLATE, StepOutcome.SUCCESS): ProvisionState.MATERIALIZED,
    (ProvisionState.COPY_TEMPLATE, StepOutcome.CONFLICT): ProvisionState.MATERIALIZED,
    (ProvisionState.COPY_TEMPLATE, StepOutcome.NOT_FOUND): ProvisionState.CREATE_EMPTY,
    (ProvisionState.COPY_TEMPLATE, StepOutcome.ERROR): ProvisionState.CREATE_EMPTY,
    (ProvisionState.CREATE_EMPTY, StepOutcome.SUCCESS): ProvisionState.MATERIALIZED,
    (ProvisionState.CREATE_EMPTY, StepOutcome.CONFLICT): ProvisionState.MATERIALIZED,
    (ProvisionState.CREATE_EMPTY, StepOutcome.NOT_FOUND): ProvisionState.FAILED,
    (ProvisionState.CREATE_EMPTY, StepOutcome.ERROR): ProvisionState.FAILED,
}

TERMINAL_STATES = frozenset({ProvisionState.MATERIALIZED, ProvisionState.FAILED})


def classify_error(error: StorageApiError) -> StepOutcome:
    """Map a Dropbox error to a transition outcome."""
    if error.is_conflict:
        return StepOutcome.CONFLICT
    if error.is_not_found:
        return StepOutcome.NOT_FOUND
    return StepOutcome.ERROR


@dataclass
class StepAttempt:
    step: ProvisionState
    outcome: StepOutcome
    detail: str | None = None


@dataclass
class ProvisionResult:
    state: ProvisionState
    path: str
    entry: FolderEntry | None = None
    attempts: list[StepAttempt] = field(default_factory=list)
    failure: ProvisionFailure | None = None

    @property
    def materialized(self) -> bool:
        return self.state == ProvisionState.MATERIALIZED

    @property
    def already_existed(self) -> bool:
        return bool(self.attempts) and self.attempts[-1].outcome == StepOutcome.CONFLICT


class FolderProvisioner:
    """
    Materializes job folders from the template.

    Usage:
        provisioner = FolderProvisioner(client, template_path="ISA SURVEYORS .../00_TEMPLATE")
        result = await provisioner.provision("/isa project jobs (2-5)", "2000123 - SMITH")
    """

    def __init__(
        self,
        client: NamespaceClient,
        template_path: str,
        metrics: MetricsCollector | None = None,
    ):
        self._client = client
        self._template_path = normalize_path(template_path)
        self._metrics = metrics or get_metrics()
        self._steps: dict[ProvisionState, Callable[[str], Awaitable[FolderEntry | None]]] = {
            ProvisionState.COPY_TEMPLATE: self._copy_template,
            ProvisionState.CREATE_EMPTY: self._create_empty,
        }

    async def provision(self, parent_path: str, name: str) -> ProvisionResult:
        """Run the state machine for ``parent_path/name`` until a terminal state."""
        path = join_path(parent_path, name)
        state = ProvisionState.COPY_TEMPLATE
        attempts: list[StepAttempt] = []
        entry: FolderEntry | None = None

        while state not in TERMINAL_STATES:
            outcome, entry, detail = await self._attempt(state, path)
            attempts.append(StepAttempt(step=state, outcome=outcome, detail=detail))
            self._metrics.record_provision_step(state.value, outcome.value)

            next_state = TRANSITIONS[(state, outcome)]
            logger.debug(
                "Provision transition",
                path=path,
                step=state.value,
                outcome=outcome.value,
                next_state=next_state.value,
                detail=detail,
            )
            if state == ProvisionState.COPY_TEMPLATE and next_state == ProvisionState.CREATE_EMPTY:
                logger.warning(
                    "Template copy failed, creating empty folder instead",
                    path=path,
                    template=self._template_path,
                    outcome=outcome.value,
                    detail=detail,
                )
            state = next_state

        result = ProvisionResult(state=state, path=path, entry=entry, attempts=attempts)
        if state == ProvisionState.FAILED:
            result.failure = ProvisionFailure(
                path,
                [(a.step.value, a.outcome.value, a.detail) for a in attempts],
            )
        return result

    async def _attempt(
        self,
        state: ProvisionState,
        path: str,
    ) -> tuple[StepOutcome, FolderEntry | None, str | None]:
        try:
            entry = await self._steps[state](path)
        except StorageApiError as e:
            return classify_error(e), None, e.error_summary or str(e)

        if entry is None:
            return StepOutcome.ERROR, None, "response carried no metadata"
        return StepOutcome.SUCCESS, entry, None

    async def _copy_template(self, path: str) -> FolderEntry | None:
        return await self._client.copy(self._template_path, path)

    async def _create_empty(self, path: str) -> FolderEntry | None:
        return await self._client.create_folder(path)
