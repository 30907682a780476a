"""Exceptions for the sync engine."""


class ProvisionFailure(Exception):
    """
    Neither the template copy nor the empty-folder create produced a folder.

    Carried on a failed ProvisionResult rather than raised: one item failing
    does not abort the rest of the batch.
    """

    def __init__(self, path: str, attempts: list[tuple[str, str, str | None]]):
        self.path = path
        self.attempts = attempts
        details = "; ".join(
            f"{step}: {outcome}" + (f" ({detail})" if detail else "")
            for step, outcome, detail in attempts
        )
        super().__init__(f"Could not provision {path}: {details}")


class SyncConfigError(RuntimeError):
    """Required configuration for the sync is missing."""
