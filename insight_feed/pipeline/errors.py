"""Pipeline-level exceptions."""


class PipelineError(Exception):
    """Base class for errors raised by the pipeline orchestrator."""


class IngestionRequiredError(PipelineError):
    """Processing was triggered before any ingestion run completed."""

    def __init__(self, message: str = "Run ingestion before processing"):
        super().__init__(message)


class InvalidTransitionError(PipelineError):
    """A processing record was moved to a status its current status does not allow."""

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move processing record from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested
