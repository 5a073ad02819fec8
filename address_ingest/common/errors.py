"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class StageError(PipelineError):
    """Raised for stage failures that abort the run."""

    error_code = "STAGE_ERROR"


class FetchError(StageError):
    """Network or disk failure while fetching a region archive."""

    error_code = "FETCH_ERROR"


class DataFormatError(StageError):
    """Archive or CSV content does not have the expected shape."""

    error_code = "DATA_FORMAT_ERROR"


class StagingError(StageError):
    """Staging artifact misuse or an unreadable artifact."""

    error_code = "STAGING_ERROR"


class IndexDefinitionError(StageError):
    error_code = "INDEX_ERROR"


class StoreUnavailableError(PipelineError):
    """Raised when the shared store cannot be reached."""

    error_code = "STORE_UNAVAILABLE"


class LeaseLostError(StageError):
    """The run lease expired and another run now holds it."""

    error_code = "LEASE_LOST"
