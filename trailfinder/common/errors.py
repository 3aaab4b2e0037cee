"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for batch pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class StageError(PipelineError):
    """Raised for stage failures that should halt in strict mode."""

    error_code = "STAGE_ERROR"


class SearchError(Exception):
    """Base class for query outcomes that are not a successful result.

    ``http_status`` is the status an HTTP layer should answer with.
    """

    error_code = "SEARCH_ERROR"
    http_status = 500


class PostcodeNotFound(SearchError):
    """Postcode has no record, or the record is marked not in use."""

    error_code = "NOT_FOUND"
    http_status = 404


class TrailNotFound(SearchError):
    error_code = "NOT_FOUND"
    http_status = 404


class InvalidSearchInput(SearchError):
    """A caller-supplied parameter is missing, non-numeric or non-positive."""

    error_code = "INVALID_INPUT"
    http_status = 400


class NoCandidateData(SearchError):
    """The candidate corpus is empty or could not be read."""

    error_code = "NO_DATA"
    http_status = 500
