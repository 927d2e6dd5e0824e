"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for feed pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class StageError(PipelineError):
    """Raised for failures that abort the current request."""

    error_code = "STAGE_ERROR"


class UpstreamError(StageError):
    """The feed could not be obtained from upstream."""

    error_code = "UPSTREAM_ERROR"


class TransportError(UpstreamError):
    error_code = "TRANSPORT_ERROR"


class HttpStatusError(UpstreamError):
    error_code = "HTTP_STATUS_ERROR"

    def __init__(self, code: int, url: str = "") -> None:
        self.code = code
        self.url = url
        target = f" fetching {url}" if url else ""
        super().__init__(f"HTTP {code}{target}")


class MalformedXmlError(StageError):
    """The feed document is not well-formed XML."""

    error_code = "MALFORMED_XML"


class CacheWriteError(PipelineError):
    """Persisting the cached feed failed. Never propagated past the cache."""

    error_code = "CACHE_WRITE_ERROR"
