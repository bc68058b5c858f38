"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class InvalidConfig(ConfigError):
    """Raised for a malformed request config, before any I/O happens."""

    error_code = "INVALID_CONFIG"


class TransportError(PipelineError):
    """Network or HTTP failure talking to a remote source."""

    error_code = "TRANSPORT_ERROR"


class DecodeError(PipelineError):
    """Response body does not have the expected row or feature shape."""

    error_code = "DECODE_ERROR"
