from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_STATUS = "upstream_status"
    UPSTREAM_TRANSPORT = "upstream_transport"
    UPSTREAM_TIMEOUT = "upstream_timeout"
    UPSTREAM_PAYLOAD = "upstream_payload"
    CONFIGURATION = "configuration"
    FALLBACK_MISS = "fallback_miss"
    INTERNAL = "internal"


class MetadataServiceError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = 500

    def __init__(self, message: str, kind: ErrorKind | None = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    @property
    def public_message(self) -> str:
        return self.message


class ValidationError(MetadataServiceError):
    kind = ErrorKind.VALIDATION
    status_code = 400


class RateLimitError(MetadataServiceError):
    kind = ErrorKind.RATE_LIMITED
    status_code = 429

    def __init__(self, client_key: str):
        super().__init__("Too many requests")
        self.client_key = client_key


class UpstreamError(MetadataServiceError):
    """Provider failure. Recovered by the orchestrator, never sent to the client as-is."""

    status_code = 502

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UPSTREAM_TRANSPORT,
        upstream_status: int | None = None,
        upstream_status_text: str | None = None,
    ):
        super().__init__(message, kind=kind)
        self.upstream_status = upstream_status
        self.upstream_status_text = upstream_status_text

    @classmethod
    def from_status(cls, status: int, status_text: str | None) -> "UpstreamError":
        reason = f"{status} {status_text}".strip() if status_text else str(status)
        return cls(
            f"YouTube API request failed with HTTP {reason}",
            kind=ErrorKind.UPSTREAM_STATUS,
            upstream_status=status,
            upstream_status_text=status_text,
        )


class ConfigurationError(MetadataServiceError):
    kind = ErrorKind.CONFIGURATION


class FallbackUnavailableError(MetadataServiceError):
    kind = ErrorKind.FALLBACK_MISS


class InternalError(MetadataServiceError):
    kind = ErrorKind.INTERNAL
    status_code = 500

    @property
    def public_message(self) -> str:
        return "Internal server error"
