"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is stored as an attribute so callers (the job runner, mostly)
    # can persist it without parsing str(exception). Never raise this one directly, pick a
    # subclass so callers can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(DomainException):
    """Input validation failed.

    HTTP Status: 422

    Example:
        raise ValidationError("playlist_url must not be empty")
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    HTTP Status: 503 (Service Unavailable)

    Example:
        raise ConfigurationError("Unable to create SQLite database directory")
    """

    pass


class ExternalServiceError(DomainException):
    """External metadata provider (Deezer, iTunes) returned an error.

    Raised inside the provider clients only. The clients convert it into a
    transport_error ProviderResult at their public boundary, so it never
    reaches the reconciler.

    HTTP Status: 502 (Bad Gateway)
    """

    def __init__(self, service: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{service} API error: {message}")
        self.service = service
        self.status_code = status_code


class RateLimitExceededError(ExternalServiceError):
    """External service kept rate limiting us after all retries.

    HTTP Status: 429

    Example:
        raise RateLimitExceededError("Deezer", retry_after=5.0)
    """

    def __init__(self, service: str, retry_after: float | None = None) -> None:
        detail = "rate limit exceeded"
        if retry_after is not None:
            detail += f" - retry after {retry_after:.0f}s"
        super().__init__(service, detail, status_code=429)
        self.retry_after = retry_after


class PlaylistParseError(DomainException):
    """A playlist could not be parsed at all (no tracks, bad URL, fetch failed)."""

    def __init__(self, url: str, message: str | None = None) -> None:
        super().__init__(message or f"Failed to parse playlist: {url}")
        self.url = url


class ImportJobCancelledError(DomainException):
    """Raised from the progress callback when an admin cancelled the import job.

    Listen future me, this one MUST bubble all the way up to the job runner. The
    per-artist error handling never sees it because the progress callback runs
    outside of process_artist.
    """

    def __init__(self, job_id: str) -> None:
        super().__init__("Job was cancelled")
        self.job_id = job_id


__all__ = [
    "ConfigurationError",
    "DomainException",
    "EntityNotFoundException",
    "ExternalServiceError",
    "ImportJobCancelledError",
    "PlaylistParseError",
    "RateLimitExceededError",
    "ValidationError",
]
