"""
User-facing error taxonomy.

Everything that can occupy the dashboard's single alert slot is a `Notice`.
True failures are `WeatherMapError` subclasses and can be raised; `Info`
is an informational notice that shares the slot but is never raised.
"""
from typing import Optional


def describe_cause(cause: Optional[BaseException]) -> str:
    """Short human-readable description of an underlying exception."""
    if cause is None:
        return "unknown error"
    if isinstance(cause, Notice):
        return cause.message
    text = str(cause).strip()
    return text or cause.__class__.__name__


class Notice:
    """Base for anything published to the alert slot."""

    kind: str = "notice"
    is_error: bool = True

    @property
    def message(self) -> str:
        raise NotImplementedError


class WeatherMapError(Notice, RuntimeError):
    """Base class for failures surfaced to the user."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self._message = message

    @property
    def message(self) -> str:
        return self._message


class InvalidURL(WeatherMapError):
    kind = "invalid_url"

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Configuration Error: The URL is invalid or malformed: {url}")


class NetworkError(WeatherMapError):
    kind = "network_error"

    def __init__(self, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(f"A network connection error occurred: {describe_cause(cause)}")


class DecodingError(WeatherMapError):
    kind = "decoding_error"

    def __init__(self, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(f"Failed to parse data from the server: {describe_cause(cause)}")


class GeocodingFailed(WeatherMapError):
    kind = "geocoding_failed"

    def __init__(self, query: str) -> None:
        self.query = query
        super().__init__(
            f"Could not find coordinates for the location: {query}. Please try another name."
        )


class InvalidResponse(WeatherMapError):
    kind = "invalid_response"

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(
            f"The server returned an error code: {status_code}. Data is unavailable."
        )


class MissingData(WeatherMapError):
    kind = "missing_data"

    def __init__(self, message: str) -> None:
        self.detail = message
        super().__init__(f"Missing or invalid data: {message}")


class Info(Notice):
    """Informational message shown through the alert slot."""

    kind = "info"
    is_error = False

    def __init__(self, message: str) -> None:
        self._message = message

    @property
    def message(self) -> str:
        return self._message

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Info) and other.message == self.message

    def __hash__(self) -> int:
        return hash(("info", self._message))

    def __repr__(self) -> str:
        return f"Info({self._message!r})"
