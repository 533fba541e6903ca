from typing import Optional


class CuratifyError(Exception):
    """Base class for every error raised by the Curatify packages."""


class ConfigurationError(CuratifyError):
    """Required settings (client id, redirect URI, LLM URL/key) are missing."""


class AuthenticationError(CuratifyError):
    """The authorization code exchange failed; the user must log in again."""


class TransientServerError(CuratifyError):
    """A retryable upstream failure (HTTP 429/5xx or a transport error)."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LLMRequestError(CuratifyError):
    """A permanent LLM endpoint failure, or a response without usable content."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(CuratifyError):
    """LLM text could not be turned into a JSON object, even after repair."""

    def __init__(self, message: str, *, excerpt: str = ""):
        super().__init__(message)
        self.excerpt = excerpt


class SpotifyAPIError(CuratifyError):
    """Non-2xx response from the Spotify Web API; status_code is None when no response arrived."""

    def __init__(self, status_code: Optional[int], body: str = ""):
        if status_code is None:
            super().__init__(f"Spotify API request failed: {body}")
        else:
            super().__init__(f"Spotify API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body
