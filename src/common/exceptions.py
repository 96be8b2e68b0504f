"""Domain errors raised by the search services.

Each error knows the HTTP status it maps to and how to render itself as the
JSON body returned to the browser, so routers never build error payloads by
hand.
"""

import re


class NewsSearchError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"error": self.message}


class ValidationError(NewsSearchError):
    """A required request field is missing; raised before any upstream call."""

    status_code = 400


class ConfigurationError(NewsSearchError):
    """No credential is configured for a collaborator the request needs."""

    def __init__(self, message: str, setup: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.setup = setup or {}

    def to_payload(self) -> dict:
        payload = super().to_payload()
        if self.setup:
            payload["setup"] = self.setup
        return payload


class UpstreamError(NewsSearchError):
    """A provider returned a non-success status or an error payload."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.suggestion = suggestion

    def to_payload(self) -> dict:
        payload = super().to_payload()
        if self.suggestion:
            payload["suggestion"] = self.suggestion
        return payload


class RateLimitError(UpstreamError):
    """The provider reported a quota or rate-limit condition."""

    status_code = 429

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        retry_after: int = 60,
    ) -> None:
        super().__init__(message, provider=provider)
        self.retry_after = retry_after

    def to_payload(self) -> dict:
        return {"error": self.message, "retryAfter": self.retry_after}


class ParseError(NewsSearchError):
    """Provider content did not contain a locatable, parseable JSON object."""


# "rate" only at a word start so "generate" or "moderate" do not match
_RATE_LIMIT_RE = re.compile(r"quota|\brate|limit", re.IGNORECASE)


def looks_rate_limited(message: str | None) -> bool:
    return bool(message and _RATE_LIMIT_RE.search(message))
