"""Error taxonomy for the identification pipeline."""

from datetime import datetime


class RecyclingAssistantError(Exception):
    """Base class for application errors."""


class ProviderError(RecyclingAssistantError):
    """A vision provider failed to produce a usable result."""

    kind = "error"
    retryable = False

    def __init__(self, provider: str, message: str = "") -> None:
        super().__init__(message or f"{provider}: {self.kind}")
        self.provider = provider


class ProviderUnconfigured(ProviderError):
    """The provider has no credentials configured."""

    kind = "unconfigured"


class ProviderUnauthorized(ProviderError):
    """The provider rejected the configured credentials."""

    kind = "unauthorized"


class ProviderQuotaExceeded(ProviderError):
    """The provider reported a rate or quota limit."""

    kind = "quota_exceeded"
    retryable = True


class ProviderTransient(ProviderError):
    """Network failure, timeout or server-side error."""

    kind = "transient"
    retryable = True


class ProviderEmptyResult(ProviderError):
    """The provider answered but detected nothing."""

    kind = "no_labels_found"


class AllProvidersExhausted(RecyclingAssistantError):
    """Every configured vision provider failed."""

    def __init__(self, failures: list[ProviderError]) -> None:
        self.failures = failures
        summary = ", ".join(f"{err.provider} ({err.kind})" for err in failures)
        super().__init__(f"All vision providers failed: {summary or 'none configured'}")

    @property
    def attempted(self) -> list[str]:
        """Names of the providers that were attempted, in order."""
        return [err.provider for err in self.failures]


class InterpreterError(RecyclingAssistantError):
    """An LLM interpreter failed."""

    def __init__(self, interpreter: str, message: str) -> None:
        super().__init__(f"{interpreter}: {message}")
        self.interpreter = interpreter


class InterpreterParseError(InterpreterError):
    """The interpreter response was not valid interpretation JSON."""


class InterpreterHttpError(InterpreterError):
    """The interpreter request failed in transport or with an HTTP error."""


class RateLimitExceeded(RecyclingAssistantError):
    """Too many requests from one client in the current window."""

    def __init__(self, client_id: str, reset_at: datetime) -> None:
        super().__init__(f"Rate limit exceeded for {client_id}")
        self.client_id = client_id
        self.reset_at = reset_at


class DailyQuotaExceeded(RecyclingAssistantError):
    """The client used up its daily identification quota."""

    def __init__(self, client_id: str, limit: int, reset_at: datetime) -> None:
        super().__init__(f"Daily limit of {limit} requests reached for {client_id}")
        self.client_id = client_id
        self.limit = limit
        self.reset_at = reset_at


class InvalidImage(RecyclingAssistantError):
    """The uploaded image is malformed, too large or of a disallowed type."""


def provider_error_for_status(
    provider: str, status_code: int, detail: str = ""
) -> ProviderError:
    """Map an HTTP status from a provider to the matching provider error."""
    message = f"HTTP {status_code}: {detail}".strip().rstrip(":")
    if status_code in {401, 403}:
        return ProviderUnauthorized(provider, message)
    if status_code == 429:
        return ProviderQuotaExceeded(provider, message)
    if status_code >= 500:
        return ProviderTransient(provider, message)
    return ProviderError(provider, message)
