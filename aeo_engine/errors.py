"""
Engine Error Taxonomy

Every failure the engine can meet falls into one of these classes:

- ProviderUnavailable: provider not configured (missing credentials). Expected;
  the caller skips that provider's contribution.
- ProviderCallFailed: network error, timeout or non-2xx from a provider.
  Caught at the provider boundary and treated as an empty result.
- ValidationRejected: a candidate domain failed the liveness check. Dropped.
- PipelineStageFailed: a scoring stage raised. That stage's contribution is
  marked unavailable and the pipeline continues.
- PipelineFatal: nothing left to analyze (both site fetches failed). The run
  moves to `failed` with `user_message` as its status message.
"""

from typing import Optional


class EngineError(Exception):
    """Base class for all engine errors."""


class ProviderUnavailable(EngineError):
    """A capability provider is not configured or disabled."""

    def __init__(self, provider: str, message: Optional[str] = None):
        super().__init__(message or f"{provider} is not configured")
        self.provider = provider


class ProviderCallFailed(EngineError):
    """A call to a configured provider failed."""

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        status_code: int = None,
        response: dict = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.response = response


class ValidationRejected(EngineError):
    """A candidate domain did not pass validation."""

    def __init__(self, domain: str, reason: str):
        super().__init__(f"{domain} rejected: {reason}")
        self.domain = domain
        self.reason = reason


class PipelineStageFailed(EngineError):
    """A single pipeline stage raised while running."""

    def __init__(self, stage: str, cause: Exception):
        super().__init__(f"Stage '{stage}' failed: {cause}")
        self.stage = stage
        self.cause = cause


class PipelineFatal(EngineError):
    """Unrecoverable pipeline failure. `user_message` is safe to show to users."""

    def __init__(self, user_message: str, detail: Optional[str] = None):
        super().__init__(detail or user_message)
        self.user_message = user_message


class InvalidTransition(EngineError):
    """An analysis run was asked to move along an edge its state machine forbids."""

    def __init__(self, current, requested, reason: Optional[str] = None):
        current_value = getattr(current, "value", current)
        requested_value = getattr(requested, "value", requested)
        super().__init__(
            reason or f"Cannot move run from '{current_value}' to '{requested_value}'"
        )
        self.current = current
        self.requested = requested
