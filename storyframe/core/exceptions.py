"""
Storyframe Custom Exceptions

Custom exception classes for error handling throughout the Storyframe system.
"""


class StoryframeError(Exception):
    """Base exception for all Storyframe errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(StoryframeError):
    """Raised when there's an issue with configuration."""
    pass


class MissingConfigError(ConfigurationError):
    """Raised when a required configuration is missing."""
    pass


class InvalidConfigError(ConfigurationError):
    """Raised when a configuration value is invalid."""
    pass


# =============================================================================
# INPUT VALIDATION ERRORS
# =============================================================================

class ValidationError(StoryframeError):
    """Raised when caller-supplied input is rejected before any call is made."""
    pass


class BriefValidationError(ValidationError):
    """Raised when a brief or shot count is not acceptable."""

    def __init__(self, reason: str, shot_count: int = None):
        details = {"reason": reason}
        if shot_count is not None:
            details["shot_count"] = shot_count
        super().__init__(f"Invalid brief: {reason}", details)


class BundleValidationError(ValidationError):
    """Raised when a script bundle breaks the shots/groups partition."""

    def __init__(self, reason: str, **details):
        super().__init__(f"Invalid script bundle: {reason}", details)


# =============================================================================
# PIPELINE ERRORS
# =============================================================================

class PipelineError(StoryframeError):
    """Base exception for pipeline errors."""
    pass


class IllegalTransitionError(PipelineError):
    """Raised when a phase change is not allowed from the current phase."""

    def __init__(self, current: str, target: str):
        message = f"Illegal phase transition: {current} -> {target}"
        super().__init__(message, {"current": current, "target": target})


class IllegalStateError(PipelineError):
    """Raised when a command cannot run in the current session state."""
    pass


class QueueBusyError(IllegalStateError):
    """Raised when a second queue run is started while one is active."""

    def __init__(self, active_total: int):
        super().__init__(
            "A generation run is already active",
            {"active_total": active_total}
        )


class ScriptGenerationError(PipelineError):
    """Raised when script generation fails and the session returns to idle."""
    pass


# =============================================================================
# EDIT ERRORS
# =============================================================================

class EditError(StoryframeError, LookupError):
    """Raised when an edit targets an index, id or field that doesn't exist."""

    def __init__(self, target: str, key):
        message = f"No {target} at {key!r}"
        super().__init__(message, {"target": target, "key": key})


class InvalidEditError(EditError, ValidationError):
    """Raised when an edit names a field, kind or preset that isn't accepted."""
    pass


# =============================================================================
# LLM ERRORS
# =============================================================================

class LLMError(StoryframeError):
    """Base exception for LLM-related errors."""
    pass


class LLMProviderError(LLMError):
    """Raised when there's an issue with an LLM provider."""

    def __init__(self, provider: str, reason: str, status_code: int = None):
        message = f"LLM provider '{provider}' error: {reason}"
        details = {"provider": provider, "reason": reason}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.status_code = status_code


class RateLimitError(LLMProviderError):
    """Raised when the provider reports rate limiting or quota exhaustion."""

    def __init__(self, provider: str, reason: str, status_code: int = 429):
        super().__init__(provider, reason, status_code)


class ContentBlockedError(LLMProviderError):
    """Raised when content is blocked by provider's safety filters."""

    def __init__(self, provider: str, reason: str):
        super().__init__(provider, f"content blocked: {reason}")
        self.is_content_block = True


class LLMResponseError(LLMError):
    """Raised when LLM response is invalid or unexpected."""
    pass


class SanitizationError(LLMResponseError):
    """Raised when a response can't be parsed or doesn't match the expected shape."""

    def __init__(self, reason: str, raw_text: str = "", expected: str = None):
        details = {"reason": reason, "preview": raw_text[:200]}
        if expected:
            details["expected"] = expected
        super().__init__(f"Unusable model response: {reason}", details)
        self.raw_text = raw_text
