"""Error hierarchy for AI assistant requests."""

__all__ = [
    "AssistantError",
    "GatewayError",
    "AuthenticationError",
    "EmptyInputError",
    "AssistantBusyError",
]


class AssistantError(Exception):
    """Base error for all AI assistant failures."""


class GatewayError(AssistantError):
    """Raised when the text generation service fails or ends a stream with an error."""


class AuthenticationError(GatewayError):
    """Raised when the service rejects the configured credentials."""


class EmptyInputError(AssistantError):
    """Raised before any request when the message or selection is blank."""


class AssistantBusyError(AssistantError):
    """Raised when a request is started while another one is still streaming."""
