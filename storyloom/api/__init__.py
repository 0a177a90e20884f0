from .openrouter import OpenRouterClient
from .auth import validate_api_key
from .errors import (
    AssistantError,
    GatewayError,
    AuthenticationError,
    EmptyInputError,
    AssistantBusyError
)

__all__ = [
    'OpenRouterClient', 'validate_api_key',
    'AssistantError', 'GatewayError', 'AuthenticationError',
    'EmptyInputError', 'AssistantBusyError'
]
