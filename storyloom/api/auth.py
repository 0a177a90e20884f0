"""API authentication utilities."""
import os
from typing import Optional

from .errors import AuthenticationError


def validate_api_key(api_key: Optional[str] = None) -> str:
    """
    Validate and return the OpenRouter API key.

    Args:
        api_key: Optional API key to validate. If None, reads from environment.

    Returns:
        Valid API key

    Raises:
        AuthenticationError: If API key is missing or blank
    """
    key = (api_key or os.getenv('OPENROUTER_API_KEY', '')).strip()

    if not key:
        raise AuthenticationError(
            "API key not configured. "
            "Set OPENROUTER_API_KEY or run 'storyloom config --api-key ...'."
        )

    return key
