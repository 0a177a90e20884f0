"""Configuration for Storyloom."""

from . import constants
from .settings import Settings, get_settings

__all__ = ['Settings', 'get_settings', 'constants']
