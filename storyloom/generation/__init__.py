"""Context assembly and AI-assisted writing."""

from .context import ContextAssembler, build_context
from .assistant import WritingAssistant

__all__ = ['ContextAssembler', 'build_context', 'WritingAssistant']
