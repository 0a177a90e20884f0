"""Export functionality for projects."""

from .md_exporter import MarkdownExporter

__all__ = ['MarkdownExporter']
