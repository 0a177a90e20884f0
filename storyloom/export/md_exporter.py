"""Markdown exporter for project categories."""

from pathlib import Path

from ..config.constants import EXPORT_SEPARATOR
from ..models import Category
from ..models.project import Project
from ..storage.documents import DocumentReadError
from ..utils.logging import get_logger


class MarkdownExporter:
    """Export one category of a project to a combined markdown file."""

    def __init__(self, project: Project):
        """
        Initialize markdown exporter.

        Args:
            project: Project to export
        """
        self.project = project

    def export(self, category: Category, output_path: Path) -> Path:
        """
        Export a category to a single markdown file.

        Documents appear depth-first: each parent before its children,
        siblings in their stored order. An existing file at output_path is
        overwritten.

        Args:
            category: Category to export
            output_path: Target file

        Returns:
            Path to generated markdown file
        """
        category = Category(category)
        output_path = Path(output_path)

        markdown = self.build_markdown(category)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(markdown, encoding='utf-8')

        get_logger("export").info(f"Exported {category.value} to {output_path} ({len(markdown)} chars)")
        return output_path

    def build_markdown(self, category: Category) -> str:
        """
        Build the combined document.

        Each section is "### <title>", a blank line and the document body,
        followed by a horizontal rule. The trailing rule is dropped so the
        text ends with a single newline.
        """
        category = Category(category)
        parts = []

        for node in self.project.walk(category):
            if not node.filename:
                continue

            parts.append(f"### {node.display_title}\n\n")
            try:
                content = self.project.documents.read(category, node.filename)
            except DocumentReadError:
                # Never-written and unreadable documents export as empty sections
                content = ""
            parts.append(content.rstrip())
            parts.append(EXPORT_SEPARATOR)

        markdown = "".join(parts)
        if markdown.endswith(EXPORT_SEPARATOR):
            markdown = markdown[:-len(EXPORT_SEPARATOR)] + "\n"
        return markdown
