"""Story Bible assembly for AI system instructions."""

from typing import List, Optional

from ..config.constants import (
    CONTENT_FILE_SUFFIX,
    STORY_BIBLE_HEADER,
    STORY_BIBLE_FOOTER,
    EMPTY_DOCUMENT_MARKER,
    READ_ERROR_MARKER
)
from ..models import Category, Node
from ..models.project import Project
from ..storage.documents import DocumentReadError
from ..utils.logging import get_logger


class ContextAssembler:
    """
    Build the system context injected into chat and expand requests.

    The context is made of:
    - Every settings document explicitly marked active, in tree order
    - Optionally, the cached summaries of the most recent chapters
      (a sliding window over the content tree, in manuscript order)

    An empty string means no system instruction should be sent at all.
    """

    def __init__(self, project: Project):
        """
        Initialize context assembler.

        Args:
            project: Project to read settings and chapters from
        """
        self.project = project

    def active_settings(self) -> List[Node]:
        """Settings nodes opted into the context, depth-first."""
        return [
            node for node in self.project.walk(Category.SETTINGS)
            if node.filename.endswith(CONTENT_FILE_SUFFIX) and node.is_active is True
        ]

    def recent_summaries(self, max_history_chapters: int) -> List[Node]:
        """
        Chapters carrying a summary, limited to the trailing window.

        Args:
            max_history_chapters: Window size; 0 disables the window

        Returns:
            At most max_history_chapters nodes, oldest first
        """
        if max_history_chapters < 0:
            raise ValueError(f"max_history_chapters must be >= 0, got {max_history_chapters}")
        if max_history_chapters == 0:
            return []

        summarized = [
            node for node in self.project.walk(Category.CONTENT)
            if node.summary and node.summary.strip()
        ]
        return summarized[-max_history_chapters:]

    def build(self, max_history_chapters: Optional[int] = 0) -> str:
        """
        Assemble the Story Bible.

        Args:
            max_history_chapters: Number of trailing chapter summaries to
                include (None or 0 for none)

        Returns:
            Context string, or "" when there is nothing to inject
        """
        logger = get_logger("context")

        blocks: List[str] = []
        for node in self.active_settings():
            blocks.append(f"[File: {self._label(node)}]")
            blocks.append(self._settings_body(node))

        chapters = self.recent_summaries(max_history_chapters or 0)
        for node in chapters:
            blocks.append(f"[Chapter: {node.display_title}]")
            blocks.append(node.summary.strip())

        if not blocks:
            logger.debug("No active settings or chapter summaries, context omitted")
            return ""

        logger.debug(
            f"Assembled context from {len(blocks) // 2 - len(chapters)} setting(s) "
            f"and {len(chapters)} chapter summary(ies)"
        )
        return "\n\n".join([STORY_BIBLE_HEADER, *blocks, STORY_BIBLE_FOOTER])

    @staticmethod
    def _label(node: Node) -> str:
        title = node.display_title
        if title.endswith(CONTENT_FILE_SUFFIX):
            return title
        return f"{title}{CONTENT_FILE_SUFFIX}"

    def _settings_body(self, node: Node) -> str:
        try:
            content = self.project.documents.read(Category.SETTINGS, node.filename)
        except DocumentReadError as e:
            get_logger("context").warning(f"Could not read setting {node.filename}: {e}")
            return READ_ERROR_MARKER
        content = content.strip()
        return content if content else EMPTY_DOCUMENT_MARKER


def build_context(project: Project, max_history_chapters: Optional[int] = 0) -> str:
    """Convenience wrapper around ContextAssembler.build."""
    return ContextAssembler(project).build(max_history_chapters=max_history_chapters)
