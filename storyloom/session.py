"""Application session: the currently opened project and its operation surface."""
from pathlib import Path
from typing import List, Optional, Sequence

from .config import Settings, get_settings
from .config.constants import USER_CONFIG_FILE
from .export import MarkdownExporter
from .generation.context import ContextAssembler
from .models import Category, Node
from .models.project import Project
from .utils.logging import get_logger


class NoProjectError(RuntimeError):
    """Raised when a project operation is requested with no project open."""


class ProjectSession:
    """
    Owns the open project for the presentation layer.

    A session starts closed. open() initializes and opens a project
    directory and remembers it as the last opened project; opening another
    directory replaces the current one.
    """

    def __init__(self, settings: Optional[Settings] = None, config_file: Optional[Path] = None):
        """
        Initialize session.

        Args:
            settings: Optional settings (uses cached global settings if not provided)
            config_file: Where last_opened_project is persisted
                (defaults to ~/.storyloom/config.yaml)
        """
        self.settings = settings or get_settings()
        self.config_file = Path(config_file) if config_file else USER_CONFIG_FILE
        self._project: Optional[Project] = None

    @property
    def project(self) -> Project:
        if self._project is None:
            raise NoProjectError("No project is open.")
        return self._project

    @property
    def is_open(self) -> bool:
        return self._project is not None

    def open(self, path: Path, remember: bool = True) -> Project:
        """
        Initialize (if needed) and open a project directory.

        Args:
            path: Project directory
            remember: Persist as last_opened_project in the user config
        """
        logger = get_logger("session")

        if self._project is not None:
            logger.info(f"Switching project from {self._project.path} to {path}")

        self._project = Project.init(path)

        if remember:
            self.settings.last_opened_project = self._project.path
            self.settings.save_config_file(self.config_file)

        logger.info(f"Opened project {self._project.path} ({self._project.title!r})")
        return self._project

    def reopen_last(self) -> Optional[Project]:
        """Open the last opened project if its directory still exists."""
        last = self.settings.last_opened_project
        if last and Path(last).is_dir():
            return self.open(Path(last), remember=False)
        return None

    def close(self) -> None:
        if self._project is not None:
            get_logger("session").info(f"Closed project {self._project.path}")
        self._project = None

    # --- Core operation surface ---

    def init(self, path: Path) -> Project:
        return self.open(path)

    def load(self) -> Project:
        """Re-read the open project's manifest from disk."""
        self.project.reload()
        return self.project

    def create(self, category: Category, title: str, parent_id: Optional[str] = None) -> Node:
        return self.project.create(category, title, parent_id)

    def rename(self, category: Category, node_id: str, title: str) -> bool:
        return self.project.rename(category, node_id, title)

    def delete(self, category: Category, node_id: str) -> bool:
        return self.project.delete(category, node_id)

    def reorder(self, category: Category, parent_id: Optional[str], ids: Sequence[str]) -> bool:
        return self.project.reorder(category, parent_id, ids)

    def read_content(self, category: Category, node_id: str) -> str:
        return self.project.read_content(category, node_id)

    def save_content(self, category: Category, node_id: str, text: str) -> bool:
        return self.project.save_content(category, node_id, text)

    def set_active(self, node_id: str, is_active: bool) -> bool:
        return self.project.set_active(node_id, is_active)

    def set_summary(self, category: Category, node_id: str, text: str) -> bool:
        return self.project.set_summary(category, node_id, text)

    def build_context(self, max_history_chapters: Optional[int] = None) -> str:
        """Story Bible for the open project; None uses the configured window."""
        if max_history_chapters is None:
            max_history_chapters = self.settings.max_history_chapters
        return ContextAssembler(self.project).build(max_history_chapters=max_history_chapters)

    def export_category(self, category: Category, target_path: Path) -> Path:
        return MarkdownExporter(self.project).export(category, target_path)

    def outline(self, category: Category) -> List[Node]:
        """Root nodes of a category, for display."""
        return self.project.forest(category)
