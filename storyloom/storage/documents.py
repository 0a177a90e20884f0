"""Content files of project documents."""
from pathlib import Path

from ..models.node import Category


class DocumentReadError(OSError):
    """Raised when a content file cannot be read or is not valid UTF-8."""


class DocumentStore:
    """Maps a node's filename to its text file inside the category directory."""

    def __init__(self, project_path: Path):
        self.project_path = Path(project_path)

    def category_dir(self, category: Category) -> Path:
        """Get path to a category's directory."""
        return self.project_path / Category(category).directory

    def path_for(self, category: Category, filename: str) -> Path:
        return self.category_dir(category) / filename

    def ensure_dirs(self) -> None:
        """Create all category directories."""
        for category in Category:
            self.category_dir(category).mkdir(parents=True, exist_ok=True)

    def read(self, category: Category, filename: str) -> str:
        """
        Read a content file.

        Raises:
            DocumentReadError: If the file is missing, unreadable or not UTF-8
        """
        path = self.path_for(category, filename)
        try:
            return path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentReadError(f"Cannot read {path}: {e}") from e

    def write(self, category: Category, filename: str, text: str) -> None:
        """Write a content file, creating the category directory if needed."""
        path = self.path_for(category, filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding='utf-8')

    def create_empty(self, category: Category, filename: str) -> None:
        self.write(category, filename, "")

    def remove(self, category: Category, filename: str) -> bool:
        """
        Remove a content file.

        Returns:
            True if a file was removed, False if it did not exist

        Raises:
            OSError: For failures other than a missing file
        """
        try:
            self.path_for(category, filename).unlink()
        except FileNotFoundError:
            return False
        return True
