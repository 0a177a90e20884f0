"""Persistence of the project manifest (project.json)."""
import json
import os
from pathlib import Path

from pydantic import ValidationError

from ..config.constants import PROJECT_FILE
from ..models.node import ProjectManifest
from ..utils.logging import get_logger


class ManifestError(Exception):
    """Raised when project.json is missing or cannot be parsed."""


class ManifestStore:
    """Reads and rewrites the manifest file of one project directory."""

    def __init__(self, project_path: Path):
        """
        Initialize manifest store.

        Args:
            project_path: Project root directory
        """
        self.project_path = Path(project_path)

    @property
    def manifest_file(self) -> Path:
        """Get path to project.json."""
        return self.project_path / PROJECT_FILE

    @property
    def exists(self) -> bool:
        return self.manifest_file.exists()

    def read(self) -> ProjectManifest:
        """
        Strictly read and parse the manifest.

        Raises:
            ManifestError: If the file is missing, unreadable or malformed
        """
        try:
            raw = self.manifest_file.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestError(f"Cannot read {self.manifest_file}: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Invalid JSON in {self.manifest_file}: {e}") from e

        if not isinstance(data, dict):
            raise ManifestError(f"Manifest root must be an object, got {type(data).__name__}")

        try:
            return ProjectManifest.model_validate(data)
        except ValidationError as e:
            raise ManifestError(f"Manifest schema mismatch: {e}") from e

    def load(self) -> ProjectManifest:
        """
        Load the manifest, treating absence or corruption as an empty project.

        Never raises.
        """
        try:
            return self.read()
        except ManifestError as e:
            logger = get_logger("manifest")
            if self.exists:
                logger.warning(f"Falling back to empty manifest: {e}")
            else:
                logger.debug(f"No manifest at {self.manifest_file}, using empty manifest")
            return ProjectManifest()

    def save(self, manifest: ProjectManifest) -> None:
        """
        Rewrite the whole manifest file.

        The text is written to a sibling temp file first and then moved into
        place, so readers never observe a partially written manifest.
        """
        text = json.dumps(manifest.to_dict(), indent=2, ensure_ascii=False) + "\n"

        self.project_path.mkdir(parents=True, exist_ok=True)
        tmp_file = self.manifest_file.with_name(self.manifest_file.name + ".tmp")
        tmp_file.write_text(text, encoding='utf-8')
        os.replace(tmp_file, self.manifest_file)

        get_logger("manifest").debug(f"Wrote manifest {self.manifest_file} ({len(text)} chars)")
