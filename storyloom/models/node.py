"""Document tree data models."""
from enum import Enum
from typing import List, Optional
import uuid

from pydantic import BaseModel, ConfigDict, Field

from ..config.constants import (
    CONTENT_FILE_SUFFIX,
    DEFAULT_PROJECT_TITLE,
    OUTLINES_DIR,
    CONTENT_DIR,
    SETTINGS_DIR
)


class Category(str, Enum):
    """Independent document collections of a project."""

    OUTLINES = "outlines"
    CONTENT = "content"
    SETTINGS = "settings"

    @property
    def directory(self) -> str:
        """Name of the directory holding this category's content files."""
        return {
            Category.OUTLINES: OUTLINES_DIR,
            Category.CONTENT: CONTENT_DIR,
            Category.SETTINGS: SETTINGS_DIR,
        }[self]


class Node(BaseModel):
    """A single document entry in a category forest."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(description="Stable unique identifier")
    filename: str = Field(description="Content file name, derived from id")
    title: str = Field(default="", description="Human label")
    children: Optional[List["Node"]] = Field(None, description="Ordered child nodes")
    is_active: Optional[bool] = Field(
        None,
        alias="isActive",
        description="Settings only: include in AI context"
    )
    summary: Optional[str] = Field(None, description="Content only: cached chapter summary")

    @classmethod
    def new(cls, title: str) -> "Node":
        """Allocate a fresh node with a new id and matching filename."""
        node_id = str(uuid.uuid4())
        filename = f"{node_id}{CONTENT_FILE_SUFFIX}"
        title = title.strip() if title else ""
        return cls(id=node_id, filename=filename, title=title or node_id)

    @property
    def display_title(self) -> str:
        """Title to show, falling back to the filename when blank."""
        return self.title.strip() or self.filename

    @property
    def has_children(self) -> bool:
        return bool(self.children)


class ProjectFiles(BaseModel):
    """The three category forests of a project."""

    model_config = ConfigDict(extra="allow")

    outlines: List[Node] = Field(default_factory=list)
    content: List[Node] = Field(default_factory=list)
    settings: List[Node] = Field(default_factory=list)


class ProjectManifest(BaseModel):
    """Complete persisted state of a project (project.json)."""

    model_config = ConfigDict(extra="allow")

    title: str = Field(default=DEFAULT_PROJECT_TITLE, description="Project title")
    files: ProjectFiles = Field(default_factory=ProjectFiles)

    def forest(self, category: Category) -> List[Node]:
        """Root node list of a category (the live list, not a copy)."""
        return getattr(self.files, Category(category).value)

    def set_forest(self, category: Category, nodes: List[Node]) -> None:
        setattr(self.files, Category(category).value, nodes)

    def to_dict(self) -> dict:
        """Serialize in the on-disk shape (camelCase flags, absent optionals)."""
        return self.model_dump(by_alias=True, exclude_none=True)
