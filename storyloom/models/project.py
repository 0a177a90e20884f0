"""Project tree: three ordered document forests backed by a directory."""
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from .node import Category, Node, ProjectManifest
from .tree import (
    iter_nodes,
    find_node,
    collect_subtree_ids,
    remove_node,
    reorder_siblings,
    normalize_children
)
from ..storage.documents import DocumentStore, DocumentReadError
from ..storage.manifest import ManifestStore, ManifestError
from ..utils.logging import get_logger


class Project:
    """
    A writing project: outlines, content (chapters) and settings documents.

    The manifest is held in memory and rewritten as a whole after every
    structural change. Id-keyed operations report an unknown id through
    their return value instead of raising. Write failures propagate.
    """

    def __init__(self, path: Path):
        """
        Open a project directory without creating anything on disk.

        Args:
            path: Path to the project directory
        """
        self.path = Path(path).resolve()
        self.manifest_store = ManifestStore(self.path)
        self.documents = DocumentStore(self.path)
        self.manifest: ProjectManifest = self.manifest_store.load()

    @classmethod
    def init(cls, path: Path) -> "Project":
        """
        Prepare a project directory and open it.

        Creates the category directories and, when no valid manifest exists,
        writes a default one. Safe to call on an existing project.
        """
        path = Path(path).resolve()
        documents = DocumentStore(path)
        documents.ensure_dirs()

        project = cls(path)
        if not project._has_valid_manifest():
            get_logger("project").info(f"Initializing new manifest at {project.project_file}")
            project.manifest = ProjectManifest()
            project.save()
        return project

    @classmethod
    def load(cls, path: Path) -> "Project":
        """Open a project; an absent or corrupt manifest reads as empty."""
        return cls(path)

    @property
    def project_file(self) -> Path:
        """Get path to project.json file."""
        return self.manifest_store.manifest_file

    @property
    def title(self) -> str:
        return self.manifest.title

    @property
    def is_valid(self) -> bool:
        """Check if this is a valid project directory."""
        return self.path.exists() and self.project_file.exists()

    def _has_valid_manifest(self) -> bool:
        try:
            self.manifest_store.read()
        except ManifestError:
            return False
        return True

    def reload(self) -> None:
        """Discard in-memory state and re-read the manifest from disk."""
        self.manifest = self.manifest_store.load()

    def save(self) -> None:
        """Normalize tree shape and rewrite project.json."""
        for category in Category:
            normalize_children(self.manifest.forest(category))
        self.manifest_store.save(self.manifest)

    # --- Traversal ---

    def forest(self, category: Category) -> List[Node]:
        """Root nodes of a category."""
        return self.manifest.forest(category)

    def walk(self, category: Category) -> Iterator[Node]:
        """All nodes of a category, depth-first, parents before children."""
        return iter_nodes(self.forest(category))

    def find(self, category: Category, node_id: str) -> Optional[Node]:
        """Find a node by id within one category."""
        return find_node(self.forest(category), node_id)

    # --- Structural operations ---

    def create(
        self,
        category: Category,
        title: str,
        parent_id: Optional[str] = None
    ) -> Node:
        """
        Create a document with an empty content file.

        Args:
            category: Target category
            title: Display title
            parent_id: Append as last child of this node; unknown or None
                appends a new root instead

        Returns:
            The created node
        """
        category = Category(category)
        logger = get_logger("project")

        node = Node.new(title)
        self.documents.create_empty(category, node.filename)

        parent = self.find(category, parent_id) if parent_id else None
        if parent is not None:
            if parent.children is None:
                parent.children = []
            parent.children.append(node)
        else:
            if parent_id:
                logger.debug(f"Parent {parent_id} not found in {category.value}, creating root node")
            self.forest(category).append(node)

        self.save()
        logger.info(f"Created {category.value} node {node.id} ({node.title!r})")
        return node

    def rename(self, category: Category, node_id: str, new_title: str) -> bool:
        """
        Change a node's title.

        A blank title leaves the old one in place. Returns False if the
        node does not exist.
        """
        category = Category(category)
        node = self.find(category, node_id)
        if node is None:
            return False

        node.title = new_title.strip() or node.title
        self.save()
        get_logger("project").info(f"Renamed {category.value} node {node_id} to {node.title!r}")
        return True

    def delete(self, category: Category, node_id: str) -> bool:
        """
        Delete a node together with its whole subtree.

        Content files are removed best-effort: a missing file is skipped and
        other filesystem errors are logged, neither stops the structural
        delete.

        Returns:
            False if the node does not exist
        """
        category = Category(category)
        logger = get_logger("project")

        node = self.find(category, node_id)
        if node is None:
            return False

        subtree = list(iter_nodes([node]))
        for doomed in subtree:
            try:
                if not self.documents.remove(category, doomed.filename):
                    logger.debug(f"Content file already missing: {doomed.filename}")
            except OSError as e:
                logger.warning(f"Could not remove {doomed.filename}: {e}")

        remove_node(self.forest(category), node_id)
        self.save()
        logger.info(
            f"Deleted {category.value} node {node_id} "
            f"with {len(subtree) - 1} descendant(s)"
        )
        return True

    def descendant_ids(self, category: Category, node_id: str) -> List[str]:
        """Ids of a node and its descendants, empty if the node is unknown."""
        node = self.find(category, node_id)
        return collect_subtree_ids(node) if node is not None else []

    def reorder(
        self,
        category: Category,
        parent_id: Optional[str],
        new_order_ids: Sequence[str]
    ) -> bool:
        """
        Reorder one sibling list.

        Args:
            category: Target category
            parent_id: Parent whose children are reordered, None for roots
            new_order_ids: Ids to move to the front, in order; siblings not
                listed keep their relative order after them

        Returns:
            False if parent_id is given but not found
        """
        category = Category(category)

        if parent_id is None:
            self.manifest.set_forest(
                category,
                reorder_siblings(self.forest(category), new_order_ids)
            )
        else:
            parent = self.find(category, parent_id)
            if parent is None:
                return False
            parent.children = reorder_siblings(parent.children or [], new_order_ids)

        self.save()
        get_logger("project").debug(
            f"Reordered {category.value} under {parent_id or '<root>'}: {list(new_order_ids)}"
        )
        return True

    def set_active(self, node_id: str, is_active: bool) -> bool:
        """Include or exclude a settings document from the AI context."""
        node = self.find(Category.SETTINGS, node_id)
        if node is None:
            return False

        node.is_active = bool(is_active)
        self.save()
        return True

    def set_summary(self, category: Category, node_id: str, summary: str) -> bool:
        """
        Cache a chapter summary on a content node.

        Returns:
            False if the node does not exist or is not a content node
        """
        category = Category(category)
        if category is not Category.CONTENT:
            get_logger("project").warning(
                f"Ignoring summary for {category.value} node {node_id}: only content nodes carry summaries"
            )
            return False

        node = self.find(category, node_id)
        if node is None:
            return False

        node.summary = summary
        self.save()
        return True

    # --- Document content ---

    def read_content(self, category: Category, node_id: str) -> str:
        """Read a document's text; unknown nodes and unreadable files read as empty."""
        category = Category(category)
        node = self.find(category, node_id)
        if node is None:
            return ""
        try:
            return self.documents.read(category, node.filename)
        except DocumentReadError as e:
            get_logger("project").debug(f"Reading {node.filename} failed, treating as empty: {e}")
            return ""

    def save_content(self, category: Category, node_id: str, content: str) -> bool:
        """Write a document's text. Returns False if the node does not exist."""
        category = Category(category)
        node = self.find(category, node_id)
        if node is None:
            return False
        self.documents.write(category, node.filename, content)
        return True
