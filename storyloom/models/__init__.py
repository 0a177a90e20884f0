from .node import Node, Category, ProjectFiles, ProjectManifest

__all__ = [
    'Node', 'Category',
    'ProjectFiles', 'ProjectManifest'
]
