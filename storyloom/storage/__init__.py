"""On-disk storage for projects."""

from .manifest import ManifestStore, ManifestError
from .documents import DocumentStore, DocumentReadError

__all__ = ['ManifestStore', 'ManifestError', 'DocumentStore', 'DocumentReadError']
