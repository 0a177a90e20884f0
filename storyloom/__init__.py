"""Storyloom - project tree and Story Bible for AI-assisted writing."""

__version__ = "1.0.0"
__author__ = "Storyloom"

from .models import Node, Category, ProjectManifest
from .models.project import Project
from .session import ProjectSession

__all__ = [
    '__version__',
    'Node',
    'Category',
    'ProjectManifest',
    'Project',
    'ProjectSession'
]
