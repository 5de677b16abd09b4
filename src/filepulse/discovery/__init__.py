"""File discovery and tracking classification."""

from .classifier import RepositoryLocator, TrackingClassifier
from .finder import FileFinder

__all__ = ["FileFinder", "RepositoryLocator", "TrackingClassifier"]
