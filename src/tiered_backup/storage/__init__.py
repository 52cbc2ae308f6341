"""Artifact store interface and provider adapters."""
from .base import ArtifactStore, ObjectHead, ObjectInfo

__all__ = ["ArtifactStore", "ObjectHead", "ObjectInfo"]
