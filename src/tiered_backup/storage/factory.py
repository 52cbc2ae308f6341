"""
Store factory with provider switching.

Provides a single factory function that creates the artifact store matching
the scheme of the configured store URI, so call sites never name a provider.
"""
from __future__ import annotations

from ..settings import Settings
from .base import ArtifactStore
from .uri import parse_store_uri


def make_store(settings: Settings) -> ArtifactStore:
    """
    Create an artifact store for the configured store URI.

    Args:
        settings: Backup configuration

    Returns:
        S3ArtifactStore for s3:// URIs, AzureArtifactStore for az:// URIs

    Examples:
        >>> store = make_store(Settings(store_uri="s3://backups", database_url="postgres://db/app"))

    Raises:
        ValueError: If the URI scheme is not supported
    """
    location = parse_store_uri(settings.store_uri)

    if location.scheme == "s3":
        from .s3_store import S3ArtifactStore
        return S3ArtifactStore(settings=settings)
    elif location.scheme == "az":
        from .azure_store import AzureArtifactStore
        return AzureArtifactStore(settings=settings)
    else:
        # parse_store_uri only accepts the schemes above
        raise ValueError(f"Unsupported store URI scheme: {location.scheme}")


__all__ = ["make_store"]
