"""
Build output caching for gobuildkit.
"""

from gobuildkit.caching.artifact_cache import (
    MANIFEST_NAME,
    Artifact,
    ArtifactCache,
    CacheEntry,
)

__all__ = ["Artifact", "ArtifactCache", "CacheEntry", "MANIFEST_NAME"]
