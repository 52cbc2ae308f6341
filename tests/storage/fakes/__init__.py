from .fake_store import FakeArtifactStore

__all__ = ["FakeArtifactStore"]
