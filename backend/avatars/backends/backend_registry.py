"""
Backend Registry - Ordered list of packaging strategies

The Packager walks the list front to back until one backend produces a
manifest. New backends are added here without touching the pipeline.
"""
from typing import List, Optional

from avatars.backends.base import BundleBackend
from avatars.backends.zip_backend import ZipBundleBackend
from avatars.backends.tar_backend import TarBundleBackend


class BackendRegistry:
    """
    Central registry for bundle backends

    Order matters: earlier backends are tried first.
    """

    def __init__(self):
        self._backends: List[BundleBackend] = []

    def register(self, backend: BundleBackend, index: Optional[int] = None) -> BundleBackend:
        """Add a backend at the end, or at index"""
        if self.get(backend.name) is not None:
            raise ValueError(f"Backend '{backend.name}' is already registered")
        if index is None:
            self._backends.append(backend)
        else:
            self._backends.insert(index, backend)
        return backend

    def unregister(self, name: str) -> None:
        self._backends = [b for b in self._backends if b.name != name]

    def get(self, name: str) -> Optional[BundleBackend]:
        return next((b for b in self._backends if b.name == name), None)

    @property
    def backends(self) -> List[BundleBackend]:
        return list(self._backends)

    def list_backends(self) -> List[str]:
        return [b.name for b in self._backends]

    def __len__(self):
        return len(self._backends)


def create_backend_registry() -> BackendRegistry:
    """
    Factory function to create the default backend order

    Returns:
        Registry holding the zip backend, then the tar backend
    """
    registry = BackendRegistry()
    registry.register(ZipBundleBackend())
    registry.register(TarBundleBackend())
    return registry


__all__ = ["BackendRegistry", "create_backend_registry"]
