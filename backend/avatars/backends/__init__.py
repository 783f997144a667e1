"""
Bundle backends - Packaging strategies tried in order
"""
from .base import BundleBackend, BundleWarning
from .zip_backend import ZipBundleBackend
from .tar_backend import TarBundleBackend
from .backend_registry import BackendRegistry, create_backend_registry

__all__ = [
    "BundleBackend",
    "BundleWarning",
    "ZipBundleBackend",
    "TarBundleBackend",
    "BackendRegistry",
    "create_backend_registry",
]
