"""
Bundle Backend - Base class for packaging strategies

A backend turns a BundleBuild into one archive file. Backends are tried in
order by the Packager; returning None (or raising) hands over to the next.

Issues that would leave a bundle incomplete are reported as BundleWarning.
In strict mode they are escalated to errors through the warnings filter.
"""
import hashlib
import logging
import warnings
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Tuple

from avatars.schemas import BundleAsset, BundleBuild, BundleManifest, BundleOptions, Platform

logger = logging.getLogger(__name__)

MANIFEST_ENTRY = "manifest.json"
ASSETS_PREFIX = "assets"


class BundleWarning(UserWarning):
    """Issued when a bundle would be incomplete or ambiguous"""
    pass


def file_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


class BundleBackend(ABC):
    """Base class of every packaging strategy"""

    name: str = "base"

    def build(
        self,
        output_dir: Path,
        bundle: BundleBuild,
        options: BundleOptions,
        platform: Platform
    ) -> Optional[BundleManifest]:
        """
        Write one bundle into output_dir

        Args:
            output_dir: Directory receiving the bundle
            bundle: Bundle name and assets
            options: Rebuild, strictness and compression settings
            platform: Target platform recorded in the manifest

        Returns:
            The manifest written, or None if there was nothing to write

        Raises:
            BundleWarning: In strict mode, for any bundle issue
            OSError: If the archive cannot be written
        """
        output_dir = Path(output_dir)
        target = output_dir / bundle.bundle_name if bundle.bundle_name else None

        if options.force_rebuild and target is not None and target.exists():
            logger.debug(f"[{type(self).__name__}] Removing stale bundle {target}")
            target.unlink()

        with warnings.catch_warnings():
            if options.strict_mode:
                warnings.simplefilter("error", BundleWarning)

            if target is None:
                warnings.warn("Bundle name is empty", BundleWarning)
                return None

            entries = self._collect_entries(bundle)
            if not entries:
                warnings.warn(f"Bundle '{bundle.bundle_name}' has no assets", BundleWarning)
                return None

        manifest = BundleManifest(
            bundle_name=bundle.bundle_name,
            platform=platform,
            backend=self.name,
            assets={
                asset.addressable_name: {
                    "guid": asset.guid,
                    "entry": entry,
                    "sha256": file_sha256(asset.path),
                }
                for asset, entry in entries
            },
        )

        temp_path = output_dir / f".{target.name}.tmp"
        try:
            self.write_archive(temp_path, manifest, entries, options)
            temp_path.replace(target)
        finally:
            if temp_path.exists():
                temp_path.unlink()

        logger.info(f"[{type(self).__name__}] Wrote {target} ({len(entries)} asset(s))")
        return manifest

    def _collect_entries(self, bundle: BundleBuild) -> List[Tuple[BundleAsset, str]]:
        entries = []
        names = set()
        for asset in bundle.assets:
            if not Path(asset.path).is_file():
                warnings.warn(f"Asset not found: {asset.path}", BundleWarning)
                continue
            if asset.addressable_name in names:
                warnings.warn(f"Duplicate addressable name '{asset.addressable_name}'", BundleWarning)
                continue
            names.add(asset.addressable_name)
            entries.append((asset, f"{ASSETS_PREFIX}/{asset.addressable_name}{Path(asset.path).suffix}"))
        return entries

    @abstractmethod
    def write_archive(
        self,
        path: Path,
        manifest: BundleManifest,
        entries: List[Tuple[BundleAsset, str]],
        options: BundleOptions
    ) -> None:
        """Write the manifest and every entry into an archive at path"""


__all__ = ["BundleBackend", "BundleWarning", "MANIFEST_ENTRY", "ASSETS_PREFIX", "file_sha256"]
