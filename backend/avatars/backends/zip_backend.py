"""
Zip Bundle Backend - Primary packaging strategy (deflate)
"""
import zipfile
from pathlib import Path
from typing import List, Tuple

from avatars.schemas import BundleAsset, BundleManifest, BundleOptions
from avatars.backends.base import BundleBackend, MANIFEST_ENTRY


class ZipBundleBackend(BundleBackend):
    """Writes bundles as deflated zip archives"""

    name = "zip"

    def write_archive(
        self,
        path: Path,
        manifest: BundleManifest,
        entries: List[Tuple[BundleAsset, str]],
        options: BundleOptions
    ) -> None:
        with zipfile.ZipFile(
            path, "w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=options.compression_level
        ) as archive:
            archive.writestr(MANIFEST_ENTRY, manifest.model_dump_json(indent=2))
            for asset, entry in entries:
                archive.write(asset.path, arcname=entry)


__all__ = ["ZipBundleBackend"]
