"""
Tar Bundle Backend - Fallback packaging strategy (xz)

Used when the zip backend gives up; the two fail on different inputs.
"""
import io
import tarfile
import time
from pathlib import Path
from typing import List, Tuple

from avatars.schemas import BundleAsset, BundleManifest, BundleOptions
from avatars.backends.base import BundleBackend, MANIFEST_ENTRY


class TarBundleBackend(BundleBackend):
    """Writes bundles as xz-compressed tar archives"""

    name = "tar"

    def write_archive(
        self,
        path: Path,
        manifest: BundleManifest,
        entries: List[Tuple[BundleAsset, str]],
        options: BundleOptions
    ) -> None:
        payload = manifest.model_dump_json(indent=2).encode("utf-8")
        info = tarfile.TarInfo(MANIFEST_ENTRY)
        info.size = len(payload)
        info.mtime = int(time.time())

        with tarfile.open(path, "w:xz", preset=options.compression_level) as archive:
            archive.addfile(info, io.BytesIO(payload))
            for asset, entry in entries:
                archive.add(str(asset.path), arcname=entry)


__all__ = ["TarBundleBackend"]
