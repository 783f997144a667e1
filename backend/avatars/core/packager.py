"""
Packager - Serializes the avatar and builds the bundle

Responsibilities:
- Write the avatar as a prefab into the temp directory
- Collect the prefabs the asset index can identify
- Map the main prefab to the stable "Avatar" addressable name
- Try each bundle backend in order until one produces a manifest
"""
import logging
from pathlib import Path
from typing import List, Optional

from config import MAIN_ADDRESSABLE_NAME, PREFAB_EXTENSION, COMPRESSION_LEVEL
from avatars.schemas import BundleAsset, BundleBuild, BundleOptions, Platform
from avatars.scene import AssetIndex, Node, default_registry
from avatars.scene.document import node_to_model
from avatars.backends import BackendRegistry, create_backend_registry
from avatars.core.errors import PackagingError
from avatars.core.progress import ProgressReporter
from avatars.core.sanitizer import GraphSanitizer

logger = logging.getLogger(__name__)


class Packager:
    """
    Packager - Turns a sanitized avatar into a bundle file

    Args:
        asset_index: Index that must know every packaged file
        sanitizer: Sanitizer providing the final guard
        backends: Ordered packaging strategies
    """

    def __init__(
        self,
        asset_index: AssetIndex,
        sanitizer: Optional[GraphSanitizer] = None,
        backends: Optional[BackendRegistry] = None
    ):
        self.asset_index = asset_index
        self.sanitizer = sanitizer or GraphSanitizer()
        self.backends = backends or create_backend_registry()

    def write_prefab(self, subject: Node, temp_dir: Path) -> Path:
        """
        Serialize the avatar into the temp directory

        Returns:
            Path of the written prefab

        Raises:
            PackagingError: If the directory is not writable or serialization fails
        """
        temp_dir = Path(temp_dir)
        try:
            temp_dir.mkdir(parents=True, exist_ok=True)
            probe = temp_dir / "test.tmp"
            probe.write_text("test", encoding="utf-8")
            probe.unlink()
        except OSError as e:
            raise PackagingError(f"Cannot write to temporary directory '{temp_dir}': {e}") from e

        prefab_path = temp_dir / f"{MAIN_ADDRESSABLE_NAME}{PREFAB_EXTENSION}"
        logger.info(f"[Packager] Creating avatar prefab from '{subject.name}' at: {prefab_path}")

        self.sanitizer.final_guard(subject)

        document = subject.scene
        registry = document.registry if document is not None else default_registry
        try:
            model = node_to_model(subject, registry)
            prefab_path.write_text(model.model_dump_json(indent=2), encoding="utf-8")
        except (OSError, ValueError) as e:
            raise PackagingError(f"Failed to create avatar prefab: {e}") from e

        self.asset_index.refresh(temp_dir)
        logger.info(f"[Packager] Created avatar prefab at: {prefab_path}")
        return prefab_path

    def collect_assets(self, temp_dir: Path) -> List[Path]:
        """
        Top-level prefabs of the temp directory the asset index knows

        Raises:
            PackagingError: If no prefab can be packaged
        """
        temp_dir = Path(temp_dir)
        prefab_files = sorted(p for p in temp_dir.glob(f"*{PREFAB_EXTENSION}") if p.is_file())
        if not prefab_files:
            raise PackagingError("No avatar prefab found to bundle.")

        valid = []
        for path in prefab_files:
            if not path.exists():
                logger.warning(f"[Packager] Asset file does not exist: {path}")
                continue
            if self.asset_index.guid_for(path) is None:
                logger.warning(f"[Packager] Asset is not indexed (no GUID): {path}")
                continue
            valid.append(path)

        if not valid:
            raise PackagingError("No valid asset files found for bundling.")
        return valid

    def create_bundle_build(self, assets: List[Path], temp_dir: Path, bundle_name: str) -> BundleBuild:
        """Bundle record with the main prefab addressable as "Avatar" """
        if not bundle_name:
            raise PackagingError("Bundle name is null or empty.")

        temp_dir = Path(temp_dir).resolve()
        entries = []
        for path in assets:
            path = Path(path).resolve()
            if path.suffix == PREFAB_EXTENSION and path.parent == temp_dir:
                addressable = MAIN_ADDRESSABLE_NAME
            else:
                addressable = path.stem
            entries.append(BundleAsset(path=path, guid=self.asset_index.guid_for(path), addressable_name=addressable))

        logger.info(f"[Packager] Created bundle build: {bundle_name} with {len(entries)} asset(s)")
        return BundleBuild(bundle_name=bundle_name, assets=entries)

    def build_bundle(self, output_dir: Path, bundle: BundleBuild, platform: Platform) -> Path:
        """
        Try each backend in order

        Returns:
            Path of the written bundle

        Raises:
            PackagingError: If every backend failed
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        options = BundleOptions(force_rebuild=True, strict_mode=True, compression_level=COMPRESSION_LEVEL)

        for backend in self.backends.backends:
            logger.info(f"[Packager] Attempting bundle build with '{backend.name}' backend...")
            try:
                manifest = backend.build(output_dir, bundle, options, platform)
            except Exception as e:
                logger.warning(f"[Packager] Backend '{backend.name}' failed: {e}")
                continue
            if manifest is None:
                logger.warning(f"[Packager] Backend '{backend.name}' produced no manifest")
                continue
            logger.info(f"[Packager] Bundle build completed with '{backend.name}' backend")
            return output_dir / bundle.bundle_name

        contents = sorted(p.name for p in output_dir.iterdir()) if output_dir.exists() else []
        listing = "\n".join(f"  - {name}" for name in contents) or "  (empty)"
        logger.error(f"[Packager] All bundle backends failed. Output path contents:\n{listing}")
        raise PackagingError(
            f"Failed to build avatar bundle. Every backend failed.\nOutput path contents:\n{listing}"
        )

    def package(
        self,
        subject: Node,
        temp_dir: Path,
        output_dir: Path,
        filename: str,
        platform: Platform,
        progress: Optional[ProgressReporter] = None
    ) -> Path:
        """
        Serialize the avatar and bundle it

        Args:
            subject: Sanitized avatar root
            temp_dir: Scratch directory of this build
            output_dir: Directory receiving the bundle
            filename: Bundle filename
            platform: Target platform
            progress: Optional progress reporter

        Returns:
            output_dir / filename

        Raises:
            PackagingError: If any packaging step fails
        """
        if not filename:
            raise PackagingError("Filename is null or empty.")

        self.write_prefab(subject, temp_dir)
        return self.bundle(temp_dir, output_dir, filename, platform, progress)

    def bundle(
        self,
        temp_dir: Path,
        output_dir: Path,
        filename: str,
        platform: Platform,
        progress: Optional[ProgressReporter] = None
    ) -> Path:
        """Bundle the prefabs already written to temp_dir"""
        progress = progress or ProgressReporter()
        if not filename:
            raise PackagingError("Filename is null or empty.")

        progress.report(0.82, "Collecting avatar prefab...")
        assets = self.collect_assets(temp_dir)

        progress.report(0.84, "Preparing bundle build...")
        bundle = self.create_bundle_build(assets, temp_dir, filename)

        progress.report(0.86, "Creating output directory...")
        Path(output_dir).mkdir(parents=True, exist_ok=True)

        progress.report(0.88, "Building avatar bundle (this may take a while)...")
        output = self.build_bundle(output_dir, bundle, platform)

        progress.report(0.92, "Finalizing avatar bundle...")
        logger.info(f"[Packager] Avatar bundle '{filename}' built successfully at: {output}")
        return output


__all__ = ["Packager"]
