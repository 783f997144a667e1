"""
Tests for the Packager and bundle backends

The avatar is written as a prefab, indexed, and bundled by the first
backend that produces a manifest.
"""
import json
import tarfile
import warnings
import zipfile
import pytest
import tempfile
import shutil
from pathlib import Path

from avatars.backends import (
    BackendRegistry,
    BundleBackend,
    BundleWarning,
    TarBundleBackend,
    ZipBundleBackend,
    create_backend_registry,
)
from avatars.core.errors import PackagingError
from avatars.core.packager import Packager
from avatars.core.progress import ProgressReporter
from avatars.scene import Component, MissingComponent, Node
from avatars.schemas import BundleAsset, BundleBuild, BundleOptions, Platform
from doubles import Project


class BrokenBackend(BundleBackend):
    """Backend that always raises"""

    name = "broken"

    def build(self, output_dir, bundle, options, platform):
        raise RuntimeError("backend crashed")

    def write_archive(self, path, manifest, entries, options):
        pass


class EmptyBackend(BundleBackend):
    """Backend that never produces a manifest"""

    name = "empty"

    def build(self, output_dir, bundle, options, platform):
        return None

    def write_archive(self, path, manifest, entries, options):
        pass


@pytest.fixture
def temp_dir():
    """Create temporary directory"""
    temp = Path(tempfile.mkdtemp())
    yield temp
    if temp.exists():
        shutil.rmtree(temp)


@pytest.fixture
def project(temp_dir):
    project = Project(temp_dir)
    project.avatar.add_component(Component())
    project.avatar.add_child(Node("Body"))
    return project


@pytest.fixture
def scratch(project):
    path = project.root / "Temp" / "0123456789abcdef0123456789abcdef"
    path.mkdir(parents=True)
    return path


def make_packager(project, *backends):
    registry = None
    if backends:
        registry = BackendRegistry()
        for backend in backends:
            registry.register(backend)
    return Packager(project.workspace.asset_index, backends=registry)


class TestWritePrefab:
    """Test suite for prefab serialization"""

    def test_prefab_written_and_indexed(self, project, scratch):
        """Test the avatar is serialized as Avatar.prefab and gets a GUID"""
        packager = make_packager(project)
        path = packager.write_prefab(project.avatar, scratch)

        assert path == scratch / "Avatar.prefab"
        data = json.loads(path.read_text())
        assert data["name"] == "Avatar"
        assert data["children"][0]["name"] == "Body"
        assert project.workspace.asset_index.guid_for(path) is not None

    def test_final_guard_runs_before_serialization(self, project, scratch):
        """Test tombstones added late never reach the prefab"""
        project.avatar.add_component(MissingComponent("LateArrival"))
        path = make_packager(project).write_prefab(project.avatar, scratch)
        assert "LateArrival" not in path.read_text()

    def test_unwritable_directory(self, project, scratch, monkeypatch):
        """Test a failing probe write is a packaging failure"""
        def refuse(self, *args, **kwargs):
            raise PermissionError("read-only")

        monkeypatch.setattr(Path, "write_text", refuse)
        with pytest.raises(PackagingError) as exc_info:
            make_packager(project).write_prefab(project.avatar, scratch)
        assert "Cannot write to temporary directory" in str(exc_info.value)


class TestCollectAssets:
    """Test suite for asset collection"""

    def test_no_prefab(self, project, scratch):
        """Test an empty temp directory fails"""
        with pytest.raises(PackagingError) as exc_info:
            make_packager(project).collect_assets(scratch)
        assert "No avatar prefab found" in str(exc_info.value)

    def test_unindexed_prefab_rejected(self, project, scratch):
        """Test a prefab the index has never seen is not packaged"""
        (scratch / "Avatar.prefab").write_text("{}")
        with pytest.raises(PackagingError) as exc_info:
            make_packager(project).collect_assets(scratch)
        assert "No valid asset files" in str(exc_info.value)

    def test_outside_project_rejected(self, project, temp_dir):
        """Test prefabs outside the project root have no identity"""
        outside = Path(tempfile.mkdtemp())
        try:
            (outside / "Avatar.prefab").write_text("{}")
            with pytest.raises(PackagingError):
                make_packager(project).collect_assets(outside)
        finally:
            shutil.rmtree(outside)

    def test_main_prefab_addressed_as_avatar(self, project, scratch):
        """Test the stable addressable name of the main prefab"""
        packager = make_packager(project)
        packager.write_prefab(project.avatar, scratch)
        shared = project.root / "Props" / "Hat.prefab"
        shared.parent.mkdir()
        shared.write_text("{}")
        project.workspace.asset_index.refresh()

        assets = packager.collect_assets(scratch) + [shared]
        bundle = packager.create_bundle_build(assets, scratch, "out.noxw")
        assert [asset.addressable_name for asset in bundle.assets] == ["Avatar", "Hat"]
        assert all(asset.guid for asset in bundle.assets)


class TestBuildBundle:
    """Test suite for backend fallback"""

    def prepare(self, project, scratch, packager):
        packager.write_prefab(project.avatar, scratch)
        return packager.create_bundle_build(packager.collect_assets(scratch), scratch, "avatar.noxw")

    def test_default_order(self):
        """Test zip is tried before tar"""
        assert create_backend_registry().list_backends() == ["zip", "tar"]

    def test_zip_bundle_layout(self, project, scratch):
        """Test the bundle holds the manifest and the prefab"""
        packager = make_packager(project)
        bundle = self.prepare(project, scratch, packager)
        output = packager.build_bundle(project.root / "Builds", bundle, Platform.WINDOWS)

        assert output == project.root / "Builds" / "avatar.noxw"
        with zipfile.ZipFile(output) as archive:
            assert set(archive.namelist()) == {"manifest.json", "assets/Avatar.prefab"}
            manifest = json.loads(archive.read("manifest.json"))
        assert manifest["backend"] == "zip"
        assert manifest["platform"] == "windows"
        assert set(manifest["assets"]["Avatar"]) == {"guid", "entry", "sha256"}
        assert not (project.root / "Builds" / ".avatar.noxw.tmp").exists()

    def test_fallback_after_exception(self, project, scratch):
        """Test a raising backend hands over to the next"""
        packager = make_packager(project, BrokenBackend(), TarBundleBackend())
        bundle = self.prepare(project, scratch, packager)
        output = packager.build_bundle(project.root / "Builds", bundle, Platform.LINUX)

        with tarfile.open(output, "r:xz") as archive:
            assert "assets/Avatar.prefab" in archive.getnames()

    def test_fallback_after_none(self, project, scratch):
        """Test a backend returning no manifest hands over to the next"""
        packager = make_packager(project, EmptyBackend(), ZipBundleBackend())
        bundle = self.prepare(project, scratch, packager)
        assert zipfile.is_zipfile(packager.build_bundle(project.root / "Builds", bundle, Platform.LINUX))

    def test_every_backend_fails(self, project, scratch):
        """Test the failure lists the output directory"""
        builds = project.root / "Builds"
        builds.mkdir()
        (builds / "older.noxw").write_text("x")

        packager = make_packager(project, BrokenBackend(), EmptyBackend())
        bundle = self.prepare(project, scratch, packager)
        with pytest.raises(PackagingError) as exc_info:
            packager.build_bundle(builds, bundle, Platform.LINUX)
        assert "older.noxw" in str(exc_info.value)

    def test_package_reports_sub_steps(self, project, scratch):
        """Test packaging reports its sub-steps in order"""
        values = []
        progress = ProgressReporter([lambda value, status: values.append(value)])
        output = make_packager(project).package(
            project.avatar, scratch, project.root / "Builds", "avatar.noxw", Platform.WINDOWS, progress
        )
        assert output.exists()
        assert values == pytest.approx([0.82, 0.84, 0.86, 0.88, 0.92])

    def test_package_without_filename(self, project, scratch):
        """Test an empty filename is refused"""
        with pytest.raises(PackagingError):
            make_packager(project).package(project.avatar, scratch, project.root / "Builds", "", Platform.WINDOWS)


class TestBackendOptions:
    """Test suite for backend options"""

    @pytest.fixture
    def prefab(self, temp_dir):
        path = temp_dir / "Avatar.prefab"
        path.write_text("{}")
        return path

    def test_force_rebuild_replaces_stale_bundle(self, temp_dir, prefab):
        """Test a stale bundle is not reused"""
        (temp_dir / "out.noxw").write_text("stale")
        bundle = BundleBuild(bundle_name="out.noxw", assets=[BundleAsset(path=prefab, guid="g", addressable_name="Avatar")])

        ZipBundleBackend().build(temp_dir, bundle, BundleOptions(), Platform.WINDOWS)
        assert zipfile.is_zipfile(temp_dir / "out.noxw")

    def test_strict_mode_escalates_warnings(self, temp_dir, prefab):
        """Test a missing asset is fatal in strict mode"""
        bundle = BundleBuild(bundle_name="out.noxw", assets=[
            BundleAsset(path=prefab, guid="g", addressable_name="Avatar"),
            BundleAsset(path=temp_dir / "gone.prefab", guid="h", addressable_name="Gone"),
        ])
        with pytest.raises(BundleWarning):
            ZipBundleBackend().build(temp_dir, bundle, BundleOptions(strict_mode=True), Platform.WINDOWS)
        assert not (temp_dir / "out.noxw").exists()

    def test_lenient_mode_skips_bad_assets(self, temp_dir, prefab):
        """Test duplicates are skipped with a warning outside strict mode"""
        bundle = BundleBuild(bundle_name="out.noxw", assets=[
            BundleAsset(path=prefab, guid="g", addressable_name="Avatar"),
            BundleAsset(path=prefab, guid="g", addressable_name="Avatar"),
        ])
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            manifest = TarBundleBackend().build(temp_dir, bundle, BundleOptions(strict_mode=False), Platform.LINUX)
        assert list(manifest.assets) == ["Avatar"]
        assert any(issubclass(w.category, BundleWarning) for w in caught)

    def test_empty_bundle_name(self, temp_dir, prefab):
        """Test an empty bundle name is fatal in strict mode"""
        bundle = BundleBuild(bundle_name="", assets=[BundleAsset(path=prefab, guid="g", addressable_name="Avatar")])
        with pytest.raises(BundleWarning):
            ZipBundleBackend().build(temp_dir, bundle, BundleOptions(), Platform.WINDOWS)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
