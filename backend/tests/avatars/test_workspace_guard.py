"""
Tests for the Workspace Guard

Restoring a snapshot re-establishes which documents are open and how;
document content is left as it is.
"""
import pytest
import tempfile
import shutil
from pathlib import Path

from avatars.core.errors import WorkspaceError
from avatars.core.workspace_guard import WorkspaceGuard
from avatars.scene import Node
from avatars.schemas import BuildResultType
from doubles import Project


class TestSnapshotRestore:
    """Test suite for snapshot and restore"""

    @pytest.fixture
    def temp_dir(self):
        """Create temporary directory"""
        temp = Path(tempfile.mkdtemp())
        yield temp
        if temp.exists():
            shutil.rmtree(temp)

    @pytest.fixture
    def project(self, temp_dir):
        return Project(temp_dir)

    @pytest.fixture
    def guard(self, project):
        return WorkspaceGuard(project.workspace)

    def test_restore_reopens_closed_document(self, project, guard):
        """Test a document closed during the run comes back as the same object"""
        props = project.open_second_document()
        snapshot = guard.snapshot()

        project.workspace.close(props)
        assert props not in project.workspace.documents

        guard.restore(snapshot)
        assert project.workspace.get_setup() == snapshot.documents
        assert any(doc is props for doc in project.workspace.documents)

    def test_restore_closes_document_opened_during_run(self, project, guard):
        """Test documents opened after the snapshot are closed again"""
        snapshot = guard.snapshot()
        extra = project.workspace.new_document("Scratch")

        guard.restore(snapshot)
        assert not project.workspace.is_open(extra)
        assert project.workspace.get_setup() == snapshot.documents

    def test_restore_order_active_and_loaded(self, project, guard):
        """Test order, active document and loaded flags are restored"""
        props = project.open_second_document()
        project.workspace.set_loaded(props, False)
        snapshot = guard.snapshot()

        project.workspace.open(props, additive=False)
        project.workspace.set_active(props)

        guard.restore(snapshot)
        assert project.workspace.get_setup() == snapshot.documents
        assert project.workspace.active_document is project.document
        assert not project.workspace.is_loaded(props)

    def test_restore_keeps_content_edits(self, project, guard):
        """Test in-place content edits survive a restore"""
        snapshot = guard.snapshot()
        project.avatar.add_child(Node("Hat"))

        guard.restore(snapshot)
        assert project.avatar.find("Hat") is not None

    def test_only_one_snapshot(self, guard):
        """Test a second snapshot is refused while one is held"""
        guard.snapshot()
        with pytest.raises(WorkspaceError):
            guard.snapshot()

    def test_discard_releases(self, guard):
        """Test discarding frees the guard for the next run"""
        snapshot = guard.snapshot()
        guard.discard(snapshot)
        assert not guard.has_snapshot
        guard.snapshot()

    def test_restore_releases_even_on_failure(self, project, guard):
        """Test a failing restore still frees the snapshot"""
        snapshot = guard.snapshot()

        def broken(setup):
            raise RuntimeError("window manager gone")

        project.workspace.restore_setup = broken
        with pytest.raises(RuntimeError):
            guard.restore(snapshot)
        assert not guard.has_snapshot


class TestTempDirectory:
    """Test suite for temp directory preparation"""

    @pytest.fixture
    def temp_dir(self):
        """Create temporary directory"""
        temp = Path(tempfile.mkdtemp())
        yield temp
        if temp.exists():
            shutil.rmtree(temp)

    @pytest.fixture
    def guard(self, temp_dir):
        return WorkspaceGuard(Project(temp_dir).workspace)

    def test_creates_directory(self, guard, temp_dir):
        """Test a missing directory is created"""
        path = guard.prepare_temp_directory(temp_dir / "Temp" / "abc")
        assert path.is_dir()

    def test_stale_directory_is_wiped(self, guard, temp_dir):
        """Test leftovers of a stale run are removed"""
        stale = temp_dir / "Temp" / "abc"
        (stale / "nested").mkdir(parents=True)
        (stale / "nested" / "old.prefab").write_text("{}")

        guard.prepare_temp_directory(stale)
        assert stale.is_dir()
        assert list(stale.iterdir()) == []

    def test_delete_failure_is_not_masked(self, guard, temp_dir, monkeypatch):
        """Test a failed delete is a hard failure"""
        stale = temp_dir / "Temp" / "abc"
        stale.mkdir(parents=True)

        def refuse(path):
            raise PermissionError("in use")

        monkeypatch.setattr(shutil, "rmtree", refuse)
        with pytest.raises(WorkspaceError) as exc_info:
            guard.prepare_temp_directory(stale)
        assert exc_info.value.result_type == BuildResultType.FAILED
        assert "in use" in str(exc_info.value)


class TestPersist:
    """Test suite for persistence"""

    @pytest.fixture
    def temp_dir(self):
        """Create temporary directory"""
        temp = Path(tempfile.mkdtemp())
        yield temp
        if temp.exists():
            shutil.rmtree(temp)

    def test_persist_saves_and_indexes(self, temp_dir):
        """Test open documents are written and indexed"""
        project = Project(temp_dir)
        project.avatar.add_child(Node("Hat"))
        guard = WorkspaceGuard(project.workspace)

        guard.persist()
        assert "Hat" in project.document.path.read_text()
        assert project.workspace.asset_index.guid_for(project.document.path) is not None

    def test_persist_failure(self, temp_dir):
        """Test an unsaveable document fails persistence"""
        project = Project(temp_dir)
        project.workspace.new_document("Untitled")
        guard = WorkspaceGuard(project.workspace)

        with pytest.raises(WorkspaceError) as exc_info:
            guard.persist("before building")
        assert "before building" in str(exc_info.value)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
