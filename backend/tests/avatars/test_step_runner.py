"""
Tests for the Step Runner

Compile steps run one at a time in compile_order and stop at the first
failure. Removal steps all run, with failures collected.
"""
import pytest
import tempfile
import shutil
from pathlib import Path

from avatars.core.cancellation import CancellationToken
from avatars.core.errors import BuildCancelledError, StepExecutionError, WorkspaceError
from avatars.core.progress import ProgressReporter
from avatars.core.step_runner import StepRunner, discover_compile_steps, discover_removal_steps
from avatars.core.workspace_guard import WorkspaceGuard
from avatars.scene import Node
from doubles import CancellingStep, ExplodingStep, Project, RecordingStep, ScaffoldStep

pytestmark = pytest.mark.asyncio


@pytest.fixture
def temp_dir():
    """Create temporary directory"""
    temp = Path(tempfile.mkdtemp())
    yield temp
    if temp.exists():
        shutil.rmtree(temp)


@pytest.fixture
def project(temp_dir):
    return Project(temp_dir)


@pytest.fixture
def runner(project):
    return StepRunner(WorkspaceGuard(project.workspace))


class TestDiscovery:
    """Test suite for step discovery"""

    async def test_sorted_by_compile_order(self, project):
        """Test steps are ordered ascending by priority"""
        log = []
        for order in (3, 1, 2):
            project.avatar.add_component(RecordingStep(order, log))
        steps = discover_compile_steps(project.avatar)
        assert [s.compile_order for s in steps] == [1, 2, 3]

    async def test_equal_priorities_keep_graph_order(self, project):
        """Test the sort is stable"""
        first = project.avatar.add_component(RecordingStep(5))
        child = project.avatar.add_child(Node("Child"))
        second = child.add_component(RecordingStep(5))
        assert discover_compile_steps(project.avatar) == [first, second]

    async def test_inactive_nodes_included(self, project):
        """Test steps on inactive children are found"""
        hidden = project.avatar.add_child(Node("Hidden", active=False))
        step = hidden.add_component(ScaffoldStep())
        assert discover_removal_steps(project.avatar) == [step]

    async def test_steps_outside_subject_ignored(self, project):
        """Test only the subject's tree is searched"""
        other = project.document.add_root(Node("Other"))
        other.add_component(RecordingStep(1))
        assert discover_compile_steps(project.avatar) == []


class TestCompilePass:
    """Test suite for compile steps"""

    async def test_runs_in_priority_order(self, project, runner):
        """Test [3, 1, 2] runs as [1, 2, 3]"""
        log = []
        for order in (3, 1, 2):
            project.avatar.add_component(RecordingStep(order, log))

        await runner.run(project.avatar)
        assert log == [1, 2, 3]

    async def test_failure_stops_later_steps(self, project, runner):
        """Test a failure at priority 2 prevents priority 3"""
        log = []
        project.avatar.add_component(RecordingStep(3, log))
        project.avatar.add_component(RecordingStep(1, log))
        project.avatar.add_component(RecordingStep(2, log, fail_sync=True))

        with pytest.raises(StepExecutionError) as exc_info:
            await runner.run(project.avatar)
        assert log == [1]
        assert "RecordingStep" in exc_info.value.message
        assert "sync failure at 2" in exc_info.value.message

    async def test_async_phase_failure(self, project, runner):
        """Test an exception from compile_async carries the step name"""
        project.avatar.add_component(ExplodingStep())
        with pytest.raises(StepExecutionError) as exc_info:
            await runner.run(project.avatar)
        assert "ExplodingStep" in str(exc_info.value)
        assert "bake exploded" in str(exc_info.value)

    async def test_both_phases_complete_before_next(self, project, runner):
        """Test each step finishes its async phase before the next starts"""
        log = []
        first = project.avatar.add_component(RecordingStep(1, log))
        project.avatar.add_component(RecordingStep(2, log))
        await runner.run(project.avatar)
        assert first.compiled

    async def test_progress_spread_over_steps(self, project, runner):
        """Test compile progress ends at 0.70"""
        for order in (1, 2):
            project.avatar.add_component(RecordingStep(order))
        values = []
        progress = ProgressReporter([lambda value, status: values.append(value)])

        await runner.run(project.avatar, progress=progress)
        assert values == pytest.approx([0.45, 0.70])

    async def test_cancellation_between_steps(self, project, runner):
        """Test a cancelled token stops the next step from running"""
        token = CancellationToken()
        log = []
        project.avatar.add_component(CancellingStep(token, order=1))
        project.avatar.add_component(RecordingStep(2, log))

        with pytest.raises(BuildCancelledError):
            await runner.run(project.avatar, token=token)
        assert log == []


class TestRemovalPass:
    """Test suite for remove-on-build steps"""

    async def test_steps_are_destroyed(self, project, runner):
        """Test removal hooks run and their components are gone"""
        step = project.avatar.add_component(ScaffoldStep())
        await runner.run(project.avatar)
        assert step.log == [step]
        assert step.is_destroyed
        assert step not in project.avatar.components

    async def test_self_detached_step_tolerated(self, project, runner):
        """Test a hook that destroys its own component is not an error"""
        step = project.avatar.add_component(ScaffoldStep(self_destroy=True))
        await runner.run(project.avatar)
        assert step.is_destroyed

    async def test_failures_collected(self, project, runner):
        """Test one broken step does not stop the others"""
        log = []
        broken = project.avatar.add_component(ScaffoldStep(log, fail=True))
        healthy = project.avatar.add_child(Node("Child")).add_component(ScaffoldStep(log))
        also_broken = project.avatar.add_child(Node("Other")).add_component(ScaffoldStep(log, fail=True))

        with pytest.raises(StepExecutionError) as exc_info:
            await runner.run(project.avatar)

        assert log == [broken, healthy, also_broken]
        assert healthy.is_destroyed
        message = exc_info.value.message
        assert message.startswith("Step removal failed:")
        assert message.count("scaffold is stuck") == 2

    async def test_removal_waits_for_compile(self, project, runner):
        """Test no removal hook runs when compilation fails"""
        project.avatar.add_component(ExplodingStep())
        step = project.avatar.add_component(ScaffoldStep())
        with pytest.raises(StepExecutionError):
            await runner.run(project.avatar)
        assert step.log == []


class TestPersistence:
    """Test suite for the persistence side effect"""

    async def test_workspace_saved_after_steps(self, project, runner):
        """Test the mutated graph is written to disk"""
        project.avatar.add_component(ScaffoldStep())
        await runner.run(project.avatar)
        assert "ScaffoldStep" not in project.document.path.read_text()

    async def test_persist_failure_raises(self, project, runner):
        """Test a failed save fails the stage"""
        project.workspace.new_document("Untitled")
        with pytest.raises(WorkspaceError) as exc_info:
            await runner.run(project.avatar)
        assert "after compilation" in str(exc_info.value)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
