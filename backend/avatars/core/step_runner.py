"""
Step Runner - Executes pluggable build steps found on the avatar

Responsibilities:
- Discover compile steps and remove-on-build steps under the subject
- Run compile steps one by one in compile_order
- Run every removal hook, collecting failures
- Persist the workspace once the graph has been mutated

Steps may depend on side effects of earlier ones, so nothing runs in
parallel.
"""
import asyncio
import logging
from typing import List, Optional

from avatars.scene import Compilable, RemoveOnBuild, Node
from avatars.core.cancellation import CancellationToken
from avatars.core.errors import StepExecutionError
from avatars.core.progress import ProgressReporter
from avatars.core.workspace_guard import WorkspaceGuard

logger = logging.getLogger(__name__)

COMPILE_PROGRESS_START = 0.2
COMPILE_PROGRESS_SPAN = 0.5


def discover_compile_steps(subject: Node) -> List[Compilable]:
    """Compile steps under the subject, inactive nodes included, in compile_order"""
    steps = subject.get_components_in_children(Compilable, include_inactive=True)
    # sorted() is stable, so equal priorities keep graph order
    return sorted(steps, key=lambda step: step.compile_order)


def discover_removal_steps(subject: Node) -> List[RemoveOnBuild]:
    """Remove-on-build steps under the subject, inactive nodes included"""
    return subject.get_components_in_children(RemoveOnBuild, include_inactive=True)


class StepRunner:
    """
    StepRunner - Runs compile and removal steps

    Args:
        guard: WorkspaceGuard used to persist after the steps ran
    """

    def __init__(self, guard: WorkspaceGuard):
        self.guard = guard

    async def run(
        self,
        subject: Node,
        token: Optional[CancellationToken] = None,
        progress: Optional[ProgressReporter] = None
    ) -> None:
        """
        Run every step of the subject

        Raises:
            StepExecutionError: If a compile step throws, or any removal hook failed
            BuildCancelledError: If the token is cancelled between steps
            WorkspaceError: If persisting afterwards fails
        """
        token = token or CancellationToken()
        progress = progress or ProgressReporter()

        await self.compile(subject, token, progress)
        self.remove_on_build(subject, token)

        self.guard.persist("after compilation")
        await asyncio.sleep(0)

    async def compile(self, subject: Node, token: CancellationToken, progress: ProgressReporter) -> int:
        """
        Run compile steps in order, stopping at the first failure

        Returns:
            Number of steps run
        """
        steps = discover_compile_steps(subject)
        if not steps:
            logger.info("[StepRunner] No compile steps found on the avatar")
            return 0

        total = len(steps)
        for index, step in enumerate(steps):
            token.raise_if_cancelled()
            name = type(step).__name__
            logger.info(f"[StepRunner] Compiling step: {name} (order: {step.compile_order})")
            try:
                step.compile()
                await step.compile_async()
            except Exception as e:
                logger.error(f"[StepRunner] Failed to compile step {name}: {e}")
                raise StepExecutionError(f"Failed to compile step {name}: {e}") from e

            progress.report(
                COMPILE_PROGRESS_START + COMPILE_PROGRESS_SPAN * (index + 1) / total,
                f"Compiled {name} ({index + 1}/{total})"
            )

        return total

    def remove_on_build(self, subject: Node, token: CancellationToken) -> int:
        """
        Call every removal hook, then destroy the step's component

        Every step is attempted before failures are reported. A step that
        already detached itself in its hook is fine.

        Returns:
            Number of steps removed
        """
        errors: List[str] = []
        removed = 0

        for step in discover_removal_steps(subject):
            token.raise_if_cancelled()
            name = type(step).__name__
            try:
                logger.info(f"[StepRunner] Removing step: {name}")
                step.on_remove_on_build()
                # The hook may have destroyed its own carrier
                if getattr(step, "node", None) is not None:
                    step.destroy()
                removed += 1
            except Exception as e:
                logger.exception(f"[StepRunner] Failed to remove step {name}")
                errors.append(f"Failed to remove step {name}: {e}")

        if errors:
            message = "\n".join(
                ["Step removal failed:"] + [f"\t{error}" for error in errors] + ["See log for details."]
            )
            raise StepExecutionError(message)

        return removed


__all__ = ["StepRunner", "discover_compile_steps", "discover_removal_steps"]
