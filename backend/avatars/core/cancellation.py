"""
Cooperative cancellation for builds

Stages poll the token between units of work; nothing is interrupted
mid-step.
"""
import threading

from avatars.core.errors import BuildCancelledError


class CancellationToken:
    """Flag shared between a build and whoever may cancel it"""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            BuildCancelledError: If cancel() has been called
        """
        if self._event.is_set():
            raise BuildCancelledError()


__all__ = ["CancellationToken"]
