"""Autosave timing policy for a note editing session."""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class AutosaveState(str, Enum):
    """Where the policy is between an edit and the next save."""

    IDLE = "idle"  # Nothing to save
    PENDING_DEBOUNCE = "pending_debounce"  # Dirty, waiting for input to go quiet
    PENDING_FORCE = "pending_force"  # Dirty, force ceiling fires before the debounce would
    FLUSHING = "flushing"  # Save in flight


class AutosavePolicy:
    """Decides when a dirty working copy must be flushed.

    Two timers drive automatic saves: a debounce timer re-armed on every edit,
    and a force-save ceiling armed by the first edit of a dirty period and
    never reset by later edits, so continuous typing is still saved at least
    once per ``force_interval``. The ceiling repeats while the note stays
    dirty. Requests that arrive while a flush is in flight are dropped.

    The policy never performs I/O itself: it calls ``trigger(immediate)`` and
    expects the owner to report back through :meth:`flush_started`,
    :meth:`flush_succeeded` and :meth:`flush_failed`.

    ``scheduler`` needs ``call_later(delay, callback)`` returning a handle with
    ``cancel()``, and ``time()``; the running asyncio loop is used by default.
    """

    def __init__(
        self,
        trigger: Callable[[bool], None],
        delay: float = 2.0,
        force_interval: float = 30.0,
        scheduler: Optional[Any] = None,
    ):
        """Initialize the policy.

        Args:
            trigger: Called with ``immediate`` to request a flush
            delay: Debounce delay in seconds
            force_interval: Force-save ceiling in seconds
            scheduler: Timer source (default: the running asyncio loop)
        """
        self.trigger = trigger
        self.delay = delay
        self.force_interval = force_interval
        self._scheduler = scheduler
        self._debounce_handle: Any = None
        self._force_handle: Any = None
        self._force_deadline: Optional[float] = None
        self._dirty = False
        self._flushing = False
        self._closed = False

    @property
    def scheduler(self) -> Any:
        """Lazy-load the scheduler from the running event loop."""
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        return self._scheduler

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def flushing(self) -> bool:
        return self._flushing

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def state(self) -> AutosaveState:
        if self._flushing:
            return AutosaveState.FLUSHING
        if not self._dirty:
            return AutosaveState.IDLE
        if (
            self._force_deadline is not None
            and self._debounce_handle is not None
            and self._force_deadline - self.scheduler.time() <= self.delay
        ):
            return AutosaveState.PENDING_FORCE
        return AutosaveState.PENDING_DEBOUNCE

    # ==================== Events ====================

    def record_edit(self) -> None:
        """Mark the working copy dirty and (re)arm the timers."""
        if self._closed:
            return
        self._dirty = True
        self._arm_debounce()
        self._ensure_force()

    def request_save(self) -> bool:
        """Collapse pending timers ahead of an explicit save.

        Returns:
            True if a flush may start now, False if one is already in flight
        """
        if self._closed:
            return False
        self._cancel_debounce()
        return not self._flushing

    def page_exit(self) -> bool:
        """Handle the page being closed.

        Starts a best-effort immediate flush when dirty.

        Returns:
            True if the user must be warned about unsaved work
        """
        if self._closed or not self._dirty:
            return False
        self._cancel_debounce()
        if not self._flushing:
            self.trigger(True)
        return True

    def flush_started(self) -> None:
        self._flushing = True
        self._cancel_debounce()

    def flush_succeeded(self, still_dirty: bool = False) -> None:
        """Record a successful save.

        Args:
            still_dirty: True if edits arrived while the save was in flight
        """
        self._flushing = False
        if self._closed:
            return
        if still_dirty:
            self._arm_debounce()
            self._ensure_force()
            return
        self._dirty = False
        self._cancel_debounce()
        self._cancel_force()

    def flush_failed(self) -> None:
        """Record a failed save; the next edit or force tick retries."""
        self._flushing = False
        if self._closed:
            return
        self._dirty = True
        self._ensure_force()

    def reset(self) -> None:
        """Drop the dirty state and all timers, e.g. after discarding edits."""
        self._dirty = False
        self._cancel_debounce()
        self._cancel_force()

    def close(self) -> None:
        """Cancel all timers for good; the policy ignores later events."""
        self._closed = True
        self._cancel_debounce()
        self._cancel_force()

    # ==================== Timers ====================

    def _arm_debounce(self) -> None:
        self._cancel_debounce()
        self._debounce_handle = self.scheduler.call_later(self.delay, self._on_debounce)

    def _ensure_force(self) -> None:
        if self._force_handle is not None:
            return
        self._force_deadline = self.scheduler.time() + self.force_interval
        self._force_handle = self.scheduler.call_later(self.force_interval, self._on_force)
        logger.debug("Force-save ceiling armed for %.1fs", self.force_interval)

    def _cancel_debounce(self) -> None:
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _cancel_force(self) -> None:
        if self._force_handle is not None:
            self._force_handle.cancel()
            self._force_handle = None
        self._force_deadline = None

    def _on_debounce(self) -> None:
        self._debounce_handle = None
        if self._closed or not self._dirty or self._flushing:
            return
        logger.debug("Debounce elapsed, requesting flush")
        self.trigger(False)

    def _on_force(self) -> None:
        self._force_handle = None
        self._force_deadline = None
        if self._closed or not self._dirty:
            return
        # Repeats like an interval for as long as the note stays dirty
        self._ensure_force()
        if self._flushing:
            return
        logger.debug("Force-save ceiling reached, requesting flush")
        self.trigger(False)
