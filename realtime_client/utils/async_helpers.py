"""
Async utility functions for the realtime socket client.

This module provides helpers for working with asyncio,
including task tracking, cancellation, and timeouts.
"""

import asyncio
from typing import Any, Coroutine, Optional, Set, TypeVar

from realtime_client.config.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class TaskManager:
    """
    Manager for tracking and cleaning up async tasks.

    This class helps track running tasks and provides methods to
    safely cancel them when they're no longer needed.
    """

    def __init__(self, name: str = "default"):
        """
        Initialize the task manager.

        Args:
            name: Name for this task manager (for logging)
        """
        self.name = name
        self.tasks: Set[asyncio.Task] = set()
        logger.debug(f"TaskManager '{name}' initialized")

    def create_task(self, coro: Coroutine, name: Optional[str] = None) -> asyncio.Task:
        """
        Create and track a new asyncio task.

        Args:
            coro: Coroutine to run as a task
            name: Optional name for the task

        Returns:
            asyncio.Task: The created task
        """
        # Create the task and track its completion
        task = asyncio.create_task(coro, name=name)
        task.add_done_callback(self._task_done_callback)
        self.tasks.add(task)
        logger.debug(f"Task {name or id(task)} created")

        return task

    def _task_done_callback(self, task: asyncio.Task) -> None:
        """
        Callback for when a task is completed.

        Args:
            task: The completed task
        """
        # Remove from tracked tasks
        self.tasks.discard(task)

        # Surface exceptions that nobody awaited
        if not task.cancelled():
            exception = task.exception()
            if exception:
                logger.error(f"Task {task.get_name()} raised an exception: {exception}")

    def cancel(self, task: Optional[asyncio.Task]) -> None:
        """
        Cancel a single tracked task unless it is the one currently running.

        Args:
            task: The task to cancel, or None
        """
        if task is None or task.done():
            return
        # Leave the running task alone
        if task is asyncio.current_task():
            return
        logger.debug(f"Cancelling task {task.get_name()}")
        task.cancel()

    async def cancel_all(self, wait: bool = True, timeout: Optional[float] = 5.0) -> None:
        """
        Cancel all tracked tasks.

        Args:
            wait: Whether to wait for tasks to complete
            timeout: Timeout in seconds if waiting, or None for no timeout
        """
        # Never cancel the caller
        current = asyncio.current_task()
        pending_tasks = [t for t in self.tasks if t is not current]
        if not pending_tasks:
            return

        # Cancel all tasks
        for task in pending_tasks:
            self.cancel(task)

        # Wait for tasks to complete if requested
        if wait:
            done, pending = await asyncio.wait(
                pending_tasks,
                timeout=timeout,
                return_when=asyncio.ALL_COMPLETED
            )

            if pending:
                pending_names = [t.get_name() for t in pending]
                logger.warning(f"Some tasks didn't complete within timeout: {pending_names}")


async def run_with_timeout(
    coro: Coroutine[Any, Any, T],
    timeout: float,
    timeout_message: str = "Operation timed out"
) -> T:
    """
    Run a coroutine with a timeout.

    Args:
        coro: Coroutine to run
        timeout: Timeout in seconds
        timeout_message: Message logged on timeout

    Returns:
        T: Result of the coroutine

    Raises:
        asyncio.TimeoutError: If the operation times out
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Operation timed out after {timeout}s: {timeout_message}")
        raise


async def wait_for_event(event: asyncio.Event, timeout: Optional[float] = None) -> bool:
    """
    Wait for an event with timeout.

    Args:
        event: Event to wait for
        timeout: Timeout in seconds or None for no timeout

    Returns:
        bool: True if event was set, False if timeout occurred
    """
    if timeout is None:
        await event.wait()
        return True

    try:
        await asyncio.wait_for(event.wait(), timeout=timeout)
        return True
    except asyncio.TimeoutError:
        return False
