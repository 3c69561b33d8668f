"""Shutdown coordination for uploads that outlive their request."""

import asyncio
import signal

import logfire

shutdown_event = asyncio.Event()

_pending_tasks: set[asyncio.Task] = set()

# Seconds to wait for tracked uploads before cancelling them
GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS = 30.0


def track_background_task(task: asyncio.Task) -> None:
    """
    Keep a task alive until it finishes or the app shuts down.

    Example:
        task = asyncio.create_task(upload_products(...))
        track_background_task(task)
    """
    _pending_tasks.add(task)
    task.add_done_callback(_pending_tasks.discard)


def pending_task_count() -> int:
    return len(_pending_tasks)


def is_shutting_down() -> bool:
    return shutdown_event.is_set()


def install_signal_handlers(loop: asyncio.AbstractEventLoop) -> bool:
    """Set ``shutdown_event`` on SIGTERM/SIGINT.

    Returns False where the loop cannot take signal handlers (Windows, or a
    loop outside the main thread such as the one TestClient runs).
    """

    def on_signal(sig: signal.Signals) -> None:
        logfire.info(
            "Shutdown signal received",
            signal=sig.name,
            pending_tasks=pending_task_count(),
        )
        shutdown_event.set()

    try:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, on_signal, sig)
    except (NotImplementedError, RuntimeError):
        logfire.warn("Signal handlers unavailable; relying on lifespan shutdown")
        return False
    return True


async def drain_pending_tasks(
    timeout: float = GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS,
) -> None:
    """Wait for tracked tasks, cancelling whatever is still running at the timeout."""
    if not _pending_tasks:
        logfire.info("No uploads in flight at shutdown")
        return

    logfire.info(
        "Waiting for in-flight uploads",
        task_count=len(_pending_tasks),
        timeout_seconds=timeout,
    )
    done, pending = await asyncio.wait(set(_pending_tasks), timeout=timeout)

    if pending:
        logfire.warn(
            "Cancelling uploads still running after timeout",
            completed_count=len(done),
            cancelled_count=len(pending),
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
    else:
        logfire.info("In-flight uploads finished", completed_count=len(done))
