"""Fire-and-forget side effects whose failure must never reach the caller."""
import logging
from typing import Any, Callable, Protocol

best_effort_logger = logging.getLogger("memberauth.best_effort")


class TaskQueue(Protocol):
    """Anything with FastAPI ``BackgroundTasks.add_task`` semantics."""

    def add_task(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None: ...


def run_best_effort(description: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    try:
        func(*args, **kwargs)
    except Exception:
        best_effort_logger.exception("Best-effort task failed: %s", description)


def schedule_best_effort(tasks: TaskQueue, description: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    """Queue ``func`` to run after the response; its errors go to the best-effort log only."""
    tasks.add_task(run_best_effort, description, func, *args, **kwargs)
