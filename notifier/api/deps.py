"""
Shared route dependencies.
"""

from typing import Annotated

from fastapi import Depends, Request

from notifier.worker.main import NotificationWorker


def get_worker(request: Request) -> NotificationWorker | None:
    """Return the worker started by the app lifespan, if any."""
    return getattr(request.app.state, "worker", None)


CurrentWorker = Annotated[NotificationWorker | None, Depends(get_worker)]
