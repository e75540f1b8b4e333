"""
Notification worker.
Consumes the configured queue transport and processes notifications.
"""

from notifier.worker.main import NotificationWorker, run

__all__ = ["NotificationWorker", "run"]
