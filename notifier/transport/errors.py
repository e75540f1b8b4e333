"""
Exceptions raised by queue transports.

Malformed payloads are not exceptions: see ``notifier.transport.validation``.
"""


class QueueError(Exception):
    """Base class for notification queue errors."""


class ConfigurationError(QueueError):
    """Required transport configuration is missing or invalid. Fatal at startup."""


class TransportConnectionError(QueueError):
    """
    The backend could not be reached or rejected the request.

    Raised from ``connect`` and ``publish``. Inside ``consume`` it is logged
    and the loop backs off and retries.
    """

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class HandlerError(QueueError):
    """
    The caller-supplied handler raised while processing a message.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, message_type: str, order_id: int | float):
        self.message_type = message_type
        self.order_id = order_id
        super().__init__(f"Handler failed for {message_type} (order {order_id})")
