"""
Notification Service

Queue-backed notification consumer with interchangeable Redis and SQS transports,
strict message validation, and trace correlation across the publish/consume boundary.
"""

__version__ = "1.0.0"
