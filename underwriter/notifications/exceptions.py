class NotificationError(Exception):
    """Raised when an email cannot be handed to the delivery provider."""

    error_code = "PROCESSING_ERROR"
