"""Exceptions raised by the live query client."""


class LiveQueryError(Exception):
    """Base exception for live query failures."""
    pass


class ConfigurationError(LiveQueryError):
    """Raised when a query descriptor combines incompatible operations."""
    pass


class StopBeforeExecutionError(LiveQueryError):
    """Raised when stop() is called on a live query that never executed."""
    pass


class UnknownSubscriptionError(LiveQueryError):
    """A push event referenced a subscription id with no local live query.

    Never raised to callers; attached to the warning record of the dropped event.
    """

    def __init__(self, model_name: str, lq_id):
        self.model_name = model_name
        self.lq_id = lq_id
        super().__init__(f"Unknown live query {lq_id} on model '{model_name}'")
