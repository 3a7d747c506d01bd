"""Exception taxonomy for the consultation session core.

Failures local to one participant or one channel (unknown identities,
failed sends, failed generations) are caught and logged at the batch
boundary. Only precondition failures reach the orchestrator's caller.
"""


class ConsultationError(Exception):
    """Base class for all consultation session errors."""


class UnknownParticipantError(ConsultationError):
    """An operation referenced an identity that is not registered."""

    def __init__(self, identity: str) -> None:
        super().__init__(f"Unknown participant: {identity}")
        self.identity = identity


class TransportUnavailableError(ConsultationError):
    """The transport session is not connected at initialization time."""


class DeliveryFailure(ConsultationError):
    """A channel send could not be delivered by the transport."""


class GenerationFailure(ConsultationError):
    """The language model failed to produce a tip."""


class SessionStateError(ConsultationError):
    """An operation was called in a lifecycle state that does not allow it."""
