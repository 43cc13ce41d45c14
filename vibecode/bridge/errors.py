"""Bridge error taxonomy.

Each error carries a short wire ``code`` so the bridge can report it to the
offending connection in an ``error`` message.  None of these is fatal to the
bridge process: they are handled per connection.
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for bridge protocol errors."""

    code = "bridge-error"


class BridgeConnectionError(BridgeError, ConnectionError):
    """Raised by the client when the bridge cannot be reached or the socket is gone."""

    code = "connection-error"


class NotRegisteredError(BridgeError):
    """A message other than ``register`` arrived before registration."""

    code = "not-registered"


class DuplicateIdError(BridgeError):
    """The agent id is already bound to a different live connection."""

    code = "duplicate-id"

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent id '{agent_id}' is already connected")
        self.agent_id = agent_id


class InvalidMessageError(BridgeError, ValueError):
    """Malformed frame, a bridge-only message kind, or an id/role change."""

    code = "invalid-message"


class UnknownQuestionError(BridgeError, LookupError):
    """An answer references a question that is not pending (answered, expired or never opened)."""

    code = "unknown-question"

    def __init__(self, question_id: str) -> None:
        super().__init__(f"No pending question '{question_id}'")
        self.question_id = question_id


class DeliveryDropped(BridgeError):  # noqa: N818
    """An outbound message could not be queued for a peer.  Never reported to the sender."""

    code = "delivery-dropped"

    def __init__(self, connection_id: str, reason: str) -> None:
        super().__init__(f"Dropped message for connection {connection_id}: {reason}")
        self.connection_id = connection_id
        self.reason = reason
