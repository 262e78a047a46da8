"""Message types exchanged with the host chat client and its interface."""

from dataclasses import dataclass
from typing import Protocol


@dataclass
class OutgoingMessage:
    """Message about to be transmitted; its content may be replaced before sending."""

    content: str


@dataclass(frozen=True)
class InboundMessage:
    """Message as delivered by the host."""

    message_id: str
    conversation_id: str
    sender_id: str | None
    content: str | None


@dataclass(frozen=True)
class DecryptedMessage:
    """Decrypted view of an inbound message handed back to the host.

    ``original_ciphertext`` keeps the envelope as delivered so the host can
    show or restore it.
    """

    message: InboundMessage
    displayed_content: str
    original_ciphertext: str
    decrypted: bool = True


class HostClient(Protocol):
    """Operations the chat client provides to the encryption layer."""

    def resolve_counterpart(self, conversation_id: str) -> str | None:
        """Return the other participant of a one-to-one conversation, else None."""
        ...

    async def send_text(self, conversation_id: str, content: str) -> None:
        """Transmit ``content`` on ``conversation_id``."""
        ...

    async def publish_update(self, message: DecryptedMessage) -> None:
        """Republish a transformed message so downstream state reflects it."""
        ...
