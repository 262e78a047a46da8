"""Decryption of received messages."""

import logging

from chatpgp.crypto.adapter import CryptoAdapter
from chatpgp.crypto.classifier import is_encoded_envelope
from chatpgp.exceptions import CryptoOperationError
from chatpgp.host import DecryptedMessage, HostClient, InboundMessage
from chatpgp.pipeline.results import StageResult
from chatpgp.settings import PolicySettings
from chatpgp.storage.keystore import KeyStore

logger = logging.getLogger(__name__)

DECRYPTED_INDICATOR = "🔓 "


class InboundProcessor:
    """Decrypts envelopes from correspondents with a private key on file.

    A successful decryption is published to the host as a
    :class:`DecryptedMessage`; the host's own message object is left
    untouched. Any failure leaves the ciphertext visible.
    """

    def __init__(
        self,
        host: HostClient,
        key_store: KeyStore,
        crypto: CryptoAdapter,
        settings: PolicySettings,
    ) -> None:
        self.host = host
        self.key_store = key_store
        self.crypto = crypto
        self.settings = settings

    async def process(self, message: InboundMessage) -> StageResult:
        """Decrypt ``message`` if it is an envelope we hold a key for.

        Returns:
            StageResult whose content is what the host should display

        """
        content = message.content
        if not self.settings.auto_decrypt:
            return StageResult.unchanged(content, "auto-decrypt disabled")
        if not content or not message.sender_id:
            return StageResult.unchanged(content, "no content or sender")
        if not is_encoded_envelope(content):
            return StageResult.unchanged(content, "not encrypted")

        record = await self.key_store.lookup(message.sender_id)
        if record is None or not record.private_key:
            return StageResult.unchanged(content, "no private key")

        if self.settings.log_debug:
            logger.info(f"Attempting to decrypt message from {message.sender_id}")

        try:
            plaintext = await self.crypto.decrypt(content, record.private_key)
        except CryptoOperationError as e:
            logger.error(
                f"Could not decrypt message {message.message_id} from {message.sender_id}: {e.message}",
            )
            return StageResult.failed(content, e.message)

        if plaintext == content:
            return StageResult.unchanged(content, "decryption produced the same text")

        indicator = DECRYPTED_INDICATOR if self.settings.show_indicator else ""
        displayed = indicator + plaintext
        await self.host.publish_update(
            DecryptedMessage(
                message=message,
                displayed_content=displayed,
                original_ciphertext=content,
            ),
        )
        return StageResult.transformed(displayed)
