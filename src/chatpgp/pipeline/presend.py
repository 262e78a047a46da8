"""Encryption of outgoing messages just before transmission."""

import logging

from chatpgp.crypto.adapter import CryptoAdapter
from chatpgp.crypto.classifier import is_encoded_envelope
from chatpgp.exceptions import CryptoOperationError
from chatpgp.host import HostClient, OutgoingMessage
from chatpgp.pipeline.results import StageResult
from chatpgp.settings import PolicySettings
from chatpgp.storage.keystore import KeyStore

logger = logging.getLogger(__name__)


class PreSendInterceptor:
    """Replaces outgoing plaintext with ciphertext for correspondents with a public key.

    Never blocks a message: when encryption fails the message is sent as
    plaintext and the failure is logged.
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

    async def process(
        self,
        destination_id: str,
        message: OutgoingMessage,
    ) -> StageResult:
        """Encrypt ``message.content`` in place when policy and keys allow it.

        Args:
            destination_id: Conversation the message is sent on
            message: Outgoing message, mutated only on successful encryption

        Returns:
            StageResult describing what happened to the content

        """
        content = message.content
        if not self.settings.auto_encrypt:
            return StageResult.unchanged(content, "auto-encrypt disabled")

        recipient_id = self.host.resolve_counterpart(destination_id)
        if recipient_id is None:
            return StageResult.unchanged(content, "not a one-to-one conversation")

        if is_encoded_envelope(content):
            return StageResult.unchanged(content, "already encrypted")

        record = await self.key_store.lookup(recipient_id)
        if record is None or not record.public_key:
            return StageResult.unchanged(content, "no public key")

        try:
            ciphertext = await self.crypto.encrypt(content, record.public_key)
        except CryptoOperationError as e:
            logger.error(
                f"Automatic encryption for {recipient_id} failed, sending plaintext: {e.message}",
            )
            return StageResult.failed(content, e.message)

        message.content = ciphertext
        if self.settings.log_debug:
            logger.info(f"Message automatically encrypted for {recipient_id}")
        return StageResult.transformed(ciphertext)
