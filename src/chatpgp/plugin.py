"""Wiring of the encryption layer into a host chat client."""

import logging

from chatpgp.commands import CommandResult, encrypt_and_send_once, toggle_auto_encrypt
from chatpgp.crypto.adapter import CryptoAdapter
from chatpgp.exceptions import PersistenceError
from chatpgp.host import HostClient, InboundMessage, OutgoingMessage
from chatpgp.key_management import KeyManager
from chatpgp.logging import set_debug_logging
from chatpgp.pipeline.inbound import InboundProcessor
from chatpgp.pipeline.presend import PreSendInterceptor
from chatpgp.pipeline.results import StageResult
from chatpgp.settings import PolicySettings
from chatpgp.storage.backends import KeyValueStore
from chatpgp.storage.keystore import KeyStore

logger = logging.getLogger(__name__)


class PGPEncryptionPlugin:
    """Per-user PGP encryption for one-to-one conversations.

    The host calls :meth:`on_pre_send` before each outgoing message and
    :meth:`on_message_create` for each received one. Keys are configured per
    user through :attr:`key_manager`.
    """

    def __init__(
        self,
        host: HostClient,
        store: KeyValueStore,
        settings: PolicySettings | None = None,
        crypto: CryptoAdapter | None = None,
    ) -> None:
        """Initialize the plugin.

        Args:
            host: Chat client collaborator
            store: Persistence substrate for the key records
            settings: Policy toggles, defaults when omitted
            crypto: OpenPGP adapter, built from the settings' timeout when omitted

        """
        self.host = host
        self.settings = settings or PolicySettings()
        self.crypto = crypto or CryptoAdapter(timeout=self.settings.operation_timeout)
        self.key_store = KeyStore(store, timeout=self.settings.operation_timeout)
        self.key_manager = KeyManager(self.key_store, self.crypto)
        self.pre_send = PreSendInterceptor(
            host,
            self.key_store,
            self.crypto,
            self.settings,
        )
        self.inbound = InboundProcessor(
            host,
            self.key_store,
            self.crypto,
            self.settings,
        )
        self.started = False

    async def start(self) -> None:
        """Load the key store; a failed load is logged and retried on first use."""
        if self.settings.log_debug:
            set_debug_logging(enabled=True)
        try:
            await self.key_store.init()
        except PersistenceError as e:
            logger.error(f"Could not load PGP keys, continuing without: {e.message}")
        self.started = True
        logger.info("PGPEncryption started - key management available per user")

    def stop(self) -> None:
        self.started = False
        logger.info("PGPEncryption stopped")

    def has_keys(self, correspondent_id: str) -> bool:
        """Whether any key is configured, for the host's key indicator."""
        if not self.key_store.is_ready:
            return False
        return self.key_store.get(correspondent_id) is not None

    async def on_pre_send(
        self,
        destination_id: str,
        message: OutgoingMessage,
    ) -> StageResult:
        if not self.started:
            return StageResult.unchanged(message.content, "plugin not started")
        return await self._apply_pre_send(destination_id, message)

    async def on_message_create(self, message: InboundMessage) -> StageResult:
        if not self.started:
            return StageResult.unchanged(message.content, "plugin not started")
        try:
            return await self.inbound.process(message)
        except Exception as e:
            logger.exception(f"Error handling incoming message {message.message_id}")
            return StageResult.failed(message.content, str(e))

    async def encrypt_and_send(self, conversation_id: str, content: str) -> StageResult:
        """Send ``content``, encrypting it when automatic encryption applies.

        The message is always sent; on any encryption failure it goes out as
        the original text.
        """
        message = OutgoingMessage(content=content)
        result = await self._apply_pre_send(conversation_id, message)
        await self.host.send_text(conversation_id, message.content)
        return result

    async def send_encrypted_once(self, conversation_id: str, plaintext: str) -> CommandResult:
        return await encrypt_and_send_once(
            self.host,
            self.key_store,
            self.crypto,
            conversation_id,
            plaintext,
        )

    async def toggle_auto_encrypt(self, conversation_id: str) -> CommandResult:
        return await toggle_auto_encrypt(
            self.host,
            self.key_store,
            self.settings,
            conversation_id,
        )

    async def _apply_pre_send(
        self,
        destination_id: str,
        message: OutgoingMessage,
    ) -> StageResult:
        # Any error leaves the original text in place so the send still happens.
        original_content = message.content
        try:
            return await self.pre_send.process(destination_id, message)
        except Exception as e:
            logger.exception(
                f"Error preparing message for {destination_id}, sending original text",
            )
            message.content = original_content
            return StageResult.failed(original_content, str(e))
