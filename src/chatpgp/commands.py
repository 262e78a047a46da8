"""One-shot user commands issued from a conversation."""

import logging
from dataclasses import dataclass

from chatpgp.crypto.adapter import CryptoAdapter
from chatpgp.exceptions import ChatPGPError
from chatpgp.host import HostClient
from chatpgp.settings import PolicySettings
from chatpgp.storage.keystore import KeyStore

logger = logging.getLogger(__name__)

NOT_ONE_TO_ONE = "❌ This command only works in private messages (DM)."


@dataclass(frozen=True)
class CommandResult:
    """Status line shown to the user after an explicit action."""

    ok: bool
    message: str


async def encrypt_and_send_once(
    host: HostClient,
    key_store: KeyStore,
    crypto: CryptoAdapter,
    conversation_id: str,
    plaintext: str,
) -> CommandResult:
    """Encrypt ``plaintext`` for the conversation's counterpart and send it.

    Unlike automatic encryption this never falls back to plaintext: a missing
    key or a failed encryption is reported and nothing is sent.
    """
    try:
        recipient_id = host.resolve_counterpart(conversation_id)
        if recipient_id is None:
            return CommandResult(ok=False, message=NOT_ONE_TO_ONE)
        await key_store.init()
        record = key_store.get(recipient_id)
        if record is None or not record.public_key:
            return CommandResult(
                ok=False,
                message="❌ No public key configured for this user. Add one with 'Manage PGP Keys'.",
            )
        ciphertext = await crypto.encrypt(plaintext, record.public_key)
        await host.send_text(conversation_id, ciphertext)
    except ChatPGPError as e:
        logger.exception("Error during one-shot encryption")
        return CommandResult(ok=False, message=f"❌ Error encrypting message: {e.message}")
    except Exception as e:
        logger.exception(f"Error sending one-shot encrypted message on {conversation_id}")
        return CommandResult(ok=False, message=f"❌ Error encrypting message: {e}")

    logger.info(f"Sent one-shot encrypted message to {recipient_id}")
    return CommandResult(ok=True, message="🔒 Encrypted message sent.")


async def toggle_auto_encrypt(
    host: HostClient,
    key_store: KeyStore,
    settings: PolicySettings,
    conversation_id: str,
) -> CommandResult:
    """Flip automatic encryption, warning when the counterpart has no public key.

    The flag is process-wide; the conversation is only used to check that the
    command runs in a one-to-one conversation and to look up the warning.
    """
    recipient_id = host.resolve_counterpart(conversation_id)
    if recipient_id is None:
        return CommandResult(ok=False, message=NOT_ONE_TO_ONE)

    enabled = settings.toggle_auto_encrypt()
    status = "✅ enabled" if enabled else "❌ disabled"
    message = f"Automatic encryption {status} for this conversation."

    if enabled:
        record = await key_store.lookup(recipient_id)
        if record is None or not record.public_key:
            message += (
                "\n⚠️ Warning: No public key configured for this user."
                " Configure it via 'Manage PGP Keys'."
            )

    logger.info(f"Automatic encryption {'enabled' if enabled else 'disabled'}")
    return CommandResult(ok=True, message=message)
