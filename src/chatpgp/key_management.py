"""User-initiated key actions: save, generate, validate, delete and export."""

import logging

from chatpgp.commands import CommandResult
from chatpgp.crypto.adapter import DEFAULT_VARIANT, CryptoAdapter, KeyPair, KeyVariant
from chatpgp.exceptions import ChatPGPError, KeyFormatError
from chatpgp.storage.keystore import KeyRecord, KeyStore

logger = logging.getLogger(__name__)


class KeyManager:
    """Explicit key management for one user at a time.

    Every action reports its outcome as a :class:`CommandResult`; errors are
    logged and turned into a visible status line, never dropped.
    """

    def __init__(self, key_store: KeyStore, crypto: CryptoAdapter) -> None:
        self.key_store = key_store
        self.crypto = crypto

    async def load_keys(self, correspondent_id: str) -> KeyRecord:
        """Return the stored keys, or an empty record when none are stored.

        Raises:
            PersistenceError: If the key store cannot be loaded

        """
        await self.key_store.init()
        return self.key_store.get(correspondent_id) or KeyRecord()

    async def save_keys(
        self,
        correspondent_id: str,
        public_key: str,
        private_key: str,
    ) -> CommandResult:
        """Store the given keys; two empty keys delete the entry."""
        record = KeyRecord(public_key=public_key.strip(), private_key=private_key.strip())
        try:
            await self.key_store.put(correspondent_id, record)
        except ChatPGPError as e:
            logger.exception(f"Error saving keys for {correspondent_id}")
            return CommandResult(ok=False, message=f"❌ Error while saving: {e.message}")
        return CommandResult(ok=True, message="✅ Keys saved successfully!")

    async def generate_keys(
        self,
        identity_label: str,
        variant: KeyVariant = DEFAULT_VARIANT,
    ) -> tuple[CommandResult, KeyPair | None]:
        """Generate a new key pair without storing it."""
        try:
            key_pair = await self.crypto.generate_key_pair(identity_label, variant)
        except ChatPGPError as e:
            logger.exception(f"Error generating {variant.value} key pair")
            return (
                CommandResult(ok=False, message=f"❌ Error during generation: {e.message}"),
                None,
            )
        return (
            CommandResult(ok=True, message="✅ Keys generated! Don't forget to save them."),
            key_pair,
        )

    async def validate_keys(self, public_key: str, private_key: str) -> CommandResult:
        """Check whichever of the two keys is filled in."""
        if not public_key.strip() and not private_key.strip():
            return CommandResult(ok=False, message="❌ No key to validate.")

        messages = []
        try:
            if public_key.strip():
                await self.crypto.validate_public_key(public_key)
                messages.append("✅ Public key valid!")
            if private_key.strip():
                await self.crypto.validate_private_key(private_key)
                messages.append("✅ Private key valid!")
        except KeyFormatError as e:
            return CommandResult(ok=False, message=f"❌ Invalid key: {e.message}")
        return CommandResult(ok=True, message=" ".join(messages))

    async def delete_keys(self, correspondent_id: str) -> CommandResult:
        """Remove both keys for ``correspondent_id``."""
        try:
            await self.key_store.delete(correspondent_id)
        except ChatPGPError as e:
            logger.exception(f"Error deleting keys for {correspondent_id}")
            return CommandResult(ok=False, message=f"❌ Error while deleting: {e.message}")
        return CommandResult(ok=True, message="🗑️ Keys deleted")

    async def export_keys(self) -> tuple[CommandResult, dict[str, KeyRecord]]:
        """Snapshot every stored record, for export or debugging."""
        try:
            records = await self.key_store.get_all()
        except ChatPGPError as e:
            logger.exception("Error exporting keys")
            return CommandResult(ok=False, message=f"❌ Error while exporting: {e.message}"), {}
        return (
            CommandResult(ok=True, message=f"Exported keys for {len(records)} user(s)."),
            records,
        )
