"""OpenPGP operations on armored keys and messages, backed by PGPy."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

import pgpy
from pgpy.constants import (
    CompressionAlgorithm,
    EllipticCurveOID,
    HashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)

from chatpgp.exceptions import ChatPGPError, CryptoOperationError, KeyFormatError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 30.0


class KeyVariant(Enum):
    """Supported key-pair algorithms."""

    RSA_2048 = "rsa-2048"
    RSA_4096 = "rsa-4096"
    CURVE25519 = "curve25519"
    NIST_P256 = "nist-p256"
    NIST_P384 = "nist-p384"
    NIST_P521 = "nist-p521"
    SECP256K1 = "secp256k1"
    BRAINPOOL_P256 = "brainpool-p256"
    BRAINPOOL_P384 = "brainpool-p384"
    BRAINPOOL_P512 = "brainpool-p512"

    @classmethod
    def from_name(cls, name: str) -> "KeyVariant":
        """Parse a variant from its value or member name, case-insensitively."""
        normalized = name.strip().lower().replace("_", "-")
        for variant in cls:
            if normalized in (variant.value, variant.name.lower().replace("_", "-")):
                return variant
        choices = ", ".join(variant.value for variant in cls)
        error_msg = f"Unknown key variant '{name}'. Choose one of: {choices}"
        raise ValueError(error_msg)


DEFAULT_VARIANT = KeyVariant.RSA_4096

_RSA_BITS = {
    KeyVariant.RSA_2048: 2048,
    KeyVariant.RSA_4096: 4096,
}

_ECC_CURVES = {
    KeyVariant.NIST_P256: EllipticCurveOID.NIST_P256,
    KeyVariant.NIST_P384: EllipticCurveOID.NIST_P384,
    KeyVariant.NIST_P521: EllipticCurveOID.NIST_P521,
    KeyVariant.SECP256K1: EllipticCurveOID.SECP256K1,
    KeyVariant.BRAINPOOL_P256: EllipticCurveOID.Brainpool_P256,
    KeyVariant.BRAINPOOL_P384: EllipticCurveOID.Brainpool_P384,
    KeyVariant.BRAINPOOL_P512: EllipticCurveOID.Brainpool_P512,
}


@dataclass(frozen=True)
class KeyPair:
    """Armored public and private halves of one generated key."""

    public_key: str
    private_key: str


class CryptoAdapter:
    """Stateless wrapper around the OpenPGP engine.

    Every operation runs in a worker thread so the event loop keeps serving
    other messages, and is bounded by ``timeout`` seconds. Engine failures
    are raised as :class:`CryptoOperationError`, parse failures of keys as
    :class:`KeyFormatError`.
    """

    def __init__(self, timeout: float | None = DEFAULT_TIMEOUT_SECONDS) -> None:
        """Initialize the adapter.

        Args:
            timeout: Upper bound in seconds for a single operation, None for no limit

        """
        self.timeout = timeout

    async def generate_key_pair(
        self,
        identity_label: str,
        variant: KeyVariant = DEFAULT_VARIANT,
    ) -> KeyPair:
        """Generate a signing primary key with an encryption subkey.

        Args:
            identity_label: Name placed in the key's user ID
            variant: Algorithm family and size, RSA-4096 by default

        Returns:
            KeyPair with armored public and private keys

        Raises:
            CryptoOperationError: If the label is empty or generation fails

        """
        if not identity_label or not identity_label.strip():
            error_msg = "An identity label is required to generate a key pair"
            raise CryptoOperationError(error_msg)
        logger.debug(f"Generating {variant.value} key pair for '{identity_label}'")
        return await self._run(
            f"Key generation ({variant.value})",
            CryptoOperationError,
            _generate,
            identity_label.strip(),
            variant,
        )

    async def validate_public_key(self, armored: str) -> None:
        """Check that ``armored`` parses as an OpenPGP key.

        Raises:
            KeyFormatError: If the text is not a valid armored key

        """
        await self._run("Public key validation", KeyFormatError, _parse_key, armored)

    async def validate_private_key(self, armored: str) -> None:
        """Check that ``armored`` parses as an OpenPGP private key.

        Raises:
            KeyFormatError: If the text is not a valid armored private key

        """
        await self._run(
            "Private key validation",
            KeyFormatError,
            _parse_private_key,
            armored,
        )

    async def encrypt(self, plaintext: str, recipient_public_key: str) -> str:
        """Encrypt ``plaintext`` to the holder of ``recipient_public_key``.

        Returns:
            Armored PGP message

        Raises:
            CryptoOperationError: If the key is malformed or encryption fails

        """
        return await self._run(
            "Encryption",
            CryptoOperationError,
            _encrypt,
            plaintext,
            recipient_public_key,
        )

    async def decrypt(self, ciphertext: str, own_private_key: str) -> str:
        """Decrypt an armored PGP message with ``own_private_key``.

        Raises:
            CryptoOperationError: If the message or key is malformed, the key
                does not match, or decryption fails

        """
        return await self._run(
            "Decryption",
            CryptoOperationError,
            _decrypt,
            ciphertext,
            own_private_key,
        )

    async def _run(
        self,
        action: str,
        error_cls: type[ChatPGPError],
        func: Callable[..., T],
        *args: Any,
    ) -> T:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            error_msg = f"{action} timed out after {self.timeout} seconds"
            raise error_cls(error_msg, e) from e
        except ChatPGPError as e:
            if isinstance(e, error_cls):
                raise
            raise error_cls(f"{action} failed: {e.message}", e) from e
        except Exception as e:
            error_msg = f"{action} failed: {e}"
            raise error_cls(error_msg, e) from e


def _generate(identity_label: str, variant: KeyVariant) -> KeyPair:
    if variant in _RSA_BITS:
        bits = _RSA_BITS[variant]
        primary = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, bits)
        subkey = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, bits)
    elif variant is KeyVariant.CURVE25519:
        primary = pgpy.PGPKey.new(PubKeyAlgorithm.EdDSA, EllipticCurveOID.Ed25519)
        subkey = pgpy.PGPKey.new(PubKeyAlgorithm.ECDH, EllipticCurveOID.Curve25519)
    else:
        curve = _ECC_CURVES[variant]
        primary = pgpy.PGPKey.new(PubKeyAlgorithm.ECDSA, curve)
        subkey = pgpy.PGPKey.new(PubKeyAlgorithm.ECDH, curve)

    primary.add_uid(
        pgpy.PGPUID.new(identity_label),
        usage={KeyFlags.Sign, KeyFlags.Certify},
        hashes=[HashAlgorithm.SHA512, HashAlgorithm.SHA384, HashAlgorithm.SHA256],
        ciphers=[
            SymmetricKeyAlgorithm.AES256,
            SymmetricKeyAlgorithm.AES192,
            SymmetricKeyAlgorithm.AES128,
        ],
        compression=[
            CompressionAlgorithm.ZLIB,
            CompressionAlgorithm.ZIP,
            CompressionAlgorithm.Uncompressed,
        ],
    )
    primary.add_subkey(
        subkey,
        usage={KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage},
    )
    return KeyPair(public_key=str(primary.pubkey), private_key=str(primary))


def _parse_key(armored: str) -> pgpy.PGPKey:
    if not isinstance(armored, str) or not armored.strip():
        error_msg = "Key text is empty"
        raise KeyFormatError(error_msg)
    try:
        key, _ = pgpy.PGPKey.from_blob(armored.strip())
    except Exception as e:
        error_msg = f"Not a valid armored PGP key: {e}"
        raise KeyFormatError(error_msg, e) from e
    return key


def _parse_private_key(armored: str) -> pgpy.PGPKey:
    key = _parse_key(armored)
    if key.is_public:
        error_msg = "Expected a private key block but found a public key"
        raise KeyFormatError(error_msg)
    return key


def _encrypt(plaintext: str, recipient_public_key: str) -> str:
    key = _parse_key(recipient_public_key)
    if not key.is_public:
        key = key.pubkey
    message = pgpy.PGPMessage.new(plaintext.encode("utf-8"))
    return str(key.encrypt(message))


def _decrypt(ciphertext: str, own_private_key: str) -> str:
    key = _parse_private_key(own_private_key)
    if key.is_protected and not key.is_unlocked:
        error_msg = "Passphrase-protected private keys are not supported"
        raise CryptoOperationError(error_msg)
    try:
        message = pgpy.PGPMessage.from_blob(ciphertext.strip())
    except Exception as e:
        error_msg = f"Not a valid PGP message: {e}"
        raise CryptoOperationError(error_msg, e) from e
    if not message.is_encrypted:
        error_msg = "PGP message is not encrypted"
        raise CryptoOperationError(error_msg)

    payload = key.decrypt(message).message
    if isinstance(payload, bytes | bytearray):
        return bytes(payload).decode("utf-8")
    return payload
