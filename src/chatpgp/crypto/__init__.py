"""OpenPGP key handling and envelope detection."""

from .adapter import DEFAULT_VARIANT, CryptoAdapter, KeyPair, KeyVariant
from .classifier import MESSAGE_BEGIN_MARKER, MESSAGE_END_MARKER, is_encoded_envelope

__all__ = [
    "DEFAULT_VARIANT",
    "MESSAGE_BEGIN_MARKER",
    "MESSAGE_END_MARKER",
    "CryptoAdapter",
    "KeyPair",
    "KeyVariant",
    "is_encoded_envelope",
]
