"""Syntactic detection of armored PGP message envelopes."""

MESSAGE_BEGIN_MARKER = "-----BEGIN PGP MESSAGE-----"
MESSAGE_END_MARKER = "-----END PGP MESSAGE-----"


def is_encoded_envelope(text: str | None) -> bool:
    """Return True if ``text`` carries both envelope markers.

    Only substring containment is checked, not the order of the markers or
    the armor grammar in between. Used both to avoid double encryption and
    to decide whether decryption is worth attempting.
    """
    if not isinstance(text, str) or not text:
        return False
    return MESSAGE_BEGIN_MARKER in text and MESSAGE_END_MARKER in text
