"""chatpgp - per-user PGP encryption for chat clients.

Keeps a public and a private key per conversation partner, encrypts outgoing
messages and decrypts incoming PGP envelopes transparently.
"""

__version__ = "0.1.0"

from . import exceptions, logging
from .plugin import PGPEncryptionPlugin

__all__ = ["PGPEncryptionPlugin", "exceptions", "logging"]
