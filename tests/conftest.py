"""Shared fixtures for the chatpgp tests."""

import asyncio
import logging
from collections.abc import Iterator

import pytest

from chatpgp.crypto.adapter import CryptoAdapter, KeyPair, KeyVariant
from chatpgp.host import DecryptedMessage


class FakeHost:
    """In-memory stand-in for the chat client."""

    def __init__(self, counterparts: dict[str, str] | None = None) -> None:
        self.counterparts = counterparts or {}
        self.sent: list[tuple[str, str]] = []
        self.published: list[DecryptedMessage] = []

    def resolve_counterpart(self, conversation_id: str) -> str | None:
        return self.counterparts.get(conversation_id)

    async def send_text(self, conversation_id: str, content: str) -> None:
        self.sent.append((conversation_id, content))

    async def publish_update(self, message: DecryptedMessage) -> None:
        self.published.append(message)


@pytest.fixture
def fake_host() -> FakeHost:
    """Host with one direct conversation "dm-1" with user "123"."""
    return FakeHost({"dm-1": "123"})


@pytest.fixture(scope="session")
def alice_keys() -> KeyPair:
    """A real, quickly generated key pair reused across tests."""
    return asyncio.run(
        CryptoAdapter().generate_key_pair("alice", KeyVariant.CURVE25519),
    )


@pytest.fixture(scope="session")
def bob_keys() -> KeyPair:
    """A second real key pair, unrelated to ``alice_keys``."""
    return asyncio.run(
        CryptoAdapter().generate_key_pair("bob", KeyVariant.NIST_P256),
    )


@pytest.fixture
def host_factory() -> type[FakeHost]:
    """Build additional hosts with their own conversations."""
    return FakeHost


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Undo handlers and propagation changes made by configure_logging."""
    yield
    package_logger = logging.getLogger("chatpgp")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True
