"""Command-line management of per-user PGP keys and messages."""

import argparse
import asyncio
import json
import logging
import re
import sys
from pathlib import Path

from chatpgp.commands import CommandResult
from chatpgp.crypto.adapter import DEFAULT_VARIANT, CryptoAdapter, KeyVariant
from chatpgp.exceptions import ChatPGPError, ConfigurationError
from chatpgp.key_management import KeyManager
from chatpgp.logging import LoggingConfig, configure_logging, set_debug_logging
from chatpgp.settings import load_policy_settings, save_policy_settings
from chatpgp.storage.backends import JsonFileKeyValueStore
from chatpgp.storage.keystore import KeyStore

DEFAULT_HOME = Path.home() / ".config" / "chatpgp"


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with one subcommand per action."""
    parser = argparse.ArgumentParser(
        prog="chatpgp",
        description="Manage per-user PGP keys and encrypt or decrypt chat messages",
    )
    parser.add_argument(
        "--store",
        type=Path,
        default=DEFAULT_HOME / "keys.json",
        help="Path to the JSON key store",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=DEFAULT_HOME / "settings.yaml",
        help="Path to the policy settings YAML file",
    )
    parser.add_argument("--log-level", type=str, default="INFO", help="Logging level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate a key pair")
    generate.add_argument("--identity", required=True, help="Name for the key's user ID")
    generate.add_argument(
        "--variant",
        type=KeyVariant.from_name,
        default=DEFAULT_VARIANT,
        help=f"One of: {', '.join(v.value for v in KeyVariant)}",
    )
    generate.add_argument(
        "--output-dir",
        type=Path,
        default=Path(),
        help="Directory for <identity>.pub.asc and <identity>.sec.asc",
    )
    generate.add_argument(
        "--user",
        help="Also store the generated pair for this user ID",
    )

    validate = subparsers.add_parser("validate", help="Validate armored key files")
    validate.add_argument("--public-key", type=Path, help="Public key file")
    validate.add_argument("--private-key", type=Path, help="Private key file")

    set_keys = subparsers.add_parser("set", help="Store keys for a user")
    set_keys.add_argument("user", help="User ID")
    set_keys.add_argument("--public-key", type=Path, help="Public key file")
    set_keys.add_argument("--private-key", type=Path, help="Private key file")

    delete = subparsers.add_parser("delete", help="Delete the keys of a user")
    delete.add_argument("user", help="User ID")

    subparsers.add_parser("clear", help="Delete all stored keys")
    subparsers.add_parser("list", help="List users with stored keys")

    export = subparsers.add_parser("export", help="Export all stored keys as JSON")
    export.add_argument("--output", type=Path, help="File to write, stdout if omitted")

    encrypt = subparsers.add_parser("encrypt", help="Encrypt a message for a user")
    encrypt.add_argument("user", help="User ID")
    encrypt.add_argument("--message", required=True, help="Plaintext to encrypt")

    decrypt = subparsers.add_parser("decrypt", help="Decrypt a message from a user")
    decrypt.add_argument("user", help="User ID")
    decrypt.add_argument("--input", type=Path, help="Ciphertext file, stdin if omitted")

    subparsers.add_parser(
        "toggle-auto-encrypt",
        help="Flip automatic encryption in the settings file",
    )
    return parser


def _key_file_stem(identity: str) -> str:
    """Turn an identity label into a file name that stays inside the output directory."""
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", identity).strip("._")
    return stem or "key"


def _read_optional(path: Path | None) -> str:
    if path is None:
        return ""
    return path.read_text(encoding="utf-8")


def _report(logger: logging.Logger, result: CommandResult) -> int:
    if result.ok:
        logger.info(result.message)
        return 0
    logger.error(result.message)
    return 1


async def run(args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute the parsed command and return the process exit code."""
    settings = load_policy_settings(args.settings)
    if settings.log_debug:
        set_debug_logging(enabled=True)
    crypto = CryptoAdapter(timeout=settings.operation_timeout)
    key_store = KeyStore(
        JsonFileKeyValueStore(args.store),
        timeout=settings.operation_timeout,
    )
    manager = KeyManager(key_store, crypto)

    if args.command == "generate":
        result, key_pair = await manager.generate_keys(args.identity, args.variant)
        if key_pair is None:
            return _report(logger, result)
        args.output_dir.mkdir(parents=True, exist_ok=True)
        stem = _key_file_stem(args.identity)
        public_path = args.output_dir / f"{stem}.pub.asc"
        private_path = args.output_dir / f"{stem}.sec.asc"
        public_path.write_text(key_pair.public_key, encoding="utf-8")
        private_path.write_text(key_pair.private_key, encoding="utf-8")
        private_path.chmod(0o600)
        logger.info(f"Wrote {public_path} and {private_path}")
        if args.user:
            result = await manager.save_keys(
                args.user,
                key_pair.public_key,
                key_pair.private_key,
            )
        return _report(logger, result)

    if args.command == "validate":
        result = await manager.validate_keys(
            _read_optional(args.public_key),
            _read_optional(args.private_key),
        )
        return _report(logger, result)

    if args.command == "set":
        result = await manager.save_keys(
            args.user,
            _read_optional(args.public_key),
            _read_optional(args.private_key),
        )
        return _report(logger, result)

    if args.command == "delete":
        return _report(logger, await manager.delete_keys(args.user))

    if args.command == "clear":
        await key_store.clear()
        logger.info("🗑️ All keys deleted")
        return 0

    if args.command in ("list", "export"):
        result, records = await manager.export_keys()
        if not result.ok:
            return _report(logger, result)
        if args.command == "list":
            for user_id, record in sorted(records.items()):
                capabilities = []
                if record.public_key:
                    capabilities.append("encrypt")
                if record.private_key:
                    capabilities.append("decrypt")
                print(f"{user_id}\t{','.join(capabilities)}")
            return 0
        document = json.dumps(
            {user_id: record.to_dict() for user_id, record in records.items()},
            indent=2,
            sort_keys=True,
        )
        if args.output:
            args.output.write_text(document, encoding="utf-8")
        else:
            print(document)
        return _report(logger, result)

    if args.command == "encrypt":
        record = await manager.load_keys(args.user)
        if not record.public_key:
            logger.error(f"No public key configured for {args.user}")
            return 1
        print(await crypto.encrypt(args.message, record.public_key))
        return 0

    if args.command == "decrypt":
        record = await manager.load_keys(args.user)
        if not record.private_key:
            logger.error(f"No private key configured for {args.user}")
            return 1
        ciphertext = args.input.read_text(encoding="utf-8") if args.input else sys.stdin.read()
        print(await crypto.decrypt(ciphertext, record.private_key))
        return 0

    # toggle-auto-encrypt
    enabled = settings.toggle_auto_encrypt()
    save_policy_settings(settings, args.settings)
    logger.info(f"Automatic encryption {'✅ enabled' if enabled else '❌ disabled'}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Execute the main entry point for the chatpgp command."""
    args = build_parser().parse_args(argv)

    logging_config = LoggingConfig(log_name="chatpgp", log_level=args.log_level)
    logger = configure_logging(logging_config)

    try:
        exit_code = asyncio.run(run(args, logger))
    except ConfigurationError:
        logger.exception("Configuration error")
        sys.exit(1)
    except ChatPGPError:
        logger.exception("Operation failed")
        sys.exit(1)
    except OSError:
        logger.exception("System error")
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
