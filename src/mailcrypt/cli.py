"""Command line interface for MailCrypt key and envelope operations."""

import argparse
import asyncio
import getpass
import logging
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from mailcrypt.config import CryptoSettings, load_settings, resolve_secret
from mailcrypt.exceptions import KeyGenerationError, MailCryptError
from mailcrypt.logging import LoggingConfig, configure_logging
from mailcrypt.pgp import NO_SIGNING, SKIP_VERIFICATION, PGPEncryptionService, SignWith, VerifyWith
from mailcrypt.symmetric import SymmetricCipher
from mailcrypt.utils import run_in_worker

T = TypeVar("T")


def read_passphrase(prompt: str, env_var: str | None = None, *, confirm: bool = False) -> str:
    """Read a passphrase from an environment variable or the terminal."""
    if env_var:
        value = os.environ.get(env_var)
        if value:
            return value

    passphrase = getpass.getpass(prompt)
    if confirm and getpass.getpass("Repeat passphrase: ") != passphrase:
        error_msg = "Passphrases do not match"
        raise ValueError(error_msg)
    return passphrase


def run_operation(settings: CryptoSettings, func: Callable[..., T], *args: Any) -> T:
    """Run a slow crypto call on a worker thread, bounded by operation_timeout.

    Raises:
        TimeoutError: If the call does not finish within the configured timeout

    """
    return asyncio.run(run_in_worker(func, *args, timeout=settings.operation_timeout))


def cmd_keygen(args: argparse.Namespace, logger: logging.Logger, settings: CryptoSettings) -> int:
    """Generate a key pair and write both armored halves to disk."""
    # The identity becomes a filename, so it must not leave out_dir
    if Path(args.identity).name != args.identity:
        error_msg = f"Identity must not contain a path: {args.identity}"
        raise KeyGenerationError(error_msg)

    service = PGPEncryptionService(logger)
    passphrase = read_passphrase("Passphrase: ", args.passphrase_env, confirm=True)
    key_pair = run_operation(settings, service.generate_key_pair, args.identity, passphrase)

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    public_path = out_dir / f"{args.identity}.pub.asc"
    private_path = out_dir / f"{args.identity}.sec.asc"
    public_path.write_text(key_pair.public_key, encoding="utf-8")
    private_path.write_text(key_pair.private_key, encoding="utf-8")
    private_path.chmod(0o600)

    logger.info(f"Wrote {public_path} and {private_path} ({key_pair.fingerprint})")
    return 0


def cmd_encrypt(args: argparse.Namespace, logger: logging.Logger, settings: CryptoSettings) -> int:
    """Encrypt a file for a recipient, optionally signing it."""
    service = PGPEncryptionService(logger)
    source = Path(args.input)
    recipient_key = Path(args.recipient_key).read_text(encoding="utf-8")

    signing = NO_SIGNING
    if args.sign_key:
        signing = SignWith(
            private_key=Path(args.sign_key).read_text(encoding="utf-8"),
            passphrase=read_passphrase("Signing key passphrase: ", args.passphrase_env),
        )

    encrypted = run_operation(settings, service.encrypt_file, source.read_bytes(), source.name, recipient_key, signing)
    target = Path(args.output) if args.output else source.with_name(encrypted.filename)
    target.write_bytes(encrypted.data)
    logger.info(f"Encrypted {source} to {target}")
    return 0


def cmd_decrypt(args: argparse.Namespace, logger: logging.Logger, settings: CryptoSettings) -> int:
    """Decrypt a file and restore its original filename."""
    service = PGPEncryptionService(logger)
    source = Path(args.input)
    private_key = Path(args.key).read_text(encoding="utf-8")
    passphrase = read_passphrase("Passphrase: ", args.passphrase_env)

    verification = SKIP_VERIFICATION
    if args.verify_key:
        verification = VerifyWith(Path(args.verify_key).read_text(encoding="utf-8"))

    decrypted = run_operation(settings, service.decrypt_file, source.read_bytes(), private_key, passphrase, verification)
    out_dir = Path(args.out_dir) if args.out_dir else source.parent
    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / Path(decrypted.filename).name
    target.write_bytes(decrypted.data)

    logger.info(f"Decrypted {source} to {target}")
    if args.verify_key and not decrypted.verified:
        logger.warning("Signature could not be verified against the supplied key")
    elif decrypted.verified:
        logger.info("Signature verified")
    return 0


def cmd_seal(args: argparse.Namespace, logger: logging.Logger, settings: CryptoSettings) -> int:
    """Encrypt stdin into a symmetric envelope on stdout."""
    cipher = SymmetricCipher(logger, resolve_secret(settings), settings.token_length)
    sys.stdout.write(run_operation(settings, cipher.encrypt, sys.stdin.read()) + "\n")
    return 0


def cmd_unseal(args: argparse.Namespace, logger: logging.Logger, settings: CryptoSettings) -> int:
    """Decrypt a symmetric envelope from stdin to stdout."""
    cipher = SymmetricCipher(logger, resolve_secret(settings), settings.token_length)
    sys.stdout.write(run_operation(settings, cipher.decrypt, sys.stdin.read().strip()))
    return 0


def cmd_token(args: argparse.Namespace, logger: logging.Logger, settings: CryptoSettings) -> int:
    """Print a random hex token."""
    cipher = SymmetricCipher(logger, token_length=settings.token_length)
    sys.stdout.write(cipher.generate_token(args.length) + "\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="mailcrypt",
        description="OpenPGP file encryption and symmetric envelopes",
    )
    parser.add_argument("--config", type=str, help="Path to configuration YAML or JSON file")
    parser.add_argument("--log-level", type=str, help="Logging level (overrides configuration)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    keygen = subparsers.add_parser("keygen", help="Generate an OpenPGP key pair")
    keygen.add_argument("--identity", required=True, help="E-mail address bound to the key")
    keygen.add_argument("--out-dir", default=".", help="Directory for the key files")
    keygen.add_argument("--passphrase-env", help="Environment variable holding the passphrase")
    keygen.set_defaults(handler=cmd_keygen)

    encrypt = subparsers.add_parser("encrypt", help="Encrypt a file for a recipient")
    encrypt.add_argument("--recipient-key", required=True, help="Recipient public key file")
    encrypt.add_argument("--in", dest="input", required=True, help="File to encrypt")
    encrypt.add_argument("--out", dest="output", help="Output file (default: <input>.pgp)")
    encrypt.add_argument("--sign-key", help="Sender private key file to sign with")
    encrypt.add_argument("--passphrase-env", help="Environment variable holding the signing passphrase")
    encrypt.set_defaults(handler=cmd_encrypt)

    decrypt = subparsers.add_parser("decrypt", help="Decrypt a file")
    decrypt.add_argument("--key", required=True, help="Recipient private key file")
    decrypt.add_argument("--in", dest="input", required=True, help="Encrypted file")
    decrypt.add_argument("--out-dir", help="Directory for the decrypted file")
    decrypt.add_argument("--verify-key", help="Sender public key file to verify with")
    decrypt.add_argument("--passphrase-env", help="Environment variable holding the passphrase")
    decrypt.set_defaults(handler=cmd_decrypt)

    seal = subparsers.add_parser("seal", help="Encrypt stdin with the configured secret")
    seal.set_defaults(handler=cmd_seal)

    unseal = subparsers.add_parser("unseal", help="Decrypt stdin with the configured secret")
    unseal.set_defaults(handler=cmd_unseal)

    token = subparsers.add_parser("token", help="Print a random hex token")
    token.add_argument("--length", type=int, help="Number of random bytes")
    token.set_defaults(handler=cmd_token)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Execute the main entry point for the mailcrypt command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(Path(args.config) if args.config else None)
    except MailCryptError as e:
        parser.error(e.message)

    logging_config = LoggingConfig(
        log_name="mailcrypt",
        log_level=args.log_level or settings.log_level,
        log_dir=settings.log_dir,
        enable_file=settings.log_dir is not None,
    )
    logger = configure_logging(logging_config)

    try:
        exit_code = args.handler(args, logger, settings)
    except MailCryptError as e:
        logger.error(f"{args.command} failed: {e.message}")
        sys.exit(1)
    except TimeoutError:
        logger.error(f"{args.command} timed out after {settings.operation_timeout} seconds")
        sys.exit(1)
    except (OSError, ValueError):
        logger.exception("System error")
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
