import re
from dataclasses import dataclass

import base58
from eth_account import Account
from eth_account.signers.local import LocalAccount
from nacl import exceptions as nacl_exceptions
from nacl.signing import SigningKey

_HEX = re.compile(r"[0-9a-fA-F]+")


@dataclass
class KeyMaterial:
    signing_key: SigningKey

    @property
    def public_key_b58(self) -> str:
        return base58.b58encode(bytes(self.signing_key.verify_key)).decode("ascii")

    @property
    def secret_key_bytes(self) -> bytes:
        return bytes(self.signing_key)

    @property
    def secret_key_64(self) -> bytes:
        verify_key_bytes = bytes(self.signing_key.verify_key)
        return self.secret_key_bytes + verify_key_bytes


@dataclass
class EvmKeyMaterial:
    account: LocalAccount

    @property
    def address(self) -> str:
        return self.account.address


class KeyManager:
    """Turns configured secrets into signing material for each ledger."""

    def load_solana_key(self, secret: str) -> KeyMaterial:
        """Accept a base58 secret (the usual wallet export) or a hex string."""
        secret = secret.strip()
        if not secret:
            raise ValueError("Private key input is empty.")
        hex_secret = secret[2:] if secret.startswith("0x") else secret
        if len(hex_secret) in (64, 128) and _HEX.fullmatch(hex_secret):
            return self.load_from_bytes(bytes.fromhex(hex_secret))
        try:
            secret_bytes = base58.b58decode(secret)
        except ValueError as exc:
            raise ValueError("Solana private key is neither base58 nor hex.") from exc
        return self.load_from_bytes(secret_bytes)

    def load_from_bytes(self, secret_bytes: bytes) -> KeyMaterial:
        if len(secret_bytes) not in (32, 64):
            raise ValueError(
                "Unsupported private key length. Expected 32 or 64 bytes after decoding."
            )

        seed = secret_bytes[:32]
        try:
            signing_key = SigningKey(seed)
        except nacl_exceptions.CryptoError as exc:
            raise ValueError("Failed to construct signing key from provided secret.") from exc

        if len(secret_bytes) == 64 and secret_bytes[32:] != bytes(signing_key.verify_key):
            raise ValueError("Public half of the 64-byte secret does not match its seed.")

        return KeyMaterial(signing_key=signing_key)

    def load_evm_key(self, secret: str) -> EvmKeyMaterial:
        secret = secret.strip()
        if not secret:
            raise ValueError("Private key input is empty.")
        if not secret.startswith("0x"):
            secret = "0x" + secret
        try:
            account = Account.from_key(secret)
        except (ValueError, TypeError) as exc:
            raise ValueError("Failed to load EVM private key.") from exc

        return EvmKeyMaterial(account=account)
