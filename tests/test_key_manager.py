import base58
import pytest
from eth_account import Account
from nacl.signing import SigningKey

from usdc_pay.payments.key_manager import KeyManager


@pytest.fixture
def signing_key():
    return SigningKey.generate()


def test_load_base58_keypair(signing_key):
    secret = bytes(signing_key) + bytes(signing_key.verify_key)
    material = KeyManager().load_solana_key(base58.b58encode(secret).decode("ascii"))

    assert material.public_key_b58 == base58.b58encode(bytes(signing_key.verify_key)).decode("ascii")
    assert material.secret_key_64 == secret


def test_load_hex_seed_with_prefix(signing_key):
    material = KeyManager().load_solana_key("0x" + bytes(signing_key).hex())
    assert material.secret_key_bytes == bytes(signing_key)


def test_mismatched_keypair_halves_are_rejected(signing_key):
    other = SigningKey.generate()
    secret = bytes(signing_key) + bytes(other.verify_key)
    with pytest.raises(ValueError):
        KeyManager().load_from_bytes(secret)


@pytest.mark.parametrize("secret", ["", "   ", "0OIl", base58.b58encode(b"short").decode("ascii")])
def test_invalid_solana_secrets(secret):
    with pytest.raises(ValueError):
        KeyManager().load_solana_key(secret)


def test_load_evm_key_with_and_without_prefix():
    account = Account.create()
    secret = account.key.hex()
    bare = secret[2:] if secret.startswith("0x") else secret

    manager = KeyManager()
    assert manager.load_evm_key(bare).address == account.address
    assert manager.load_evm_key("0x" + bare).address == account.address


def test_invalid_evm_key():
    with pytest.raises(ValueError):
        KeyManager().load_evm_key("0x1234")
