"""Account-id rules and key material for faucet accounts."""

import re
from typing import Tuple

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives import serialization

MIN_ACCOUNT_ID_LEN = 2
MAX_ACCOUNT_ID_LEN = 64
VALID_ACCOUNT_RE = re.compile(r"^(([a-z\d]+[-_])*[a-z\d]+\.)*([a-z\d]+[-_])*[a-z\d]+$")

# Curve tag prefixed to raw key bytes in the ledger's key encoding.
ED25519_CURVE_TAG = b"\x00"


def is_valid_account_id(account_id: str) -> bool:
    return (
        MIN_ACCOUNT_ID_LEN <= len(account_id) <= MAX_ACCOUNT_ID_LEN
        and VALID_ACCOUNT_RE.match(account_id) is not None
    )


def full_account_id(name: str, suffix: str) -> str:
    """Join a top-level name to the faucet suffix, e.g. ``test`` + ``.alice``.

    Raises ValueError if the name contains a dot or the result is not a valid
    account id.
    """
    if "." in name:
        raise ValueError(f"Name {name!r} must not contain '.'")
    account_id = name + suffix
    if not is_valid_account_id(account_id):
        raise ValueError(f"Invalid account id {account_id!r}")
    return account_id


def encode_public_key(private_key: Ed25519PrivateKey) -> bytes:
    raw = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return ED25519_CURVE_TAG + raw


def generate_key_pair() -> Tuple[Ed25519PrivateKey, bytes]:
    """New ed25519 key pair; the public half comes back ledger-encoded (33 bytes)."""
    private_key = Ed25519PrivateKey.generate()
    return private_key, encode_public_key(private_key)
