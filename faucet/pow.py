from typing import Optional
from .utils import sha256_digest, leading_zero_bits

NONCE_MAX = 2**64 - 1
SEPARATOR = b":"


def build_message(identity: bytes, public_key: bytes, nonce: int) -> bytes:
    """identity ':' public_key ':' nonce (8 bytes, little-endian)."""
    return identity + SEPARATOR + public_key + SEPARATOR + nonce.to_bytes(8, "little")


def pow_score(identity: bytes, public_key: bytes, nonce: int) -> int:
    return leading_zero_bits(sha256_digest(build_message(identity, public_key, nonce)))


def verify(identity: bytes, public_key: bytes, nonce: int, required_bits: int) -> bool:
    return pow_score(identity, public_key, nonce) >= required_bits


def solve(identity: bytes, public_key: bytes, required_bits: int,
          start: int = 0, max_attempts: Optional[int] = None) -> int:
    """Search nonces upward from ``start`` for the first one meeting ``required_bits``.

    Raises ValueError when ``max_attempts`` nonces were tried without success
    or the u64 nonce space is exhausted.
    """
    # The message prefix is fixed; only the trailing nonce bytes change.
    prefix = identity + SEPARATOR + public_key + SEPARATOR
    nonce = start
    attempts = 0
    while nonce <= NONCE_MAX:
        if max_attempts is not None and attempts >= max_attempts:
            break
        if leading_zero_bits(sha256_digest(prefix + nonce.to_bytes(8, "little"))) >= required_bits:
            return nonce
        nonce += 1
        attempts += 1
    raise ValueError(f"No nonce with {required_bits} leading zero bits found from {start} after {attempts} attempts")
