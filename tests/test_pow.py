import itertools

import pytest

from faucet.pow import build_message, pow_score, verify, solve
from faucet.utils import leading_zero_bits, sha256_digest

ZERO_KEY = bytes(33)


def test_leading_zero_bits():
    assert leading_zero_bits(bytes(4)) == 32
    assert leading_zero_bits(bytes([255] * 4)) == 0
    assert leading_zero_bits(bytes([254] * 4)) == 0
    assert leading_zero_bits(b"") == 0
    assert leading_zero_bits(bytes([127])) == 1
    assert leading_zero_bits(bytes(32)) == 256
    assert leading_zero_bits(bytes([1] * 4)) == 7
    assert leading_zero_bits(bytes([0, 0, 255 >> 3])) == 19


def test_leading_zero_bits_stops_at_first_set_bit():
    # the trailing zero byte is not counted
    assert leading_zero_bits(bytes([0, 0, 0x1F, 0])) == 19
    assert leading_zero_bits(bytes([0x80, 0, 0, 0])) == 0


def test_build_message_layout():
    msg = build_message(b"test.alice", b"\x01\x02", 1)
    assert msg == b"test.alice:\x01\x02:\x01\x00\x00\x00\x00\x00\x00\x00"


def test_nonce_must_fit_u64():
    with pytest.raises(OverflowError):
        build_message(b"a", b"", 2**64)


def test_pow_score_matches_digest():
    msg = build_message(b"test.alice", ZERO_KEY, 5)
    assert pow_score(b"test.alice", ZERO_KEY, 5) == leading_zero_bits(sha256_digest(msg))


def test_known_proofs():
    assert verify(b"test.alice", ZERO_KEY, 89949, 20)
    assert verify(b"test.alice", ZERO_KEY, 123, 10)


def test_verify_deterministic():
    for nonce in range(50):
        first = verify(b"test.alice", ZERO_KEY, nonce, 4)
        assert all(verify(b"test.alice", ZERO_KEY, nonce, 4) == first for _ in range(3))


def test_zero_difficulty_always_passes():
    for nonce in (0, 1, 2**64 - 1):
        assert verify(b"anything", b"", nonce, 0)


def test_weak_proof_rejected():
    nonce = next(n for n in itertools.count() if pow_score(b"test.alice", ZERO_KEY, n) < 20)
    assert not verify(b"test.alice", ZERO_KEY, nonce, 20)


def test_solve():
    difficulty = 8
    nonce = solve(b"test.alice", ZERO_KEY, difficulty)
    assert verify(b"test.alice", ZERO_KEY, nonce, difficulty)
    # first match
    assert not any(verify(b"test.alice", ZERO_KEY, n, difficulty) for n in range(nonce))


def test_solve_from_start():
    first = solve(b"test.alice", ZERO_KEY, 4)
    second = solve(b"test.alice", ZERO_KEY, 4, start=first + 1)
    assert second > first
    assert verify(b"test.alice", ZERO_KEY, second, 4)


def test_solve_gives_up():
    with pytest.raises(ValueError):
        solve(b"test.alice", ZERO_KEY, 256, max_attempts=10)
