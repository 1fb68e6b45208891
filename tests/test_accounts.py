import pytest

from faucet.accounts import is_valid_account_id, full_account_id, generate_key_pair, encode_public_key
from faucet.config import Settings


def test_valid_account_ids():
    for account_id in ("ab", "test.alice", "a-b_c.alice", "user0.near", "a" * 64):
        assert is_valid_account_id(account_id), account_id


def test_invalid_account_ids():
    for account_id in ("a", "a" * 65, "BAD.alice", ".alice", "a..b", "a-.b", "bad!.alice", ""):
        assert not is_valid_account_id(account_id), account_id


def test_full_account_id():
    assert full_account_id("test", ".alice") == "test.alice"
    with pytest.raises(ValueError):
        full_account_id("sub.test", ".alice")
    with pytest.raises(ValueError):
        full_account_id("Test", ".alice")


def test_generate_key_pair():
    private_key, public_key = generate_key_pair()
    assert len(public_key) == 33
    assert public_key[0] == 0
    assert encode_public_key(private_key) == public_key
    _, other = generate_key_pair()
    assert other != public_key


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("FAUCET_ACCOUNT_ID", "meta")
    monkeypatch.setenv("FAUCET_ACCOUNT_SUFFIX", ".meta")
    monkeypatch.setenv("FAUCET_MIN_DIFFICULTY", "18")
    monkeypatch.delenv("FAUCET_STATE_PATH", raising=False)
    settings = Settings.from_env()
    assert settings.account_id == "meta"
    assert settings.account_suffix == ".meta"
    assert settings.min_difficulty == 18
    assert settings.state_path is None
    assert settings.log_format == "console"
