import hashlib, hmac, os, json, time, base64
from typing import Dict, Any, Optional


# --- Canonicalization & hashing helpers ---
def canonical_json(obj: Any) -> bytes:
    """Canonical JSON bytes for deterministic hashing/signing."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def sha256_digest(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def leading_zero_bits(data: bytes) -> int:
    """Length of the run of zero bits starting at the most significant bit.

    Counting stops at the first byte that holds a set bit, so zero bytes after
    it are never added.
    """
    total = 0
    for byte in data:
        zeros = 8 - byte.bit_length()
        total += zeros
        if zeros < 8:
            break
    return total


def now_ms() -> int:
    return int(time.time() * 1000)


# --- Secrets management ---
def _read_env_bytes(var_name: str) -> Optional[bytes]:
    val = os.getenv(var_name)
    if not val:
        return None
    # Try hex, then base64, else raw utf-8
    try:
        return bytes.fromhex(val)
    except ValueError:
        pass
    try:
        return base64.b64decode(val, validate=True)
    except ValueError:
        pass
    return val.encode("utf-8")


_PROCESS_KEY: Optional[bytes] = None


def get_server_key(key_path: Optional[str] = None) -> bytes:
    """Get the HMAC key used to sign receipts.

    Priority: env SERVER_KEY (hex/base64/raw) -> key file -> per-process random key.
    """
    global _PROCESS_KEY
    b = _read_env_bytes("SERVER_KEY")
    if b:
        return b
    if key_path:
        if not os.path.exists(key_path):
            os.makedirs(os.path.dirname(os.path.abspath(key_path)), exist_ok=True)
            with open(key_path, "wb") as f:
                f.write(os.urandom(32))
        with open(key_path, "rb") as f:
            return f.read()
    if _PROCESS_KEY is None:
        _PROCESS_KEY = os.urandom(32)
    return _PROCESS_KEY


# --- HMAC signing ---
def hmac_sign_bytes(key: bytes, payload_bytes: bytes) -> str:
    return hmac.new(key, payload_bytes, hashlib.sha256).hexdigest()


def hmac_sign(payload: Dict[str, Any], key: Optional[bytes] = None) -> str:
    msg = canonical_json(payload)
    return hmac_sign_bytes(key if key is not None else get_server_key(), msg)


def hmac_verify(payload: Dict[str, Any], sig: str, key: Optional[bytes] = None) -> bool:
    return hmac.compare_digest(hmac_sign(payload, key), sig)
