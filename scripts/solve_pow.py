#!/usr/bin/env python3
"""Find a nonce for a faucet create_account call.

Usage:
    python scripts/solve_pow.py test.alice <public_key_hex> --difficulty 20
"""

import argparse
import sys
import time

from faucet.pow import solve, pow_score


def main() -> int:
    parser = argparse.ArgumentParser(description="Proof-of-work nonce search for the faucet")
    parser.add_argument("account_id", help="full account id, suffix included")
    parser.add_argument("public_key", help="ledger-encoded public key, hex")
    parser.add_argument("--difficulty", type=int, default=20, help="required leading zero bits")
    parser.add_argument("--start", type=int, default=0, help="first nonce to try")
    parser.add_argument("--max-attempts", type=int, default=None)
    args = parser.parse_args()

    identity = args.account_id.encode("utf-8")
    public_key = bytes.fromhex(args.public_key)
    start = time.time()
    try:
        nonce = solve(identity, public_key, args.difficulty, start=args.start, max_attempts=args.max_attempts)
    except ValueError as e:
        print(e, file=sys.stderr)
        return 1
    elapsed_ms = (time.time() - start) * 1000
    print(f"nonce={nonce}  score={pow_score(identity, public_key, nonce)}  time={elapsed_ms:.1f}ms")
    return 0


if __name__ == "__main__":
    sys.exit(main())
