"""Account registry: the faucet's state machine.

The registry owns a single ``RegistryState`` and is the only code that
writes to it. Successful grants return a ``LedgerRequest`` for the host to
hand to the ledger; the registry never sees what the ledger does with it.
"""

from typing import Optional

import structlog

from .access import CallContext, assert_self
from .errors import AlreadyInitialized, NotInitialized, SuffixMismatch, DuplicateAccount, ProofOfWorkTooWeak
from .models import (
    RegistryState, LedgerRequest, CreateAccountAction, TransferAction, AddKeyAction,
    FullAccess, FunctionCallAccess,
)
from .pow import verify

logger = structlog.get_logger(__name__)

# Each grant receives 1/GRANT_DIVISOR of what is left in the pool.
GRANT_DIVISOR = 1000
FAUCET_METHOD = "create_account"


def grant_amount(pool_balance: int) -> int:
    return pool_balance // GRANT_DIVISOR


class AccountRegistry:
    def __init__(self, state: Optional[RegistryState] = None):
        self._state = state

    @property
    def initialized(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> RegistryState:
        if self._state is None:
            raise NotInitialized()
        return self._state

    def initialize(self, suffix: str, min_difficulty: int) -> RegistryState:
        if self._state is not None:
            raise AlreadyInitialized()
        self._state = RegistryState(suffix=suffix, min_difficulty=min_difficulty)
        logger.info("registry_initialized", suffix=suffix, min_difficulty=min_difficulty)
        return self._state

    # --- read-only accessors ---
    def get_suffix(self) -> str:
        return self.state.suffix

    def get_min_difficulty(self) -> int:
        return self.state.min_difficulty

    def get_granted_count(self) -> int:
        return len(self.state.granted)

    def is_granted(self, account_id: str) -> bool:
        return account_id in self.state.granted

    # --- faucet ---
    def create_account(self, ctx: CallContext, account_id: str, public_key: bytes, nonce: int) -> LedgerRequest:
        state = self.state
        if not account_id.endswith(state.suffix):
            raise SuffixMismatch(f"Account {account_id!r} has to end with {state.suffix!r}")
        if account_id in state.granted:
            raise DuplicateAccount(f"Account {account_id!r} is already created")
        if not verify(account_id.encode("utf-8"), public_key, nonce, state.min_difficulty):
            raise ProofOfWorkTooWeak(f"The proof of work is weaker than {state.min_difficulty} bits")

        # Final even if the ledger later fails to create the account.
        state.granted.add(account_id)
        amount = grant_amount(ctx.account_balance)
        logger.info("account_granted", account_id=account_id, amount=amount, granted_count=len(state.granted))
        return LedgerRequest(
            receiver_id=account_id,
            purpose="provision",
            actions=[
                CreateAccountAction(),
                TransferAction(amount=amount),
                AddKeyAction(public_key=public_key.hex(), permission=FullAccess()),
            ],
        )

    # --- owner operations ---
    def set_min_difficulty(self, ctx: CallContext, min_difficulty: int) -> None:
        assert_self(ctx)
        state = self.state
        old = state.min_difficulty
        state.min_difficulty = min_difficulty
        logger.info("min_difficulty_changed", old=old, new=min_difficulty)

    def add_access_key(self, ctx: CallContext, public_key: bytes) -> LedgerRequest:
        assert_self(ctx)
        if not self.initialized:
            raise NotInitialized()
        logger.info("access_key_delegated", public_key=public_key.hex())
        return LedgerRequest(
            receiver_id=ctx.current_account_id,
            purpose="delegate",
            actions=[
                AddKeyAction(
                    public_key=public_key.hex(),
                    permission=FunctionCallAccess(
                        allowance=0,
                        receiver_id=ctx.current_account_id,
                        method_names=[FAUCET_METHOD],
                    ),
                ),
            ],
        )
