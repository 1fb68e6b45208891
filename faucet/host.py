"""Execution host for the faucet registry.

Calls are serialized on one lock. A call works on a fresh copy of the stored
state, which is saved only when the call returns normally, so a failed call
changes nothing. Ledger requests produced by a committed call are journaled
and queued; ``flush`` hands them to the ledger and records what happened
without feeding anything back into the registry.
"""

import threading
from contextlib import contextmanager
from typing import List, Optional, Tuple

import structlog

from .access import CallContext
from .errors import AlreadyInitialized, FaucetError
from .ledger import Ledger, InMemoryLedger, RequestLog
from .models import RegistryState, LedgerRequest, LedgerOutcome, GrantReceipt
from .registry import AccountRegistry
from .store import StateStore, MemoryStateStore
from .utils import get_server_key, hmac_sign

logger = structlog.get_logger(__name__)


class _Call:
    def __init__(self, registry: AccountRegistry):
        self.registry = registry
        self.requests: List[LedgerRequest] = []
        self.receipts: List[GrantReceipt] = []

    def emit(self, request: LedgerRequest) -> None:
        self.requests.append(request)


class FaucetHost:
    def __init__(
        self,
        account_id: str,
        store: Optional[StateStore] = None,
        ledger: Optional[Ledger] = None,
        request_log: Optional[RequestLog] = None,
        server_key: Optional[bytes] = None,
    ):
        self.account_id = account_id
        self.store = store if store is not None else MemoryStateStore()
        self.ledger = ledger if ledger is not None else InMemoryLedger()
        self.request_log = request_log if request_log is not None else RequestLog()
        self._server_key = server_key if server_key is not None else get_server_key()
        self._lock = threading.RLock()
        self._pending: List[Tuple[str, LedgerRequest]] = []

    def _context(self, caller: str) -> CallContext:
        # Queued grants are already spoken for.
        reserved = sum(request.attached_amount for _txid, request in self._pending)
        return CallContext(
            current_account_id=self.account_id,
            predecessor_account_id=caller,
            account_balance=max(0, self.ledger.get_balance(self.account_id) - reserved),
        )

    @contextmanager
    def _call(self, method: str, commit: bool = False):
        """Run one call under the lock.

        Yields a ``_Call``; requests it emits are journaled before the state is
        saved and queued right after, all without releasing the lock.
        """
        with self._lock:
            call = _Call(AccountRegistry(self.store.load()))
            try:
                yield call
            except FaucetError as e:
                logger.info("call_rejected", method=method, error=e.code, detail=e.message)
                raise
            staged = [(self._journal(request), request) for request in call.requests]
            if commit:
                self.store.save(call.registry.state)
            self._pending.extend(staged)
            call.receipts = [self._receipt(txid, request) for txid, request in staged]

    # --- lifecycle ---
    @property
    def initialized(self) -> bool:
        with self._lock:
            return self.store.load() is not None

    def initialize(self, suffix: str, min_difficulty: int) -> RegistryState:
        with self._call("initialize", commit=True) as call:
            state = call.registry.initialize(suffix, min_difficulty)
        return state.model_copy(deep=True)

    def ensure_initialized(self, suffix: str, min_difficulty: int) -> RegistryState:
        """Initialize unless state already exists; existing state wins."""
        with self._lock:
            try:
                return self.initialize(suffix, min_difficulty)
            except AlreadyInitialized:
                return self.state()

    # --- views ---
    def state(self) -> RegistryState:
        with self._call("state") as call:
            return call.registry.state.model_copy(deep=True)

    def get_suffix(self) -> str:
        with self._call("get_suffix") as call:
            return call.registry.get_suffix()

    def get_min_difficulty(self) -> int:
        with self._call("get_min_difficulty") as call:
            return call.registry.get_min_difficulty()

    def get_granted_count(self) -> int:
        with self._call("get_granted_count") as call:
            return call.registry.get_granted_count()

    # --- calls ---
    def create_account(self, caller: str, account_id: str, public_key: bytes, nonce: int) -> GrantReceipt:
        with self._call("create_account", commit=True) as call:
            call.emit(call.registry.create_account(self._context(caller), account_id, public_key, nonce))
        return call.receipts[0]

    def set_min_difficulty(self, caller: str, min_difficulty: int) -> None:
        with self._call("set_min_difficulty", commit=True) as call:
            call.registry.set_min_difficulty(self._context(caller), min_difficulty)

    def add_access_key(self, caller: str, public_key: bytes) -> GrantReceipt:
        with self._call("add_access_key") as call:
            call.emit(call.registry.add_access_key(self._context(caller), public_key))
        return call.receipts[0]

    # --- outbox ---
    def _journal(self, request: LedgerRequest) -> str:
        return self.request_log.append({"type": "request", "request": request.model_dump(mode="json")})

    def _receipt(self, txid: str, request: LedgerRequest) -> GrantReceipt:
        sig = hmac_sign({"txid": txid, "request": request.model_dump(mode="json")}, self._server_key)
        return GrantReceipt(txid=txid, request=request, sig=sig)

    @property
    def pending(self) -> List[LedgerRequest]:
        with self._lock:
            return [request for _txid, request in self._pending]

    def flush(self) -> List[LedgerOutcome]:
        """Submit queued requests to the ledger; outcomes are journaled, not acted on."""
        outcomes = []
        with self._lock:
            while self._pending:
                txid, request = self._pending.pop(0)
                outcome = self.ledger.execute(self.account_id, request)
                self.request_log.append({"type": "outcome", "request_txid": txid, **outcome.model_dump()})
                if outcome.success:
                    logger.info("ledger_request_applied", txid=txid, receiver_id=request.receiver_id,
                                purpose=request.purpose, amount=request.attached_amount)
                else:
                    logger.warning("ledger_request_failed", txid=txid, receiver_id=request.receiver_id,
                                   purpose=request.purpose, reason=outcome.reason)
                outcomes.append(outcome)
        return outcomes
