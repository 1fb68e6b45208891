"""Ledger collaborator interface, an in-memory ledger, and the request journal."""

import copy, os, json
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Protocol

from .accounts import is_valid_account_id
from .models import LedgerRequest, LedgerOutcome, CreateAccountAction, TransferAction, AddKeyAction
from .utils import now_ms, sha256_hex


class Ledger(Protocol):
    def get_balance(self, account_id: str) -> int: ...

    def execute(self, sender_id: str, request: LedgerRequest) -> LedgerOutcome: ...


class LedgerError(Exception):
    """An action the ledger refused; reported in the outcome, never raised to callers."""


@dataclass
class LedgerAccount:
    balance: int = 0
    keys: Dict[str, Dict[str, Any]] = field(default_factory=dict)  # hex public key -> permission


class InMemoryLedger:
    """Applies requests action by action; a failed request leaves every account as it was.

    The attached transfer amount is taken from the sender up front and comes
    back to it when any action fails.
    """

    def __init__(self):
        self.accounts: Dict[str, LedgerAccount] = {}

    def add_account(self, account_id: str, balance: int = 0) -> LedgerAccount:
        acc = self.accounts[account_id] = LedgerAccount(balance=balance)
        return acc

    def has_account(self, account_id: str) -> bool:
        return account_id in self.accounts

    def get_balance(self, account_id: str) -> int:
        acc = self.accounts.get(account_id)
        return acc.balance if acc else 0

    def execute(self, sender_id: str, request: LedgerRequest) -> LedgerOutcome:
        snapshot = copy.deepcopy(self.accounts)
        try:
            self._debit(sender_id, request.attached_amount)
            for action in request.actions:
                self._apply(request.receiver_id, action)
        except LedgerError as e:
            self.accounts = snapshot
            return LedgerOutcome(receiver_id=request.receiver_id, success=False, reason=str(e))
        return LedgerOutcome(receiver_id=request.receiver_id, success=True)

    def _debit(self, sender_id: str, amount: int) -> None:
        sender = self.accounts.get(sender_id)
        if sender is None:
            raise LedgerError(f"Sender {sender_id!r} does not exist")
        if sender.balance < amount:
            raise LedgerError(f"Sender {sender_id!r} cannot cover {amount}")
        sender.balance -= amount

    def _receiver(self, account_id: str) -> LedgerAccount:
        acc = self.accounts.get(account_id)
        if acc is None:
            raise LedgerError(f"Account {account_id!r} does not exist")
        return acc

    def _apply(self, receiver_id: str, action) -> None:
        if isinstance(action, CreateAccountAction):
            if receiver_id in self.accounts:
                raise LedgerError(f"Account {receiver_id!r} already exists")
            if not is_valid_account_id(receiver_id):
                raise LedgerError(f"Account id {receiver_id!r} is invalid")
            self.accounts[receiver_id] = LedgerAccount()
        elif isinstance(action, TransferAction):
            self._receiver(receiver_id).balance += action.amount
        elif isinstance(action, AddKeyAction):
            acc = self._receiver(receiver_id)
            if action.public_key in acc.keys:
                raise LedgerError(f"Key {action.public_key} is already added to {receiver_id!r}")
            acc.keys[action.public_key] = action.permission.model_dump()
        else:
            raise LedgerError(f"Unsupported action {action!r}")


class RequestLog:
    """Append-only journal of ledger requests and their outcomes.

    Written as JSONL when a path is given, otherwise kept in memory.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._records: List[Dict[str, Any]] = []
        if path:
            os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
            self._records = list(self._read_file())

    def _read_file(self):
        if not self.path or not os.path.exists(self.path):
            return
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    yield json.loads(line)
                except json.JSONDecodeError:
                    continue

    def __len__(self) -> int:
        return len(self._records)

    def append(self, record: Dict[str, Any]) -> str:
        record = {"seq": len(self._records), "ts": now_ms(), **record}
        data = json.dumps(record, sort_keys=True).encode()
        txid = sha256_hex(data)
        entry = {"txid": txid, **record}
        if self.path:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        self._records.append(entry)
        return txid

    def find(self, txid: str, type: Optional[str] = None) -> Optional[Dict[str, Any]]:
        for obj in self._records:
            if obj.get("txid") == txid and (type is None or obj.get("type") == type):
                return obj
        return None

    def records(self, type: Optional[str] = None) -> List[Dict[str, Any]]:
        return [r for r in self._records if type is None or r.get("type") == type]
