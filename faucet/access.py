from dataclasses import dataclass
from .errors import Unauthorized


@dataclass(frozen=True)
class CallContext:
    """What the host knows about the call in progress."""

    current_account_id: str      # the faucet's own identity
    predecessor_account_id: str  # whoever issued this call
    account_balance: int = 0     # pool balance when the call started


def assert_self(ctx: CallContext) -> None:
    """Only self-calls may use owner operations."""
    if ctx.predecessor_account_id != ctx.current_account_id:
        raise Unauthorized(
            f"Can only be called by owner {ctx.current_account_id!r}, not {ctx.predecessor_account_id!r}"
        )
