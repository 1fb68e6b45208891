from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Set, Union, Literal, Annotated

U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1


def _check_hex(value: str) -> str:
    try:
        bytes.fromhex(value)
    except ValueError:
        raise ValueError("public_key must be hex encoded")
    return value.lower()


# --------------------
# Registry state
# --------------------

class RegistryState(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    suffix: str
    min_difficulty: int = Field(ge=0, le=U32_MAX)
    granted: Set[str] = Field(default_factory=set)


# --------------------
# Ledger requests
# --------------------

class FullAccess(BaseModel):
    kind: Literal["full_access"] = "full_access"


class FunctionCallAccess(BaseModel):
    kind: Literal["function_call"] = "function_call"
    allowance: int = 0
    receiver_id: str
    method_names: List[str] = Field(default_factory=list)


Permission = Annotated[Union[FullAccess, FunctionCallAccess], Field(discriminator="kind")]


class CreateAccountAction(BaseModel):
    type: Literal["create_account"] = "create_account"


class TransferAction(BaseModel):
    type: Literal["transfer"] = "transfer"
    amount: int = Field(ge=0)


class AddKeyAction(BaseModel):
    type: Literal["add_key"] = "add_key"
    public_key: str
    permission: Permission

    @field_validator("public_key")
    @classmethod
    def check_public_key(cls, v: str) -> str:
        return _check_hex(v)


Action = Annotated[
    Union[CreateAccountAction, TransferAction, AddKeyAction],
    Field(discriminator="type"),
]


class LedgerRequest(BaseModel):
    """Outbound request for the ledger; the faucet never waits on its result."""

    receiver_id: str
    purpose: Literal["provision", "delegate"]
    actions: List[Action]

    @property
    def attached_amount(self) -> int:
        return sum(a.amount for a in self.actions if isinstance(a, TransferAction))


class LedgerOutcome(BaseModel):
    receiver_id: str
    success: bool
    reason: Optional[str] = None


# --------------------
# API models
# --------------------

class InitializeRequest(BaseModel):
    suffix: str
    min_difficulty: int = Field(ge=0, le=U32_MAX)


class CreateAccountRequest(BaseModel):
    account_id: str
    public_key: str
    nonce: int = Field(ge=0, le=U64_MAX)

    @field_validator("public_key")
    @classmethod
    def check_public_key(cls, v: str) -> str:
        return _check_hex(v)


class SetMinDifficultyRequest(BaseModel):
    min_difficulty: int = Field(ge=0, le=U32_MAX)


class AddAccessKeyRequest(BaseModel):
    public_key: str

    @field_validator("public_key")
    @classmethod
    def check_public_key(cls, v: str) -> str:
        return _check_hex(v)


class StateResponse(BaseModel):
    suffix: str
    min_difficulty: int
    granted_count: int


class GrantReceipt(BaseModel):
    txid: str
    request: LedgerRequest
    sig: str
