import os
from typing import Optional, Literal
from pydantic import BaseModel, Field

from .models import U32_MAX


class Settings(BaseModel):
    """Service settings; ``from_env`` reads the FAUCET_* environment variables."""

    account_id: str = "faucet"
    account_suffix: Optional[str] = None  # initialize at startup when set
    min_difficulty: int = Field(default=20, ge=0, le=U32_MAX)
    pool_balance: int = Field(default=10**27, ge=0)
    state_path: Optional[str] = None
    log_path: Optional[str] = None
    server_key_path: Optional[str] = None
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    @classmethod
    def from_env(cls) -> "Settings":
        env = {
            "account_id": os.getenv("FAUCET_ACCOUNT_ID"),
            "account_suffix": os.getenv("FAUCET_ACCOUNT_SUFFIX"),
            "min_difficulty": os.getenv("FAUCET_MIN_DIFFICULTY"),
            "pool_balance": os.getenv("FAUCET_POOL_BALANCE"),
            "state_path": os.getenv("FAUCET_STATE_PATH"),
            "log_path": os.getenv("FAUCET_LOG_PATH"),
            "server_key_path": os.getenv("FAUCET_SERVER_KEY_PATH"),
            "log_level": os.getenv("FAUCET_LOG_LEVEL"),
            "log_format": os.getenv("FAUCET_LOG_FORMAT"),
        }
        return cls(**{k: v for k, v in env.items() if v})
