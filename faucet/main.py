from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import Settings
from .errors import FaucetError
from .host import FaucetHost
from .ledger import InMemoryLedger, RequestLog
from .log import setup_logging
from .models import (
    InitializeRequest, CreateAccountRequest, SetMinDifficultyRequest, AddAccessKeyRequest,
    StateResponse, GrantReceipt,
)
from .store import JsonFileStateStore, MemoryStateStore
from .utils import get_server_key

ANONYMOUS = "anonymous"

router = APIRouter()


def get_host(request: Request) -> FaucetHost:
    return request.app.state.host


def _state_response(host: FaucetHost) -> StateResponse:
    state = host.state()
    return StateResponse(suffix=state.suffix, min_difficulty=state.min_difficulty, granted_count=len(state.granted))


@router.get("/")
def root(host: FaucetHost = Depends(get_host)):
    return {
        "ok": True,
        "name": "pow-faucet",
        "account_id": host.account_id,
        "initialized": host.initialized,
        "endpoints": [
            "/initialize", "/suffix", "/min_difficulty", "/granted_count", "/create_account",
            "/set_min_difficulty", "/add_access_key", "/requests/{txid}",
        ],
    }


@router.post("/initialize", response_model=StateResponse)
def initialize(req: InitializeRequest, host: FaucetHost = Depends(get_host)):
    host.initialize(req.suffix, req.min_difficulty)
    return _state_response(host)


@router.get("/suffix")
def get_suffix(host: FaucetHost = Depends(get_host)):
    return {"suffix": host.get_suffix()}


@router.get("/min_difficulty")
def get_min_difficulty(host: FaucetHost = Depends(get_host)):
    return {"min_difficulty": host.get_min_difficulty()}


@router.get("/granted_count")
def get_granted_count(host: FaucetHost = Depends(get_host)):
    return {"granted_count": host.get_granted_count()}


@router.post("/create_account", response_model=GrantReceipt)
def create_account(
    req: CreateAccountRequest,
    background_tasks: BackgroundTasks,
    host: FaucetHost = Depends(get_host),
    x_caller_id: str = Header(default=ANONYMOUS),
):
    receipt = host.create_account(x_caller_id, req.account_id, bytes.fromhex(req.public_key), req.nonce)
    # Provisioning happens after the response; its outcome only reaches the journal.
    background_tasks.add_task(host.flush)
    return receipt


@router.post("/set_min_difficulty", response_model=StateResponse)
def set_min_difficulty(
    req: SetMinDifficultyRequest,
    host: FaucetHost = Depends(get_host),
    x_caller_id: str = Header(default=ANONYMOUS),
):
    host.set_min_difficulty(x_caller_id, req.min_difficulty)
    return _state_response(host)


@router.post("/add_access_key", response_model=GrantReceipt)
def add_access_key(
    req: AddAccessKeyRequest,
    background_tasks: BackgroundTasks,
    host: FaucetHost = Depends(get_host),
    x_caller_id: str = Header(default=ANONYMOUS),
):
    receipt = host.add_access_key(x_caller_id, bytes.fromhex(req.public_key))
    background_tasks.add_task(host.flush)
    return receipt


@router.get("/requests/{txid}")
def get_request(txid: str, host: FaucetHost = Depends(get_host)):
    rec = host.request_log.find(txid)
    if not rec:
        raise HTTPException(status_code=404, detail="Unknown txid")
    return rec


def build_host(settings: Settings) -> FaucetHost:
    ledger = InMemoryLedger()
    ledger.add_account(settings.account_id, settings.pool_balance)
    store = JsonFileStateStore(settings.state_path) if settings.state_path else MemoryStateStore()
    return FaucetHost(
        settings.account_id,
        store=store,
        ledger=ledger,
        request_log=RequestLog(settings.log_path),
        server_key=get_server_key(settings.server_key_path),
    )


def create_app(settings: Optional[Settings] = None, host: Optional[FaucetHost] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    if host is None:
        host = build_host(settings)
    if settings.account_suffix is not None:
        host.ensure_initialized(settings.account_suffix, settings.min_difficulty)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        setup_logging(settings.log_level, settings.log_format)
        yield

    app = FastAPI(title="PoW Faucet", lifespan=lifespan)
    app.state.host = host
    app.state.settings = settings

    @app.exception_handler(FaucetError)
    async def faucet_error_handler(_request: Request, exc: FaucetError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.code, "detail": exc.message})

    app.include_router(router)
    return app


app = create_app()
