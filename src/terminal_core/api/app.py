"""FastAPI application — broker and trader endpoints over the terminal core."""

import os
from datetime import datetime, timezone
from decimal import Decimal
from typing import Generator, Optional, Union

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from terminal_core.config.loader import load_config
from terminal_core.db.engine import get_session as _get_session, init_engine
from terminal_core.errors import (
    AlreadyClosed,
    BalanceTooLow,
    InsufficientFunds,
    InvalidInput,
    NotAuthorized,
    NotFound,
    OracleUnavailable,
    PersistenceFailure,
    TerminalError,
)
from terminal_core.models import Account, Position, Signal
from terminal_core.oracle.fetcher import build_fetcher
from terminal_core.terminal import TradingTerminal

logger = structlog.get_logger("api")

app = FastAPI(
    title="Trading Terminal API",
    description="Broker allocation, signal broadcast and copy-trading ledger",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

config = load_config(os.environ.get("TERMINAL_CONFIG", "config.yaml"))

_terminal: Optional[TradingTerminal] = None

_STATUS_BY_ERROR: dict[type[TerminalError], int] = {
    InvalidInput: 400,
    InsufficientFunds: 402,
    BalanceTooLow: 402,
    NotAuthorized: 403,
    NotFound: 404,
    AlreadyClosed: 409,
    OracleUnavailable: 503,
    PersistenceFailure: 500,
}

Amount = Union[float, str]


def get_db() -> Generator[Session, None, None]:
    """Dependency to get DB session."""
    gen = _get_session()
    session = next(gen)
    try:
        yield session
    finally:
        try:
            next(gen)
        except StopIteration:
            pass


def get_terminal() -> TradingTerminal:
    """Dependency to get the process-wide terminal."""
    if _terminal is None:
        raise RuntimeError("Terminal not initialised — app startup has not run")
    return _terminal


@app.on_event("startup")
async def startup_event():
    """Initialize database engine and price oracle on startup."""
    global _terminal
    init_engine(config.database.url)
    _terminal = TradingTerminal(config, build_fetcher(config.oracle))
    logger.info("terminal_initialised", oracle=config.oracle.kind)


@app.on_event("shutdown")
async def shutdown_event():
    if _terminal is not None:
        await _terminal.fetcher.close()


@app.exception_handler(TerminalError)
async def terminal_error_handler(request: Request, exc: TerminalError):
    status = _STATUS_BY_ERROR.get(type(exc), 400)
    body = {"detail": exc.message, "kind": exc.kind, "retryable": exc.retryable}
    if isinstance(exc, PersistenceFailure):
        body["stage"] = exc.stage
        body["partial"] = exc.partial
    return JSONResponse(status_code=status, content=body)


# ── Serialisers ───────────────────────────────────────────────


def _money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def _account_json(a: Account, online: Optional[bool] = None) -> dict:
    data = {
        "id": a.id,
        "name": a.name,
        "role": a.role,
        "balance": float(a.balance),
        "lastBonusPercent": float(a.last_bonus_percent),
        "lastSeenAt": a.last_seen_at.isoformat() if a.last_seen_at else None,
    }
    if online is not None:
        data["online"] = online
    return data


def _position_json(p: Position) -> dict:
    return {
        "id": p.id,
        "symbol": p.symbol,
        "side": p.side,
        "quantity": float(p.quantity),
        "entryPrice": float(p.entry_price),
        "openedAt": p.opened_at.isoformat(),
        "status": p.status,
        "isCopied": p.is_copied,
        "signalId": p.signal_id,
        "exitPrice": _money(p.exit_price),
        "closedAt": p.closed_at.isoformat() if p.closed_at else None,
        "realisedPnl": _money(p.realised_pnl),
    }


def _signal_json(s: Signal) -> dict:
    return {
        "id": s.id,
        "brokerId": s.broker_id,
        "symbol": s.symbol,
        "side": s.side,
        "referencePrice": float(s.reference_price),
        "quantity": float(s.quantity),
        "rationale": s.rationale,
        "createdAt": s.created_at.isoformat(),
        "expiresAt": s.expires_at.isoformat() if s.expires_at else None,
    }


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/api/symbols")
async def list_symbols(terminal: TradingTerminal = Depends(get_terminal)):
    return {"symbols": terminal.fetcher.available_symbols()}


# ═══════════════════════════════════════════════════════════════
# Accounts
# ═══════════════════════════════════════════════════════════════


class NameRequest(BaseModel):
    name: Optional[str] = None


class AllocateRequest(BaseModel):
    broker_id: int
    amount: Amount
    bonus_percent: Optional[Amount] = None


@app.post("/api/brokers", status_code=201)
async def ensure_broker(
    req: NameRequest,
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    return _account_json(terminal.ensure_broker(session, req.name or "broker"))


@app.post("/api/traders", status_code=201)
async def register_trader(
    req: NameRequest,
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    return _account_json(terminal.register_trader(session, req.name))


@app.get("/api/traders")
async def list_traders(
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    """All trader accounts with balance and online status."""
    return {"traders": [_account_json(a, online) for a, online in terminal.list_traders(session)]}


@app.delete("/api/traders/{trader_id}")
async def remove_trader(
    trader_id: int,
    broker_id: int,
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    await terminal.remove_trader(session, broker_id, trader_id)
    return {"id": trader_id, "removed": True}


@app.post("/api/traders/{trader_id}/allocate")
async def allocate(
    trader_id: int,
    req: AllocateRequest,
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    """Push funds (plus optional bonus percent) to a trader."""
    account = await terminal.allocate(session, req.broker_id, trader_id, req.amount, req.bonus_percent)
    return _account_json(account)


@app.post("/api/accounts/{account_id}/heartbeat")
async def heartbeat(
    account_id: int,
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    terminal.heartbeat(session, account_id)
    return {"id": account_id, "ok": True}


@app.get("/api/accounts/{account_id}/bonus-notice")
async def bonus_notice(
    account_id: int,
    scope: str = "default",
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    bonus = terminal.bonus_notice(session, account_id, scope)
    return {"bonusPercent": _money(bonus)}


# ═══════════════════════════════════════════════════════════════
# Positions
# ═══════════════════════════════════════════════════════════════


class TradeRequest(BaseModel):
    symbol: str
    side: str


@app.get("/api/accounts/{account_id}/portfolio")
async def get_portfolio(
    account_id: int,
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    """Balance and mark-to-market of open positions."""
    summary = terminal.portfolio(session, account_id)
    return {
        "accountId": summary.account_id,
        "balance": float(summary.balance),
        "lastBonusPercent": float(summary.last_bonus_percent),
        "totalUnrealisedPnl": float(summary.total_unrealised_pnl),
        "positions": [
            {
                **_position_json(v.position),
                "currentPrice": float(v.current_price),
                "unrealisedPnl": float(v.unrealised_pnl),
            }
            for v in summary.positions
        ],
    }


@app.get("/api/accounts/{account_id}/positions")
async def get_positions(
    account_id: int,
    limit: int = 100,
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    """Open and closed positions, newest first."""
    terminal.ledger.get_account(session, account_id)
    return {"positions": [_position_json(p) for p in terminal.positions.history(session, account_id, limit)]}


@app.post("/api/accounts/{account_id}/trades", status_code=201)
async def execute_trade(
    account_id: int,
    req: TradeRequest,
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    position = await terminal.execute_trade(session, account_id, req.symbol, req.side)
    return _position_json(position)


@app.post("/api/accounts/{account_id}/trades/{position_id}/close")
async def close_trade(
    account_id: int,
    position_id: int,
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    position = await terminal.close_trade(session, account_id, position_id)
    return _position_json(position)


# ═══════════════════════════════════════════════════════════════
# Signals
# ═══════════════════════════════════════════════════════════════


class BroadcastRequest(BaseModel):
    broker_id: int
    symbol: str
    side: str
    quantity: Amount = 1
    rationale: str = ""
    expires_in_minutes: Optional[Amount] = None


@app.get("/api/signals")
async def signal_history(
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    """Broadcast history, including expired signals."""
    return {"signals": [_signal_json(s) for s in terminal.signal_history(session)]}


@app.post("/api/signals", status_code=201)
async def broadcast_signal(
    req: BroadcastRequest,
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    signal = await terminal.broadcast_signal(
        session, req.broker_id, req.symbol, req.side, req.quantity,
        req.rationale, req.expires_in_minutes,
    )
    return _signal_json(signal)


@app.delete("/api/signals/{signal_id}")
async def delete_signal(
    signal_id: int,
    broker_id: int,
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    terminal.delete_signal(session, broker_id, signal_id)
    return {"id": signal_id, "deleted": True}


@app.get("/api/accounts/{account_id}/signals")
async def active_signals(
    account_id: int,
    scope: str = "default",
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    """Signals still visible to this viewer."""
    return {"signals": [_signal_json(s) for s in terminal.active_signals(session, account_id, scope)]}


@app.post("/api/accounts/{account_id}/signals/{signal_id}/dismiss")
async def dismiss_signal(
    account_id: int,
    signal_id: int,
    scope: str = "default",
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    terminal.dismiss_signal(session, account_id, signal_id, scope)
    return {"id": signal_id, "dismissed": True}


@app.post("/api/accounts/{account_id}/signals/{signal_id}/follow", status_code=201)
async def follow_signal(
    account_id: int,
    signal_id: int,
    session: Session = Depends(get_db),
    terminal: TradingTerminal = Depends(get_terminal),
):
    """Copy a broker signal into a position sized to this account."""
    result = await terminal.follow(session, account_id, signal_id)
    return {
        **_position_json(result.position),
        "resized": result.resized,
    }
