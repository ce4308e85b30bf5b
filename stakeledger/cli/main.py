from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import typer

from stakeledger import config as ledger_config
from stakeledger.adapters.access import OwnerAccess, RoleAccess, access_from_dict
from stakeledger.adapters.clock import ManualClock
from stakeledger.adapters.pause import PauseSwitch
from stakeledger.adapters.token import InMemoryToken
from stakeledger.errors import StakeLedgerError
from stakeledger.ledger.ledger import StakeLedger
from stakeledger.ledger.state import LedgerState

DEFAULT_STATE_PATH = Path("stakeledger-state.json")
STATE_FILE_ENV = "STAKELEDGER_STATE_FILE"
STATE_VERSION = 1

app = typer.Typer(
    name="stakeledger",
    help="Operate a token-staking ledger kept in a local JSON state file.",
    no_args_is_help=True,
    add_completion=False,
)


# ---------------------------------------------------------------------------
# Workspace (ledger + tokens + clock + access, persisted together)
# ---------------------------------------------------------------------------


@dataclass
class Workspace:
    config: ledger_config.LedgerConfig
    clock: ManualClock
    pause: PauseSwitch
    access: Any
    stake_token: InMemoryToken
    reward_token: InMemoryToken
    ledger: StakeLedger

    def dump(self) -> Dict[str, Any]:
        return {
            "version": STATE_VERSION,
            "config": self.config.to_dict(),
            "clock": {"now": self.clock.now()},
            "paused": self.pause.is_paused(),
            "access": self.access.dump(),
            "stake_token": self.stake_token.dump(),
            "reward_token": self.reward_token.dump(),
            "ledger": self.ledger.state.dump(),
        }


def _build(
    cfg: ledger_config.LedgerConfig,
    *,
    clock: ManualClock,
    pause: PauseSwitch,
    access: Any,
    stake_token: InMemoryToken,
    reward_token: InMemoryToken,
    state: Optional[LedgerState] = None,
) -> Workspace:
    ledger = StakeLedger(
        stake_token=stake_token.bind(cfg.ledger_address),
        reward_token=reward_token.bind(cfg.ledger_address),
        access=access,
        clock=clock,
        pause=pause,
        state=state,
        config=cfg,
    )
    return Workspace(cfg, clock, pause, access, stake_token, reward_token, ledger)


def _workspace_from_dict(data: Dict[str, Any]) -> Workspace:
    if int(data.get("version", 0)) != STATE_VERSION:
        raise RuntimeError(f"unsupported state file version: {data.get('version')!r}")
    return _build(
        ledger_config.from_dict(data.get("config") or {}),
        clock=ManualClock(int((data.get("clock") or {}).get("now", 0))),
        pause=PauseSwitch(bool(data.get("paused", False))),
        access=access_from_dict(data.get("access") or {}),
        stake_token=InMemoryToken.load(data["stake_token"]),
        reward_token=InMemoryToken.load(data["reward_token"]),
        state=LedgerState.load(data.get("ledger") or {}),
    )


def _state_file_path(ctx: typer.Context) -> Path:
    obj = ctx.obj or {}
    path = obj.get("state_file")
    if path is not None:
        return Path(path)
    return Path(os.environ.get(STATE_FILE_ENV, DEFAULT_STATE_PATH))


def _load(path: Path) -> Workspace:
    if not path.exists():
        typer.echo(f"No state file at {path}; run `stakeledger init` first", err=True)
        raise typer.Exit(code=1)
    return _workspace_from_dict(json.loads(path.read_text(encoding="utf-8")))


def _save(path: Path, ws: Workspace) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(ws.dump(), indent=2, sort_keys=True), encoding="utf-8")
    os.replace(tmp, path)


def _emit(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, sort_keys=True, default=str))


def _run(ctx: typer.Context, fn: Callable[[Workspace], Any], *, persist: bool = True) -> None:
    """Load the workspace, apply `fn`, print its result and save on success."""
    path = _state_file_path(ctx)
    ws = _load(path)
    try:
        result = fn(ws)
    except StakeLedgerError as e:
        typer.echo(f"{e.code}: {e.message}", err=True)
        raise typer.Exit(code=1)
    except ValueError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)
    if persist:
        _save(path, ws)
    if result is not None:
        _emit(result)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Typer wiring
# ---------------------------------------------------------------------------


@app.callback()
def _configure(
    ctx: typer.Context,
    state_file: Optional[Path] = typer.Option(
        None,
        "--state-file",
        help="Ledger state file (default: ./stakeledger-state.json)",
        envvar=STATE_FILE_ENV,
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Python logging level (e.g. INFO)"),
) -> None:
    if log_level:
        _configure_logging(log_level)
    ctx.obj = {"state_file": state_file}


@app.command()
def init(
    ctx: typer.Context,
    admin: str = typer.Option("admin", "--admin", help="Owner/administrator account"),
    extra_admin: Optional[List[str]] = typer.Option(
        None, "--extra-admin", help="Additional administrator (switches to role-based access)"
    ),
    rate: Optional[int] = typer.Option(None, "--rate", help="Annual reward rate in whole percent"),
    lock_seconds: Optional[int] = typer.Option(None, "--lock-seconds", help="Minimum lock period"),
    start_time: Optional[int] = typer.Option(None, "--start-time", help="Initial clock value (unix seconds)"),
    config_file: Optional[Path] = typer.Option(None, "--config", help="JSON/YAML ledger config"),
    stake_symbol: str = typer.Option("STK", "--stake-symbol"),
    reward_symbol: str = typer.Option("RWD", "--reward-symbol"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing state file"),
) -> None:
    """Create a fresh ledger state file."""
    path = _state_file_path(ctx)
    if path.exists() and not force:
        typer.echo(f"State file {path} exists; use --force to replace", err=True)
        raise typer.Exit(code=1)

    try:
        base = ledger_config.from_file(config_file) if config_file else ledger_config.load()
        if rate is not None:
            base.reward.rate_percent = rate
        if lock_seconds is not None:
            base.lock.lock_period_seconds = lock_seconds
        base.validate()
        clock = ManualClock(int(time.time()) if start_time is None else start_time)
    except (ValueError, FileNotFoundError) as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)

    access: Any = RoleAccess(extra_admin, owner=admin) if extra_admin else OwnerAccess(admin)
    decimals = base.token_decimals
    ws = _build(
        base,
        clock=clock,
        pause=PauseSwitch(),
        access=access,
        stake_token=InMemoryToken("Stake Token", stake_symbol, decimals),
        reward_token=InMemoryToken("Reward Token", reward_symbol, decimals),
    )
    _save(path, ws)
    _emit({"state_file": str(path), **ws.ledger.info()})


@app.command()
def mint(
    ctx: typer.Context,
    to: str = typer.Option(..., "--to"),
    amount: int = typer.Option(..., "--amount"),
    token: str = typer.Option("stake", "--token", help="stake | reward"),
) -> None:
    """Mint test tokens to an account (the ledger address funds rewards)."""

    def op(ws: Workspace) -> Dict[str, Any]:
        tok = _pick_token(ws, token)
        return {"token": tok.symbol, "account": to, "balance": tok.mint(to, amount)}

    _run(ctx, op)


@app.command()
def approve(
    ctx: typer.Context,
    owner: str = typer.Option(..., "--owner"),
    amount: int = typer.Option(..., "--amount"),
) -> None:
    """Approve the ledger to pull `amount` stake tokens from `owner`."""

    def op(ws: Workspace) -> Dict[str, Any]:
        ws.stake_token.approve(owner, ws.ledger.address, amount)
        return {"owner": owner, "spender": ws.ledger.address,
                "allowance": ws.stake_token.allowance(owner, ws.ledger.address)}

    _run(ctx, op)


@app.command()
def stake(
    ctx: typer.Context,
    account: str = typer.Option(..., "--account"),
    amount: int = typer.Option(..., "--amount"),
) -> None:
    """Open a new position (or extend the next slot)."""
    _run(ctx, lambda ws: ws.ledger.get_position(
        account, ws.ledger.open_or_extend_position(account, amount)).to_dict())


@app.command()
def add(
    ctx: typer.Context,
    account: str = typer.Option(..., "--account"),
    position_id: int = typer.Option(..., "--position-id"),
    amount: int = typer.Option(..., "--amount"),
) -> None:
    """Add principal to an open position."""

    def op(ws: Workspace) -> Dict[str, Any]:
        ws.ledger.add_to_position(account, position_id, amount)
        return ws.ledger.get_position(account, position_id).to_dict()

    _run(ctx, op)


@app.command()
def withdraw(
    ctx: typer.Context,
    account: str = typer.Option(..., "--account"),
    position_id: int = typer.Option(..., "--position-id"),
) -> None:
    """Withdraw one unlocked position with its reward."""
    _run(ctx, lambda ws: ws.ledger.withdraw_position(account, position_id).to_dict())


@app.command("withdraw-all")
def withdraw_all(
    ctx: typer.Context,
    account: str = typer.Option(..., "--account"),
) -> None:
    """Withdraw every eligible position, stopping at the first locked one."""
    _run(ctx, lambda ws: ws.ledger.withdraw_all_eligible(account).to_dict())


@app.command()
def claim(
    ctx: typer.Context,
    account: str = typer.Option(..., "--account"),
    position_id: int = typer.Option(..., "--position-id"),
) -> None:
    """Claim reward for a position without touching principal."""
    _run(ctx, lambda ws: {"account": account, "position_id": position_id,
                          "reward": ws.ledger.claim_rewards(account, position_id)})


@app.command()
def position(
    ctx: typer.Context,
    account: str = typer.Option(..., "--account"),
    position_id: Optional[int] = typer.Option(None, "--position-id", help="Omit to list all open positions"),
) -> None:
    """Show one position, or all open positions of an account."""

    def op(ws: Workspace) -> Any:
        if position_id is None:
            return [v.to_dict() for v in ws.ledger.list_positions(account)]
        return ws.ledger.get_position(account, position_id).to_dict()

    _run(ctx, op, persist=False)


@app.command()
def info(ctx: typer.Context) -> None:
    """Show ledger totals, parameters and token balances."""

    def op(ws: Workspace) -> Dict[str, Any]:
        out = ws.ledger.info()
        out["ledger_stake_balance"] = ws.stake_token.balance_of(ws.ledger.address)
        out["ledger_reward_balance"] = ws.reward_token.balance_of(ws.ledger.address)
        return out

    _run(ctx, op, persist=False)


@app.command()
def balance(
    ctx: typer.Context,
    account: str = typer.Option(..., "--account"),
) -> None:
    """Show an account's stake and reward token balances."""
    _run(ctx, lambda ws: {
        "account": account,
        ws.stake_token.symbol: ws.stake_token.balance_of(account),
        ws.reward_token.symbol: ws.reward_token.balance_of(account),
    }, persist=False)


@app.command()
def advance(
    ctx: typer.Context,
    seconds: int = typer.Option(0, "--seconds"),
    days: int = typer.Option(0, "--days"),
) -> None:
    """Move the ledger clock forward."""
    _run(ctx, lambda ws: {"now": ws.clock.advance(seconds + days * 86_400)})


@app.command("set-rate")
def set_rate(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--caller"),
    percent: int = typer.Option(..., "--percent"),
) -> None:
    """Set the annual reward rate (administrators only)."""
    _run(ctx, lambda ws: {"old": ws.ledger.set_reward_rate(caller, percent), "new": percent})


@app.command("set-lock")
def set_lock(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--caller"),
    seconds: int = typer.Option(..., "--seconds"),
) -> None:
    """Set the minimum lock period (administrators only)."""
    _run(ctx, lambda ws: {"old": ws.ledger.set_lock_period(caller, seconds), "new": seconds})


@app.command()
def pause(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--caller"),
) -> None:
    """Pause user operations."""
    _run(ctx, lambda ws: {"changed": ws.ledger.pause(caller), "paused": True})


@app.command()
def unpause(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--caller"),
) -> None:
    """Resume user operations."""
    _run(ctx, lambda ws: {"changed": ws.ledger.unpause(caller), "paused": False})


@app.command("force-withdraw-all")
def force_withdraw_all(
    ctx: typer.Context,
    caller: str = typer.Option(..., "--caller"),
) -> None:
    """Pay out every position of every account, ignoring locks."""
    _run(ctx, lambda ws: ws.ledger.admin_force_withdraw_all(caller))


def _pick_token(ws: Workspace, which: str) -> InMemoryToken:
    if which == "stake":
        return ws.stake_token
    if which == "reward":
        return ws.reward_token
    raise typer.BadParameter("--token must be 'stake' or 'reward'")


if __name__ == "__main__":
    app()
