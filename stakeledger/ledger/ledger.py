from __future__ import annotations

"""
StakeLedger - stake / add / withdraw / claim lifecycle and admin operations
--------------------------------------------------------------------------

Accounts deposit the stake token into numbered positions, accrue a
whole-year percentage reward, and withdraw principal plus reward once the
lock period has elapsed since the position's `start_time`.

Collaborators are injected, never global:
  • stake_token / reward_token  fungible-token capabilities (bound to the ledger)
  • access                      `is_administrator(caller)`
  • clock                       `now()`, read once per operation
  • pause                       global pause switch

Execution model
~~~~~~~~~~~~~~~
One logical operation at a time: every mutating method takes a coarse
`threading.RLock` and marks itself in flight. A call that arrives while
another operation is in flight (e.g. from a token transfer listener) fails
with `ReentrantCall` before touching storage. Queries are refused the same
way, so a nested caller never reads storage an operation has not committed.

Every mutation happens inside `LedgerState.atomic()`. Token transfers are
issued inside that block; a transfer that returns False or raises rolls the
ledger's storage back and surfaces as `TransferFailed`.

Typical flow
~~~~~~~~~~~~
    ledger = StakeLedger(stake_token=stk.bind("ledger"), reward_token=rwd.bind("ledger"),
                         access=OwnerAccess("admin"), clock=clock)
    pid = ledger.open_or_extend_position("alice", 1_000)
    ...
    payout = ledger.withdraw_position("alice", pid)
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

from stakeledger import metrics
from stakeledger.adapters.access import AccessControl
from stakeledger.adapters.clock import Clock, SystemClock
from stakeledger.adapters.pause import Pausable, PauseSwitch
from stakeledger.adapters.token import FungibleToken
from stakeledger.config import LedgerConfig
from stakeledger.errors import (
    InsufficientBalance,
    InvalidParameter,
    LockNotElapsed,
    NoPosition,
    Paused,
    PositionEmpty,
    ReentrantCall,
    StakeLedgerError,
    TransferFailed,
    Unauthorized,
    ZeroAmount,
)
from stakeledger.ledger import rewards
from stakeledger.ledger.state import LedgerState
from stakeledger.ledgertypes.events import (
    BulkWithdrawn,
    ForceWithdrawn,
    LedgerEvent,
    LockPeriodChanged,
    PausedChanged,
    PositionIncreased,
    RewardClaimed,
    RewardRateChanged,
    Staked,
    Withdrawn,
)
from stakeledger.ledgertypes.position import Payout, Position, PositionView

log = logging.getLogger(__name__)


class StakeLedger:
    def __init__(
        self,
        *,
        stake_token: FungibleToken,
        reward_token: FungibleToken,
        access: AccessControl,
        clock: Optional[Clock] = None,
        pause: Optional[Pausable] = None,
        state: Optional[LedgerState] = None,
        config: Optional[LedgerConfig] = None,
        address: Optional[str] = None,
    ) -> None:
        self._config = config or LedgerConfig()
        self._config.validate()
        self.address = address or self._config.ledger_address
        self._stake_token = stake_token
        self._reward_token = reward_token
        self._access = access
        self._clock = clock or SystemClock()
        self._pause = pause or PauseSwitch()
        if state is None:
            state = LedgerState(
                reward_rate_percent=self._config.reward.rate_percent,
                lock_period_seconds=self._config.lock.lock_period_seconds,
            )
        self._state = state
        self._journal: List[LedgerEvent] = []
        self._lock = threading.RLock()
        self._in_flight: Optional[str] = None
        metrics.set_staking_gauges(self._state.total_staked, self._state.open_position_total())

    # ------------------------------------------------------------------ props

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def config(self) -> LedgerConfig:
        return self._config

    @property
    def total_staked(self) -> int:
        with self._query("total_staked"):
            return self._state.total_staked

    @property
    def reward_rate_percent(self) -> int:
        with self._query("reward_rate_percent"):
            return self._state.reward_rate_percent

    @property
    def lock_period_seconds(self) -> int:
        with self._query("lock_period_seconds"):
            return self._state.lock_period_seconds

    @property
    def paused(self) -> bool:
        return self._pause.is_paused()

    @property
    def known_accounts(self) -> Tuple[str, ...]:
        with self._query("known_accounts"):
            return tuple(self._state.known_accounts)

    def journal(self) -> Tuple[LedgerEvent, ...]:
        return tuple(self._journal)

    # --------------------------------------------------------------- plumbing

    @contextmanager
    def _operation(self, name: str) -> Iterator[int]:
        """Serialize, reject re-entry, time and count one ledger operation."""
        with self._lock:
            if self._in_flight is not None:
                metrics.record_rejection(name, ReentrantCall.code)
                log.warning("ledger: re-entrant %s rejected while %s in flight", name, self._in_flight)
                raise ReentrantCall(operation=name, in_flight=self._in_flight)
            self._in_flight = name
            try:
                with metrics.time_operation(name):
                    yield int(self._clock.now())
            except StakeLedgerError as e:
                metrics.record_rejection(name, e.code)
                log.warning("ledger: %s rejected: %s", name, e)
                raise
            else:
                metrics.record_operation(name)
            finally:
                self._in_flight = None
                metrics.set_staking_gauges(self._state.total_staked, self._state.open_position_total())

    @contextmanager
    def _query(self, name: str) -> Iterator[int]:
        """Read-only access; refused while an operation is in flight on this thread."""
        with self._lock:
            if self._in_flight is not None:
                log.warning("ledger: re-entrant read %s rejected while %s in flight", name, self._in_flight)
                raise ReentrantCall(operation=name, in_flight=self._in_flight)
            yield int(self._clock.now())

    def _require_not_paused(self, operation: str) -> None:
        if self._pause.is_paused():
            raise Paused(operation=operation)

    def _require_admin(self, caller: str, operation: str) -> None:
        if not self._access.is_administrator(caller):
            raise Unauthorized(caller=caller, operation=operation)

    def _require_positive(self, amount: int) -> int:
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise InvalidParameter("amount must be an int", name="amount", value=repr(amount))
        if amount <= 0:
            raise ZeroAmount(amount=amount)
        return amount

    def _require_balance(self, account: str, amount: int) -> None:
        available = int(self._stake_token.balance_of(account))
        if available < amount:
            raise InsufficientBalance(account=account, required=amount, available=available)

    def _require_account(self, account: str) -> None:
        if not self._state.has_any(account):
            raise NoPosition(account=account)

    def _require_slot(self, account: str, position_id: int) -> Position:
        self._require_account(account)
        if not isinstance(position_id, int) or position_id < 0 or position_id >= self._state.count(account):
            raise NoPosition(account=account, position_id=position_id, message="unknown position id")
        return self._state.get(account, position_id)

    def _sweep_range(self, account: str) -> range:
        n = self._state.count(account)
        return range(n + 1) if self._config.sweep.inclusive_upper_bound else range(n)

    @property
    def _reconcile(self) -> bool:
        return self._config.reward.reconcile_claims

    def _pull(self, account: str, amount: int) -> None:
        token = self._stake_token
        try:
            ok = token.transfer_from(account, self.address, amount)
        except StakeLedgerError:
            raise
        except Exception as e:
            raise TransferFailed(
                token=token.name, src=account, dst=self.address, amount=amount, reason=repr(e)
            ) from e
        if not ok:
            raise TransferFailed(token=token.name, src=account, dst=self.address, amount=amount)

    def _push(self, token: FungibleToken, account: str, amount: int) -> None:
        if amount <= 0:
            return
        try:
            ok = token.transfer(account, amount)
        except StakeLedgerError:
            raise
        except Exception as e:
            raise TransferFailed(
                token=token.name, src=self.address, dst=account, amount=amount, reason=repr(e)
            ) from e
        if not ok:
            raise TransferFailed(token=token.name, src=self.address, dst=account, amount=amount)
        metrics.record_payout(token.name, amount)

    def _pay(self, account: str, principal: int, reward: int, now: int, position_ids: Tuple[int, ...]) -> Payout:
        """Send principal + reward to `account` per the payout config."""
        if self._config.payout.split_reward_token:
            legs = ((self._stake_token, principal), (self._reward_token, reward))
            # both reserves are checked before the first leg leaves
            for token, amount in legs:
                held = int(token.balance_of(self.address))
                if amount > 0 and held < amount:
                    raise TransferFailed(token=token.name, src=self.address, dst=account, amount=amount,
                                         reason=f"ledger reserve {held} below payout")
            legs_paid: List[str] = []
            for token, amount in legs:
                try:
                    self._push(token, account, amount)
                except TransferFailed as e:
                    e.details.setdefault("legs_paid", list(legs_paid))
                    if legs_paid:
                        log.error("ledger: split payout to %s failed after %s leg was sent", account, legs_paid[0])
                    raise
                if amount > 0:
                    legs_paid.append(token.name)
            reward_token = self._reward_token.name
        else:
            self._push(self._stake_token, account, principal + reward)
            reward_token = self._stake_token.name
        return Payout(
            account=account,
            principal=principal,
            reward=reward,
            principal_token=self._stake_token.name,
            reward_token=reward_token,
            position_ids=position_ids,
            at=now,
        )

    def _emit(self, ev: LedgerEvent) -> None:
        self._journal.append(ev)

    # ------------------------------------------------------------ user ops

    def open_or_extend_position(self, account: str, amount: int) -> int:
        """
        Stake `amount` into a new position at the account's next id; returns
        the position id. Start and last-claim time are both `now`; existing
        positions are grown with `add_to_position`.
        """
        with self._operation("open_or_extend_position") as now:
            self._require_not_paused("open_or_extend_position")
            amount = self._require_positive(amount)
            self._require_balance(account, amount)

            with self._state.atomic() as st:
                pid = st.allocate_id(account)
                st.put(account, pid, Position(size=amount, start_time=now, last_claim_time=now))
                st.add_total(amount)
                self._pull(account, amount)

            self._emit(Staked(ts=now, account=account, position_id=pid, amount=amount, new_size=amount))
            log.info("ledger: staked account=%s position=%d amount=%d total_staked=%d",
                     account, pid, amount, self._state.total_staked)
            return pid

    def add_to_position(self, account: str, position_id: int, amount: int) -> Position:
        """
        Add principal to an open position. Reward earned under the old size is
        banked into `accrued_reward` first, then `start_time` restarts at now.
        """
        with self._operation("add_to_position") as now:
            self._require_not_paused("add_to_position")
            amount = self._require_positive(amount)
            self._require_account(account)
            self._require_balance(account, amount)
            pos = self._require_slot(account, position_id)
            if not pos.is_open:
                raise PositionEmpty(account=account, position_id=position_id)

            with self._state.atomic() as st:
                pos = st.get(account, position_id)
                banked = rewards.unbanked_reward(pos, st.reward_rate_percent, now, reconcile=self._reconcile)
                pos.accrued_reward += banked
                pos.size += amount
                pos.start_time = now
                st.add_total(amount)
                self._pull(account, amount)
                result = pos.copy()

            self._emit(PositionIncreased(
                ts=now, account=account, position_id=position_id,
                amount=amount, banked_reward=banked, new_size=result.size,
            ))
            log.info("ledger: added account=%s position=%d amount=%d banked=%d",
                     account, position_id, amount, banked)
            return result

    def withdraw_position(self, account: str, position_id: int) -> Payout:
        """Close one position after its lock period; pays size + all reward."""
        with self._operation("withdraw_position") as now:
            self._require_not_paused("withdraw_position")
            pos = self._require_slot(account, position_id)
            if not pos.is_open:
                raise PositionEmpty(account=account, position_id=position_id)
            unlock_time = pos.start_time + self._state.lock_period_seconds
            if now < unlock_time:
                raise LockNotElapsed(account=account, position_id=position_id, unlock_time=unlock_time, now=now)

            with self._state.atomic() as st:
                pos = st.get(account, position_id)
                principal = pos.size
                reward = rewards.withdrawable_reward(pos, st.reward_rate_percent, now, reconcile=self._reconcile)
                st.sub_total(principal)
                st.clear(account, position_id)
                payout = self._pay(account, principal, reward, now, (position_id,))

            self._emit(Withdrawn(ts=now, account=account, position_id=position_id, principal=principal, reward=reward))
            log.info("ledger: withdrew account=%s position=%d principal=%d reward=%d",
                     account, position_id, principal, reward)
            return payout

    def withdraw_all_eligible(self, account: str) -> Payout:
        """
        Close every unlocked position of `account`, scanning ids in order and
        stopping at the first position whose lock has not elapsed. Slots that
        are empty read as start_time 0 and never stop the scan.
        """
        with self._operation("withdraw_all_eligible") as now:
            self._require_not_paused("withdraw_all_eligible")
            self._require_account(account)

            with self._state.atomic() as st:
                principal = 0
                reward = 0
                closed: List[int] = []
                for pid in self._sweep_range(account):
                    pos = st.get(account, pid)
                    if now - pos.start_time < st.lock_period_seconds:
                        log.debug("ledger: bulk withdraw for %s stops at locked position %d", account, pid)
                        break
                    if pos.is_open:
                        principal += pos.size
                        reward += rewards.withdrawable_reward(pos, st.reward_rate_percent, now,
                                                              reconcile=self._reconcile)
                        st.sub_total(pos.size)
                        st.clear(account, pid)
                        closed.append(pid)
                payout = self._pay(account, principal, reward, now, tuple(closed))

            self._emit(BulkWithdrawn(ts=now, account=account, position_ids=closed, principal=principal, reward=reward))
            log.info("ledger: bulk withdrew account=%s positions=%s principal=%d reward=%d",
                     account, closed, principal, reward)
            return payout

    def claim_rewards(self, account: str, position_id: int) -> int:
        """Pay banked + fresh reward through the reward token; principal stays staked."""
        with self._operation("claim_rewards") as now:
            self._require_not_paused("claim_rewards")
            pos = self._require_slot(account, position_id)
            if not pos.is_open:
                raise PositionEmpty(account=account, position_id=position_id)

            with self._state.atomic() as st:
                pos = st.get(account, position_id)
                reward = rewards.claimable_reward(pos, st.reward_rate_percent, now, reconcile=self._reconcile)
                pos.accrued_reward = 0
                pos.last_claim_time = now
                self._push(self._reward_token, account, reward)

            self._emit(RewardClaimed(ts=now, account=account, position_id=position_id, reward=reward))
            log.info("ledger: claimed account=%s position=%d reward=%d", account, position_id, reward)
            return reward

    # ----------------------------------------------------------- admin ops

    def admin_force_withdraw_all(self, caller: str) -> Dict[str, Any]:
        """
        Drain every known account regardless of lock period. Each account is
        paid (and committed) on its own; a failed transfer stops the sweep and
        leaves that account and all later ones untouched.
        """
        with self._operation("admin_force_withdraw_all") as now:
            self._require_admin(caller, "admin_force_withdraw_all")

            paid: Dict[str, int] = {}
            grand_total = 0
            for account in list(self._state.known_accounts):
                with self._state.atomic() as st:
                    principal = 0
                    reward = 0
                    closed: List[int] = []
                    for pid in self._sweep_range(account):
                        pos = st.get(account, pid)
                        if not pos.is_open:
                            continue
                        principal += pos.size
                        reward += rewards.withdrawable_reward(pos, st.reward_rate_percent, now,
                                                              reconcile=self._reconcile)
                        st.sub_total(pos.size)
                        st.clear(account, pid)
                        closed.append(pid)
                    if not closed:
                        continue
                    try:
                        self._pay(account, principal, reward, now, tuple(closed))
                    except StakeLedgerError as e:
                        e.details.setdefault("paid_accounts", sorted(paid))
                        if paid:
                            # accounts already paid stay paid; journal them before failing
                            self._emit(ForceWithdrawn(ts=now, caller=caller, payouts=dict(paid), total=grand_total))
                        raise
                paid[account] = principal + reward
                grand_total += principal + reward

            self._emit(ForceWithdrawn(ts=now, caller=caller, payouts=dict(paid), total=grand_total))
            log.info("ledger: force withdrew accounts=%d total=%d by=%s", len(paid), grand_total, caller)
            return {"payouts": paid, "total": grand_total}

    def set_reward_rate(self, caller: str, new_rate_percent: int) -> int:
        with self._operation("set_reward_rate") as now:
            self._require_admin(caller, "set_reward_rate")
            if not isinstance(new_rate_percent, int) or new_rate_percent < 0:
                raise InvalidParameter("reward rate must be a non-negative int",
                                       name="rate_percent", value=new_rate_percent)
            old = self._state.reward_rate_percent
            self._state.reward_rate_percent = new_rate_percent
            self._emit(RewardRateChanged(ts=now, caller=caller, old_percent=old, new_percent=new_rate_percent))
            log.info("ledger: reward rate %d%% -> %d%% by=%s", old, new_rate_percent, caller)
            return old

    def set_lock_period(self, caller: str, new_seconds: int) -> int:
        with self._operation("set_lock_period") as now:
            self._require_admin(caller, "set_lock_period")
            if not isinstance(new_seconds, int) or new_seconds < 0:
                raise InvalidParameter("lock period must be a non-negative int",
                                       name="lock_period_seconds", value=new_seconds)
            old = self._state.lock_period_seconds
            self._state.lock_period_seconds = new_seconds
            self._emit(LockPeriodChanged(ts=now, caller=caller, old_seconds=old, new_seconds=new_seconds))
            log.info("ledger: lock period %ds -> %ds by=%s", old, new_seconds, caller)
            return old

    def pause(self, caller: str) -> bool:
        return self._set_paused(caller, True)

    def unpause(self, caller: str) -> bool:
        return self._set_paused(caller, False)

    def _set_paused(self, caller: str, flag: bool) -> bool:
        op = "pause" if flag else "unpause"
        with self._operation(op) as now:
            self._require_admin(caller, op)
            changed = self._pause.set_paused(flag)
            if changed:
                self._emit(PausedChanged(ts=now, caller=caller, paused=flag))
                log.info("ledger: paused=%s by=%s", flag, caller)
            return changed

    # ------------------------------------------------------------- queries

    def _view(self, account: str, position_id: int, pos: Position, now: int) -> PositionView:
        return PositionView(
            account=account,
            position_id=position_id,
            size=pos.size,
            start_time=pos.start_time,
            accrued_reward=pos.accrued_reward,
            last_claim_time=pos.last_claim_time,
            pending_reward=rewards.withdrawable_reward(pos, self._state.reward_rate_percent, now,
                                                       reconcile=self._reconcile),
            unlock_time=pos.start_time + self._state.lock_period_seconds if pos.is_open else 0,
        )

    def get_position(self, account: str, position_id: int) -> PositionView:
        """Current size/start time (and reward bookkeeping) of one position."""
        with self._query("get_position") as now:
            pos = self._require_slot(account, position_id)
            return self._view(account, position_id, pos, now)

    def list_positions(self, account: str, *, include_closed: bool = False) -> List[PositionView]:
        with self._query("list_positions") as now:
            out: List[PositionView] = []
            for pid in range(self._state.count(account)):
                pos = self._state.get(account, pid)
                if pos.is_open or include_closed:
                    out.append(self._view(account, pid, pos, now))
            return out

    def pending_reward(self, account: str, position_id: int) -> int:
        """Reward a withdrawal of this position would pay right now."""
        return self.get_position(account, position_id).pending_reward

    def claimable_reward(self, account: str, position_id: int) -> int:
        """Reward claim_rewards would pay right now."""
        with self._query("claimable_reward") as now:
            pos = self._require_slot(account, position_id)
            return rewards.claimable_reward(pos, self._state.reward_rate_percent, now,
                                            reconcile=self._reconcile)

    def info(self) -> Dict[str, Any]:
        with self._query("info") as now:
            return {
                "address": self.address,
                "total_staked": self._state.total_staked,
                "reward_rate_percent": self._state.reward_rate_percent,
                "lock_period_seconds": self._state.lock_period_seconds,
                "paused": self._pause.is_paused(),
                "known_accounts": len(self._state.known_accounts),
                "open_positions": self._state.open_position_total(),
                "stake_token": self._stake_token.name,
                "reward_token": self._reward_token.name,
                "now": now,
            }


__all__ = ["StakeLedger"]
