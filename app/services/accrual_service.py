"""
Accrual service - Daily return accrual and settlement pass over active investments
"""

import contextvars
import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from datetime import date, datetime, time as dt_time, timezone
from uuid import UUID, uuid4
from typing import Any, Callable, Dict, List, Optional, Tuple
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from app.core.investments.models import Investment
from app.core.ledger.models import AuditKind
from app.infrastructure.database import get_session_factory
from app.infrastructure.logging_config import trace_id_context
from app.infrastructure.settings import get_settings
from app.services.accrual_calculator import compute_daily_return, quantize_amount
from app.services.investment_helpers import (
    load_active_snapshot,
    lock_investment,
    get_daily_return,
    insert_daily_return,
)
from app.services.settlement import (
    SettlementState,
    AlreadySettledError,
    as_utc,
    evaluate_settlement_state,
    settle_investment,
)
from app.services.wallet_helpers import (
    WalletNotFoundError,
    InsufficientBalanceError,
    credit_returns,
    append_audit_entry,
)
from app.utils.ledger_validator import validate_wallet_invariants, validate_locked_coverage
from app.utils.metrics import (
    record_accrual_credit,
    record_settlement,
    record_accrual_skip,
    record_accrual_error,
    record_accrual_retry,
    record_accrual_pass,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

OUTCOME_ACCRUED = "accrued"
OUTCOME_SETTLED = "settled"
OUTCOME_SKIPPED = "skipped"


class AccrualError(Exception):
    """Base exception for accrual operations"""
    pass


class InvestmentValidationError(AccrualError):
    """Raised when an investment cannot be accrued (missing or invalid fields)"""
    pass


class AccrualRunError(AccrualError):
    """Raised when the pass could not run at all"""
    pass


def resolve_as_of(
    as_of_date: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Tuple[date, datetime]:
    """
    Resolve the explicit "as of" context of a pass.

    - now defaults to the current UTC instant (naive values are taken as UTC)
    - as_of_date defaults to now.date()
    - with only as_of_date given, now is the earlier of wall clock and the
      end of that UTC day, so a replay of a past day settles only what had
      matured by then
    """
    wall_clock = datetime.now(timezone.utc)

    if now is not None:
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        if as_of_date is None:
            as_of_date = now.astimezone(timezone.utc).date()
        return as_of_date, now

    if as_of_date is None:
        return wall_clock.date(), wall_clock

    end_of_day = datetime.combine(as_of_date, dt_time.max, tzinfo=timezone.utc)
    return as_of_date, min(wall_clock, end_of_day)


def is_transient_error(exc: BaseException) -> bool:
    """Connection loss, deadlock or lock timeout: worth retrying"""
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


def _error_reason(exc: BaseException) -> str:
    if isinstance(exc, InvestmentValidationError):
        return "validation"
    if isinstance(exc, InsufficientBalanceError):
        return "insufficient_balance"
    if isinstance(exc, WalletNotFoundError):
        return "wallet_missing"
    if is_transient_error(exc):
        return "transient"
    if isinstance(exc, DBAPIError):
        return "database"
    return "unexpected"


def _validated_amounts(investment: Investment) -> Tuple[Decimal, Decimal, Decimal]:
    """Return (locked_amount, daily_return_rate, accumulated_returns) or raise"""
    missing = [
        field for field in ('locked_amount', 'daily_return_rate', 'end_date')
        if getattr(investment, field) is None
    ]
    if missing:
        raise InvestmentValidationError(
            f"Investment {investment.id} is missing required fields: {', '.join(missing)}"
        )

    locked_amount = Decimal(str(investment.locked_amount))
    rate = Decimal(str(investment.daily_return_rate))
    accumulated = Decimal(str(investment.accumulated_returns or 0))

    if locked_amount < ZERO:
        raise InvestmentValidationError(f"Negative locked_amount {locked_amount} on investment {investment.id}")
    if rate < ZERO:
        raise InvestmentValidationError(f"Negative daily_return_rate {rate} on investment {investment.id}")
    if accumulated < ZERO:
        raise InvestmentValidationError(f"Negative accumulated_returns {accumulated} on investment {investment.id}")

    return locked_amount, rate, accumulated


def _finish_unit(db: Session, user_id: UUID, dry_run: bool) -> None:
    """Check the wallet, then commit the unit (or roll it back in dry-run)"""
    if not validate_wallet_invariants(db, user_id):
        raise InvestmentValidationError(f"Wallet invariant violated for user {user_id}")
    if not validate_locked_coverage(db, user_id):
        raise InvestmentValidationError(f"Locked balance does not cover active principal for user {user_id}")
    if dry_run:
        db.rollback()
    else:
        db.commit()


def process_investment(
    db: Session,
    investment_id: UUID,
    *,
    as_of_date: date,
    now: datetime,
    dry_run: bool = False,
    trace_id: Optional[str] = None,
) -> Tuple[str, Decimal]:
    """
    Run one investment's unit of work in a single transaction.

    Order:
    1. Lock the investment row, skip if it is gone or no longer active
    2. Matured -> settle (no accrual in the same pass)
    3. Skip days outside [start_date, end_date] (replays of past days)
    4. Validate, compute and quantize the day's return
    5. Idempotency lookup on (investment, as_of_date)
    6. Insert DailyReturnRecord (unique key is the concurrency gate)
    7. accumulated_returns += r, returns_balance += r, bot_return audit entry
    8. Commit (rollback in dry-run)

    Returns:
        (outcome, amount) where outcome is accrued, settled or skipped

    Raises:
        Any error from the unit; the caller rolls back and records it
    """
    investment = lock_investment(db, investment_id)
    if investment is None:
        db.rollback()
        record_accrual_skip("not_active")
        return OUTCOME_SKIPPED, ZERO

    state = evaluate_settlement_state(investment, now)

    if state == SettlementState.COMPLETED:
        db.rollback()
        record_accrual_skip("not_active")
        return OUTCOME_SKIPPED, ZERO

    user_id = investment.user_id

    if state == SettlementState.MATURED_PENDING_SETTLEMENT:
        try:
            total_credit = settle_investment(db, investment, now, trace_id=trace_id)
        except AlreadySettledError:
            db.rollback()
            record_accrual_skip("not_active")
            return OUTCOME_SKIPPED, ZERO
        _finish_unit(db, user_id, dry_run)
        record_settlement()
        return OUTCOME_SETTLED, total_credit

    if not (as_utc(investment.start_date).date() <= as_of_date <= as_utc(investment.end_date).date()):
        db.rollback()
        record_accrual_skip("outside_term")
        return OUTCOME_SKIPPED, ZERO

    locked_amount, rate, accumulated = _validated_amounts(investment)
    daily_return = quantize_amount(compute_daily_return(locked_amount, rate))
    if daily_return < ZERO:
        raise InvestmentValidationError(f"Negative daily return {daily_return} for investment {investment_id}")

    if get_daily_return(db, investment_id, as_of_date) is not None:
        db.rollback()
        record_accrual_skip("already_processed")
        return OUTCOME_SKIPPED, ZERO

    cumulative_return = accumulated + daily_return
    try:
        insert_daily_return(db, investment, as_of_date, daily_return, cumulative_return)
    except IntegrityError:
        db.rollback()
        # A concurrent pass won the (investment, date) race
        if get_daily_return(db, investment_id, as_of_date) is not None:
            db.rollback()
            record_accrual_skip("already_processed")
            return OUTCOME_SKIPPED, ZERO
        raise

    investment.accumulated_returns = cumulative_return
    credit_returns(db, user_id, daily_return)

    append_audit_entry(
        db,
        user_id=user_id,
        investment_id=investment_id,
        kind=AuditKind.BOT_RETURN,
        amount=daily_return,
        description=f"Daily return credited: ${daily_return:.2f}",
        metadata={
            'plan_id': str(investment.plan_id),
            'date': as_of_date.isoformat(),
            'daily_return_rate': str(rate),
            'cumulative_return': str(cumulative_return),
            'trace_id': trace_id,
        },
    )

    _finish_unit(db, user_id, dry_run)
    record_accrual_credit()
    return OUTCOME_ACCRUED, daily_return


class _AccrualPass:
    """Mutable state of one pass, shared by the worker threads"""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        as_of_date: date,
        now: datetime,
        dry_run: bool,
        trace_id: str,
        max_retries: int,
        retry_backoff_seconds: float,
        deadline: Optional[float],
        cancel_event: threading.Event,
    ):
        self.session_factory = session_factory
        self.as_of_date = as_of_date
        self.now = now
        self.dry_run = dry_run
        self.trace_id = trace_id
        self.max_retries = max_retries
        self.retry_backoff_seconds = retry_backoff_seconds
        self.deadline = deadline
        self.cancel_event = cancel_event

        self._lock = threading.Lock()
        self.processed = 0
        self.settled = 0
        self.skipped = 0
        self.not_started = 0
        self.accrued_amount = ZERO
        self.settled_amount = ZERO
        self.errors: List[Dict[str, str]] = []
        self.cancelled = False
        self.timed_out = False

    def should_stop(self) -> bool:
        if self.cancel_event.is_set():
            self.cancelled = True
            return True
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self.timed_out = True
            return True
        return False

    def _backoff(self, attempt: int) -> float:
        return self.retry_backoff_seconds * (2 ** attempt) * (0.5 + random.random())

    def run_unit(self, investment_id: UUID) -> None:
        attempt = 0
        while True:
            db = None
            try:
                db = self.session_factory()
                outcome, amount = process_investment(
                    db,
                    investment_id,
                    as_of_date=self.as_of_date,
                    now=self.now,
                    dry_run=self.dry_run,
                    trace_id=self.trace_id,
                )
            except Exception as e:
                if db is not None:
                    self._discard(db, investment_id)
                if is_transient_error(e) and attempt < self.max_retries:
                    delay = self._backoff(attempt)
                    attempt += 1
                    record_accrual_retry()
                    logger.warning(
                        "Transient error, retrying investment",
                        extra={
                            'investment_id': str(investment_id),
                            'attempt': attempt,
                            'delay_seconds': round(delay, 3),
                            'error': str(e),
                        },
                    )
                    time.sleep(delay)
                    continue
                self._record_error(investment_id, e)
                return
            finally:
                if db is not None:
                    self._close(db, investment_id)

            self._record_outcome(investment_id, outcome, amount)
            return

    def _discard(self, db: Session, investment_id: UUID) -> None:
        """Roll back a failed unit; rollback errors are logged, the unit error is what gets recorded"""
        try:
            db.rollback()
        except Exception as e:
            logger.warning(
                "Rollback failed after unit error",
                extra={'investment_id': str(investment_id), 'error': str(e)},
            )

    def _close(self, db: Session, investment_id: UUID) -> None:
        try:
            db.close()
        except Exception as e:
            logger.warning(
                "Session close failed",
                extra={'investment_id': str(investment_id), 'error': str(e)},
            )

    def run_group(self, user_id: UUID, investment_ids: List[UUID]) -> None:
        """One user's investments, strictly one after another"""
        for index, investment_id in enumerate(investment_ids):
            if self.should_stop():
                with self._lock:
                    self.not_started += len(investment_ids) - index
                return
            self.run_unit(investment_id)

    def _record_outcome(self, investment_id: UUID, outcome: str, amount: Decimal) -> None:
        with self._lock:
            if outcome == OUTCOME_ACCRUED:
                self.processed += 1
                self.accrued_amount += amount
            elif outcome == OUTCOME_SETTLED:
                self.settled += 1
                self.settled_amount += amount
            else:
                self.skipped += 1
        logger.debug(
            "Investment %s", outcome,
            extra={'investment_id': str(investment_id), 'amount': str(amount)},
        )

    def _record_error(self, investment_id: UUID, exc: Exception) -> None:
        reason = _error_reason(exc)
        record_accrual_error(reason)
        with self._lock:
            self.errors.append({
                'investment_id': str(investment_id),
                'error': f"{type(exc).__name__}: {exc}",
            })
        log = logger.warning if reason in ("validation", "insufficient_balance", "wallet_missing") else logger.error
        log(
            "Error processing investment",
            extra={'investment_id': str(investment_id), 'reason': reason, 'error': str(exc)},
            exc_info=reason == "unexpected",
        )


def run_accrual_pass(
    session_factory: Optional[Callable[[], Session]] = None,
    *,
    as_of_date: Optional[date] = None,
    now: Optional[datetime] = None,
    dry_run: bool = False,
    trace_id: Optional[str] = None,
    max_workers: Optional[int] = None,
    max_retries: Optional[int] = None,
    retry_backoff_seconds: Optional[float] = None,
    timeout_seconds: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Dict[str, Any]:
    """
    Run one accrual pass over every active investment.

    Safe to re-run any number of times for the same day: the unique
    (investment_id, date) key of DailyReturnRecord is the only record of what
    has been processed. Two overlapping passes never double-credit.

    Args:
        session_factory: Callable returning a new Session (default: SessionLocal)
        as_of_date: Accrual day (default: now.date())
        now: Instant used for maturity checks (default: UTC now, see resolve_as_of)
        dry_run: If True, roll back every unit instead of committing
        trace_id: Trace ID for logs and audit metadata (default: generated UUID)
        max_workers: Parallel user groups (default: ACCRUAL_MAX_WORKERS; <= 1 runs in the caller thread)
        max_retries: Retries per investment on transient errors (default: ACCRUAL_MAX_RETRIES)
        retry_backoff_seconds: Backoff base (default: ACCRUAL_RETRY_BACKOFF_SECONDS)
        timeout_seconds: Global deadline (default: ACCRUAL_PASS_TIMEOUT_SECONDS; 0 disables)
        cancel_event: Set it to stop enumerating; in-flight units still finish

    Returns:
        Dict with summary statistics:
        - active_found: Investments in the snapshot
        - processed: Investments credited a daily return
        - settled: Investments settled
        - skipped: Already processed today, or no longer active
        - not_started: Left untouched by cancellation or timeout
        - accrued_amount / settled_amount: Totals (Decimal as string)
        - errors_count, errors: [{investment_id, error}]
        - cancelled, timed_out, duration_seconds
        - trace_id, as_of_date, now, dry_run

    Raises:
        AccrualRunError: active investments could not be listed
    """
    settings = get_settings()
    if session_factory is None:
        session_factory = get_session_factory()
    if trace_id is None:
        trace_id = str(uuid4())
    if max_workers is None:
        max_workers = settings.ACCRUAL_MAX_WORKERS
    if max_retries is None:
        max_retries = settings.ACCRUAL_MAX_RETRIES
    if retry_backoff_seconds is None:
        retry_backoff_seconds = settings.ACCRUAL_RETRY_BACKOFF_SECONDS
    if timeout_seconds is None:
        timeout_seconds = settings.ACCRUAL_PASS_TIMEOUT_SECONDS
    if cancel_event is None:
        cancel_event = threading.Event()

    as_of_date, now = resolve_as_of(as_of_date, now)
    started = time.monotonic()
    deadline = started + timeout_seconds if timeout_seconds and timeout_seconds > 0 else None

    token = trace_id_context.set(trace_id)
    try:
        db = session_factory()
        try:
            groups = load_active_snapshot(db)
        except Exception as e:
            db.rollback()
            record_accrual_pass("failed", time.monotonic() - started)
            logger.error(
                "Accrual pass failed: cannot list active investments",
                extra={'as_of_date': as_of_date.isoformat(), 'error': str(e)},
                exc_info=True,
            )
            raise AccrualRunError(f"Cannot list active investments: {e}") from e
        finally:
            db.close()

        active_found = sum(len(ids) for ids in groups.values())
        logger.info(
            "Accrual pass started",
            extra={
                'as_of_date': as_of_date.isoformat(),
                'now': now.isoformat(),
                'active_found': active_found,
                'users': len(groups),
                'dry_run': dry_run,
                'max_workers': max_workers,
            },
        )

        run = _AccrualPass(
            session_factory,
            as_of_date=as_of_date,
            now=now,
            dry_run=dry_run,
            trace_id=trace_id,
            max_retries=max_retries,
            retry_backoff_seconds=retry_backoff_seconds,
            deadline=deadline,
            cancel_event=cancel_event,
        )

        if max_workers <= 1 or len(groups) <= 1:
            for user_id, investment_ids in groups.items():
                run.run_group(user_id, investment_ids)
        else:
            with ThreadPoolExecutor(
                max_workers=min(max_workers, len(groups)),
                thread_name_prefix="accrual",
            ) as executor:
                futures = [
                    executor.submit(contextvars.copy_context().run, run.run_group, user_id, investment_ids)
                    for user_id, investment_ids in groups.items()
                ]
                for future in futures:
                    future.result()

        duration = time.monotonic() - started
        summary = {
            'trace_id': trace_id,
            'as_of_date': as_of_date.isoformat(),
            'now': now.isoformat(),
            'dry_run': dry_run,
            'active_found': active_found,
            'processed': run.processed,
            'settled': run.settled,
            'skipped': run.skipped,
            'not_started': run.not_started,
            'accrued_amount': str(quantize_amount(run.accrued_amount)),
            'settled_amount': str(quantize_amount(run.settled_amount)),
            'errors_count': len(run.errors),
            'errors': run.errors,
            'cancelled': run.cancelled,
            'timed_out': run.timed_out,
            'duration_seconds': round(duration, 3),
        }

        if run.cancelled or run.timed_out:
            outcome = "cancelled"
        elif run.errors:
            outcome = "partial"
        else:
            outcome = "ok"
        record_accrual_pass(outcome, duration)

        logger.info(
            "Accrual pass finished",
            extra={key: value for key, value in summary.items() if key != 'errors'},
        )
        return summary
    finally:
        trace_id_context.reset(token)
