"""FIFO reconciliation of open executions into round-trip trades.

Each pass re-reads the unmatched pool from the repository, picks one
(buy, sell) pair and commits it as a unit of work:

    insert matched trade -> delete both originals -> insert remainder(s)

Only one pair is applied per pass, so the in-memory grouping is never used
after the store has changed underneath it. Passes stop when no symbol has
both a buy and a sell left, or when ``max_iterations`` matches have been
applied in this run (reported through ``ReconcileResult.terminated_early``).

P&L always uses the long round-trip formula, whichever leg came first:

    pnl = (sell.entry_price - buy.entry_price) * quantity
          - buy.commission - sell.commission
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from tradebook.constants import (
    BUY,
    DEFAULT_MAX_MATCH_ITERATIONS,
    MATCHED_NOTE_TEMPLATE,
    QUANTITY_EPSILON,
    REMAINDER_NOTE,
)
from tradebook.db.repository import TradeRepository
from tradebook.models.trade import ReconcileResult, Trade

logger = logging.getLogger(__name__)


class ReconciliationError(Exception):
    """A reconciliation run could not read the store or commit a match.

    Attributes:
        matched_count: Matches committed by earlier passes of the same run.
            They stay in the store.
    """

    def __init__(self, message: str, matched_count: int) -> None:
        super().__init__(message)
        self.matched_count = matched_count


def _fifo_key(trade: Trade):
    return (trade.entry_date, trade.id if trade.id is not None else 0)


def group_by_symbol(trades: Iterable[Trade]) -> Dict[str, Tuple[List[Trade], List[Trade]]]:
    """Split open trades into per-symbol (buys, sells) queues, oldest first.

    Matched trades are ignored. Open trades with a non-positive quantity are
    logged and left out of the queues.
    """
    buys = defaultdict(list)
    sells = defaultdict(list)

    for trade in trades:
        if trade.is_matched:
            continue
        if trade.quantity <= 0:
            logger.warning(
                f"Skipping trade #{trade.id} ({trade.symbol}): quantity {trade.quantity} is not positive"
            )
            continue
        if trade.direction == BUY:
            buys[trade.symbol].append(trade)
        else:
            sells[trade.symbol].append(trade)

    groups = {}
    for symbol in set(buys) | set(sells):
        groups[symbol] = (
            sorted(buys[symbol], key=_fifo_key),
            sorted(sells[symbol], key=_fifo_key),
        )
    return groups


def find_next_pair(trades: Iterable[Trade]) -> Optional[Tuple[Trade, Trade]]:
    """Return the (earliest buy, earliest sell) of the first symbol that has both."""
    groups = group_by_symbol(trades)
    for symbol in sorted(groups):
        buys, sells = groups[symbol]
        if buys and sells:
            return buys[0], sells[0]
    return None


def compute_pnl(buy: Trade, sell: Trade, quantity: float) -> float:
    return (sell.entry_price - buy.entry_price) * quantity - buy.commission - sell.commission


def _annotate(notes: Optional[str], annotation: str) -> str:
    if notes:
        return f"{notes} [{annotation}]"
    return annotation


def build_matched_trade(buy: Trade, sell: Trade, quantity: float) -> Trade:
    """Round-trip record for ``quantity`` units; descriptive fields come from the buy leg."""
    return Trade(
        symbol=buy.symbol,
        side=BUY,
        quantity=quantity,
        entry_price=buy.entry_price,
        exit_price=sell.entry_price,
        entry_date=buy.entry_date,
        exit_date=sell.entry_date,
        pnl=compute_pnl(buy, sell, quantity),
        commission=buy.commission + sell.commission,
        strategy=buy.strategy,
        notes=_annotate(buy.notes, MATCHED_NOTE_TEMPLATE.format(buy_id=buy.id, sell_id=sell.id)),
        tags=list(buy.tags),
        screenshots=list(buy.screenshots),
        asset_type=buy.asset_type,
        option_type=buy.option_type,
        strike_price=buy.strike_price,
        expiration_date=buy.expiration_date,
    )


def build_remainder(leg: Trade, quantity: float) -> Trade:
    """Still-open part of a leg. Its commission was already charged to the match."""
    return leg.model_copy(
        update={
            "id": None,
            "side": leg.direction,
            "quantity": quantity,
            "commission": 0.0,
            "notes": _annotate(leg.notes, f"{REMAINDER_NOTE} of #{leg.id}"),
        },
        deep=True,
    )


def apply_match(repo: TradeRepository, buy: Trade, sell: Trade) -> int:
    """Commit one match atomically and return the new matched trade id."""
    quantity = min(buy.quantity, sell.quantity)
    matched = build_matched_trade(buy, sell, quantity)

    with repo.transaction():
        matched_id = repo.insert(matched)
        for leg in (buy, sell):
            if not repo.delete(leg.id):
                raise LookupError(f"Trade #{leg.id} no longer exists")
        for leg in (buy, sell):
            leftover = leg.quantity - quantity
            if leftover > QUANTITY_EPSILON:
                repo.insert(build_remainder(leg, leftover))

    logger.info(
        f"Matched {buy.symbol}: BUY #{buy.id} x SELL #{sell.id}, qty {quantity}, "
        f"pnl {matched.pnl:.2f} -> trade #{matched_id}"
    )
    return matched_id


def reconcile(
    repo: TradeRepository,
    max_iterations: int = DEFAULT_MAX_MATCH_ITERATIONS,
) -> ReconcileResult:
    """Match open buys against open sells per symbol, FIFO by entry date.

    Args:
        repo: Trade store to read from and mutate.
        max_iterations: Most matches applied in one run.

    Returns:
        ReconcileResult with the number of matches applied, the number of
        passes over the unmatched pool, and whether the run stopped at the
        ceiling with pairs still waiting.

    Raises:
        ReconciliationError: The unmatched pool could not be read, or a match
            failed to commit. A failed match is rolled back; matches from
            earlier passes remain.
    """
    result = ReconcileResult()

    while True:
        try:
            pair = find_next_pair(repo.list_unmatched())
        except Exception as e:
            message = f"Failed to read unmatched trades: {e}"
            logger.error(message, exc_info=True)
            raise ReconciliationError(message, result.matched_count) from e
        result.iterations += 1
        if pair is None:
            break
        if result.matched_count >= max_iterations:
            result.terminated_early = True
            logger.warning(
                f"Reconciliation stopped after {max_iterations} matches with "
                "unmatched pairs remaining"
            )
            break

        buy, sell = pair
        try:
            apply_match(repo, buy, sell)
        except Exception as e:
            message = f"Failed to match {buy.symbol} BUY #{buy.id} with SELL #{sell.id}: {e}"
            logger.error(message, exc_info=True)
            raise ReconciliationError(message, result.matched_count) from e
        result.matched_count += 1

    logger.info(
        f"Reconciliation finished: {result.matched_count} match(es) in "
        f"{result.iterations} pass(es)"
    )
    return result
