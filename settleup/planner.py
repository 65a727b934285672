"""
Settlement planner.

Greedy matching of debtors against creditors: the head debtor pays the head
creditor the smaller of the two outstanding amounts, and whichever side is
cleared leaves its queue. This runs in linear time over the two queues and
always gives the same plan for the same input, but it is not guaranteed to
use the fewest possible transfers. Finding the true minimum is a much harder
combinatorial matching problem and should not replace this without a look
at the cost.
"""

import logging
from collections import deque
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from .config import Settings, get_settings
from .engine import compute_balances
from .errors import ImbalanceInconsistencyError
from .models import LedgerEntry, Settlement, SettleUpResult
from .money import quantize

logger = logging.getLogger(__name__)


def _cleared(residual: Decimal, tolerance: Decimal) -> bool:
    # a residual equal to the tolerance is still owed
    return residual <= 0 or residual < tolerance


def _queue(parties: list[list], settings: Settings) -> deque:
    if settings.settlement_order == "magnitude":
        # stable sort, so equal amounts keep roster order
        parties.sort(key=lambda party: party[1], reverse=True)
    return deque(parties)


def plan_settlements(
    balances: Mapping[str, Decimal],
    settings: Optional[Settings] = None,
) -> list[Settlement]:
    """
    Produce the ordered transfers that bring every balance to zero.

    The balances mapping is not modified. Raises ImbalanceInconsistencyError
    when owed and owing totals disagree by more than the tolerance, or when a
    party is left with more than the tolerance outstanding.
    """
    settings = settings or get_settings()
    tolerance = settings.tolerance

    debtors = [[m, -amount] for m, amount in balances.items() if amount < -tolerance]
    creditors = [[m, amount] for m, amount in balances.items() if amount > tolerance]

    total_debt = sum((d[1] for d in debtors), Decimal(0))
    total_credit = sum((c[1] for c in creditors), Decimal(0))
    if abs(total_credit - total_debt) > tolerance:
        raise ImbalanceInconsistencyError(
            total_credit - total_debt,
            f"Creditors are owed {total_credit} but debtors owe {total_debt}",
        )

    debtors = _queue(debtors, settings)
    creditors = _queue(creditors, settings)

    settlements = []
    while debtors and creditors:
        debtor, creditor = debtors[0], creditors[0]
        amount = min(debtor[1], creditor[1])

        transfer = quantize(amount, settings)
        if transfer > 0:
            settlements.append(Settlement(from_member=debtor[0], to_member=creditor[0], amount=transfer))

        debtor[1] -= amount
        creditor[1] -= amount
        if _cleared(debtor[1], tolerance):
            debtors.popleft()
        if _cleared(creditor[1], tolerance):
            creditors.popleft()

    leftover = sum((c[1] for c in creditors), Decimal(0)) - sum((d[1] for d in debtors), Decimal(0))
    if abs(leftover) > tolerance:
        raise ImbalanceInconsistencyError(leftover, "Settlement left parties with outstanding balances")

    logger.debug("Planned %d settlements for %d balances", len(settlements), len(balances))
    return settlements


def apply_settlements(
    balances: Mapping[str, Decimal],
    settlements: Iterable[Settlement],
) -> dict[str, Decimal]:
    result = dict(balances)
    for settlement in settlements:
        result[settlement.from_member] += settlement.amount
        result[settlement.to_member] -= settlement.amount
    return result


def settle_up(
    roster: Sequence[str],
    entries: Iterable[LedgerEntry],
    settings: Optional[Settings] = None,
) -> SettleUpResult:
    settings = settings or get_settings()
    sheet = compute_balances(roster, entries, settings)
    return SettleUpResult(sheet=sheet, settlements=plan_settlements(sheet.balances, settings))
