"""
Balance engine.

Reduces a group's ledger entries into one signed net balance per roster
member: positive means the member is owed money, negative means they owe.
Balances are a projection, rebuilt from the entries on every call.
"""

import logging
from fractions import Fraction
from typing import Iterable, Optional, Sequence

from .config import Settings, get_settings
from .errors import ImbalanceInconsistencyError, InvalidEntryError
from .models import BalanceSheet, EntryKind, LedgerEntry, MemberBalance, UnknownMember
from .money import from_minor_units, round_shares, to_minor_units

logger = logging.getLogger(__name__)


def validate_entry(entry: LedgerEntry, settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    if entry.amount is None or not entry.amount.is_finite() or entry.amount <= 0:
        raise InvalidEntryError(entry.id, f"amount must be positive, got {entry.amount}")
    if entry.amount % settings.rounding_unit != 0:
        raise InvalidEntryError(
            entry.id, f"amount {entry.amount} is finer than the rounding unit {settings.rounding_unit}"
        )

    if entry.kind == EntryKind.EXPENSE:
        if not entry.payer:
            raise InvalidEntryError(entry.id, "expense has no payer")
        if not entry.participants:
            raise InvalidEntryError(entry.id, "expense has no participants")
    else:
        if not entry.from_member or not entry.to_member:
            raise InvalidEntryError(entry.id, "payment needs both a sender and a receiver")


def _roles(entry: LedgerEntry) -> list[tuple[str, str]]:
    if entry.kind == EntryKind.EXPENSE:
        return [(entry.payer, "payer")] + [(p, "participant") for p in entry.participants]
    return [(entry.from_member, "from"), (entry.to_member, "to")]


def compute_balances(
    roster: Sequence[str],
    entries: Iterable[LedgerEntry],
    settings: Optional[Settings] = None,
) -> BalanceSheet:
    """
    Compute net balances for every roster member.

    contributed = expenses paid - payments sent + payments received
    owed        = sum of equal shares of expenses the member takes part in

    Shares are kept exact and rounded once per member. An entry naming anyone
    outside the roster is skipped as a whole, and each outside reference is
    reported as an UnknownMember notice. Raises InvalidEntryError for a
    malformed entry and ImbalanceInconsistencyError if the result does not
    sum to zero.
    """
    settings = settings or get_settings()
    members = list(dict.fromkeys(roster))
    on_roster = set(members)

    contributed = {m: 0 for m in members}
    owed = {m: Fraction(0) for m in members}
    unknown: list[UnknownMember] = []

    entry_count = 0
    for entry in entries:
        validate_entry(entry, settings)
        entry_count += 1

        outsiders = [(m, role) for m, role in _roles(entry) if m not in on_roster]
        if outsiders:
            for member, role in outsiders:
                logger.warning("Skipping entry %s: %s %r is not on the roster", entry.id, role, member)
                unknown.append(UnknownMember(entry_id=entry.id, member=member, role=role))
            continue

        units = to_minor_units(entry.amount, settings)
        if entry.kind == EntryKind.EXPENSE:
            contributed[entry.payer] += units
            share = Fraction(units, len(entry.participants))
            for participant in entry.participants:
                owed[participant] += share
        else:
            contributed[entry.from_member] -= units
            contributed[entry.to_member] += units

    owed_units = round_shares(owed, settings.rounding_mode)

    breakdown = []
    balances = {}
    for member in members:
        net = contributed[member] - owed_units[member]
        balances[member] = from_minor_units(net, settings)
        breakdown.append(MemberBalance(
            member=member,
            contributed=from_minor_units(contributed[member], settings),
            owed=from_minor_units(owed_units[member], settings),
            net=balances[member],
        ))

    residual = sum(balances.values(), from_minor_units(0, settings))
    logger.debug(
        "Computed balances for %d members from %d entries (residual %s)",
        len(members), entry_count, residual,
    )
    if abs(residual) > settings.tolerance:
        raise ImbalanceInconsistencyError(residual, "Group balances do not sum to zero")

    return BalanceSheet(balances=balances, breakdown=breakdown, unknown_members=unknown)
