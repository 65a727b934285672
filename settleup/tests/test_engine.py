"""
Unit Tests for the Balance Engine

Tests cover:
1. Net balances for expenses and payments
2. Equal-split rounding
3. Invalid entries
4. Members outside the roster
5. Zero-sum and determinism over a generated ledger
"""

import random
from decimal import Decimal

import pytest

from settleup.config import Settings
from settleup.engine import compute_balances, validate_entry
from settleup.errors import ErrorKind, InvalidEntryError
from settleup.models import LedgerEntry


SETTINGS = Settings(rounding_unit=Decimal("0.01"), tolerance=Decimal("0.01"))
MEMBERS = ["ana", "ben", "cai", "dev", "eli"]


def generated_ledger(seed: int, count: int = 40) -> list[LedgerEntry]:
    rng = random.Random(seed)
    entries = []
    for _ in range(count):
        amount = Decimal(rng.randint(1, 50000)) / 100
        if rng.random() < 0.75:
            participants = rng.sample(MEMBERS, rng.randint(1, len(MEMBERS)))
            entries.append(LedgerEntry.expense(amount=amount, payer=rng.choice(MEMBERS), participants=participants))
        else:
            sender, receiver = rng.sample(MEMBERS, 2)
            entries.append(LedgerEntry.payment(amount=amount, from_member=sender, to_member=receiver))
    return entries


class TestNetBalances:
    """Tests for contributed/owed/net computation."""

    def test_single_expense_split_three_ways(self):
        """One member pays for all three."""
        entries = [LedgerEntry.expense(amount=Decimal("150"), payer="A", participants=["A", "B", "C"])]

        sheet = compute_balances(["A", "B", "C"], entries, SETTINGS)

        assert sheet.balances == {"A": Decimal("100.00"), "B": Decimal("-50.00"), "C": Decimal("-50.00")}
        assert list(sheet.balances) == ["A", "B", "C"]

    def test_payment_counts_for_both_sides(self):
        """A payment moves the sender down and the receiver up."""
        entries = [
            LedgerEntry.expense(amount=Decimal("100"), payer="A", participants=["A", "B"]),
            LedgerEntry.payment(amount=Decimal("50"), from_member="B", to_member="A"),
        ]

        sheet = compute_balances(["A", "B"], entries, SETTINGS)

        # A: 100 paid + 50 received - 50 share; B: -50 sent - 50 share
        assert sheet.balances == {"A": Decimal("100.00"), "B": Decimal("-100.00")}
        assert sum(sheet.balances.values()) == 0

    def test_breakdown_reports_contributed_and_owed(self):
        """Breakdown rows carry the parts of each net balance."""
        entries = [
            LedgerEntry.expense(amount=Decimal("60"), payer="A", participants=["A", "B", "C"]),
            LedgerEntry.payment(amount=Decimal("20"), from_member="B", to_member="A"),
        ]

        sheet = compute_balances(["A", "B", "C"], entries, SETTINGS)
        rows = {row.member: row for row in sheet.breakdown}

        assert rows["A"].contributed == Decimal("80.00")
        assert rows["A"].owed == Decimal("20.00")
        assert rows["A"].net == Decimal("60.00")
        assert rows["B"].contributed == Decimal("-20.00")
        assert rows["B"].net == Decimal("-40.00")
        assert rows["C"].contributed == Decimal("0.00")

    def test_empty_ledger_gives_zero_for_every_member(self):
        """Every roster member is present even without entries."""
        sheet = compute_balances(["A", "B", "C"], [], SETTINGS)

        assert sheet.balances == {"A": Decimal("0"), "B": Decimal("0"), "C": Decimal("0")}
        assert sheet.unknown_members == []

    def test_member_without_entries_is_zero(self):
        entries = [LedgerEntry.expense(amount=Decimal("40"), payer="A", participants=["A", "B"])]

        sheet = compute_balances(["A", "B", "C"], entries, SETTINGS)

        assert sheet.balances["C"] == Decimal("0")

    def test_duplicate_participants_count_once(self):
        """Repeating a participant does not change the split."""
        entry = LedgerEntry.expense(amount=Decimal("100"), payer="A", participants=["A", "B", "B"])
        assert entry.participants == ("A", "B")

        sheet = compute_balances(["A", "B"], [entry], SETTINGS)

        assert sheet.balances == {"A": Decimal("50.00"), "B": Decimal("-50.00")}

    def test_duplicate_roster_entries_collapse(self):
        sheet = compute_balances(["A", "B", "A"], [], SETTINGS)
        assert list(sheet.balances) == ["A", "B"]


class TestRounding:
    """Tests for equal-split rounding."""

    def test_uneven_split_sums_to_zero(self):
        """100 over three leaves one extra cent, assigned in roster order."""
        entries = [LedgerEntry.expense(amount=Decimal("100"), payer="A", participants=["A", "B", "C"])]

        sheet = compute_balances(["A", "B", "C"], entries, SETTINGS)

        assert sheet.balances == {"A": Decimal("66.66"), "B": Decimal("-33.33"), "C": Decimal("-33.33")}
        assert sum(sheet.balances.values()) == 0

    def test_shares_are_rounded_once_not_per_entry(self):
        """Three 10.00 expenses split three ways owe exactly 10.00 each."""
        entries = [
            LedgerEntry.expense(amount=Decimal("10.00"), payer="A", participants=["A", "B", "C"])
            for _ in range(3)
        ]

        sheet = compute_balances(["A", "B", "C"], entries, SETTINGS)
        rows = {row.member: row for row in sheet.breakdown}

        assert rows["B"].owed == Decimal("10.00")
        assert sheet.balances == {"A": Decimal("20.00"), "B": Decimal("-10.00"), "C": Decimal("-10.00")}

    def test_whole_currency_rounding_unit(self):
        """The rounding unit comes from settings."""
        settings = Settings(rounding_unit=Decimal("1"), tolerance=Decimal("1"))
        entries = [LedgerEntry.expense(amount=Decimal("10"), payer="A", participants=["A", "B", "C"])]

        sheet = compute_balances(["A", "B", "C"], entries, settings)

        assert sheet.balances == {"A": Decimal("6"), "B": Decimal("-3"), "C": Decimal("-3")}


class TestInvalidEntries:
    """Tests for rejected entries."""

    def test_expense_without_participants(self):
        entry = LedgerEntry.expense(amount=Decimal("10"), payer="A", participants=[])

        with pytest.raises(InvalidEntryError) as exc_info:
            compute_balances(["A", "B"], [entry], SETTINGS)

        assert exc_info.value.entry_id == entry.id
        assert exc_info.value.kind == ErrorKind.INVALID_ENTRY

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_non_positive_amount(self, amount):
        entry = LedgerEntry.payment(amount=amount, from_member="A", to_member="B")

        with pytest.raises(InvalidEntryError):
            validate_entry(entry)

    def test_amount_finer_than_rounding_unit(self):
        """Amounts are not silently rounded to the currency unit."""
        entry = LedgerEntry.expense(amount=Decimal("10.005"), payer="A", participants=["A", "B"])

        with pytest.raises(InvalidEntryError) as exc_info:
            compute_balances(["A", "B"], [entry], SETTINGS)

        assert "rounding unit" in exc_info.value.reason

    def test_invalid_entry_aborts_whole_computation(self):
        """A bad entry anywhere in the list fails the group."""
        entries = [
            LedgerEntry.expense(amount=Decimal("10"), payer="A", participants=["A", "B"]),
            LedgerEntry.expense(amount=Decimal("10"), payer="B", participants=[]),
        ]

        with pytest.raises(InvalidEntryError):
            compute_balances(["A", "B"], entries, SETTINGS)

    def test_payment_without_receiver(self):
        entry = LedgerEntry(kind="payment", amount=Decimal("5"), **{"from": "A"})

        with pytest.raises(InvalidEntryError):
            validate_entry(entry)


class TestUnknownMembers:
    """Tests for identifiers outside the roster."""

    def test_unknown_references_are_reported_not_fatal(self):
        """A payment between two former members is ignored and reported."""
        entries = [
            LedgerEntry.expense(amount=Decimal("20"), payer="A", participants=["A", "B"]),
            LedgerEntry.payment(amount=Decimal("5"), from_member="X", to_member="Y"),
        ]

        sheet = compute_balances(["A", "B"], entries, SETTINGS)

        assert sheet.balances == {"A": Decimal("10.00"), "B": Decimal("-10.00")}
        assert [(n.member, n.role) for n in sheet.unknown_members] == [("X", "from"), ("Y", "to")]
        assert all(n.entry_id == entries[1].id for n in sheet.unknown_members)

    def test_entry_with_outsider_is_skipped_whole(self):
        """An expense shared with someone off the roster does not count for anyone."""
        entries = [
            LedgerEntry.expense(amount=Decimal("20"), payer="A", participants=["A", "B"]),
            LedgerEntry.expense(amount=Decimal("90"), payer="A", participants=["A", "B", "C"]),
        ]

        sheet = compute_balances(["A", "B"], entries, SETTINGS)

        assert sheet.balances == {"A": Decimal("10.00"), "B": Decimal("-10.00")}
        assert [(n.entry_id, n.member, n.role) for n in sheet.unknown_members] == [
            (entries[1].id, "C", "participant"),
        ]

    def test_outsider_payer_is_skipped_whole(self):
        entries = [LedgerEntry.expense(amount=Decimal("30"), payer="Z", participants=["A", "B"])]

        sheet = compute_balances(["A", "B"], entries, SETTINGS)

        assert sheet.balances == {"A": Decimal("0"), "B": Decimal("0")}
        assert [(n.member, n.role) for n in sheet.unknown_members] == [("Z", "payer")]


class TestLedgerProperties:
    """Zero-sum and determinism over generated ledgers."""

    @pytest.mark.parametrize("seed", [1, 7, 42, 2024])
    def test_balances_sum_to_zero(self, seed):
        sheet = compute_balances(MEMBERS, generated_ledger(seed), SETTINGS)

        assert sum(sheet.balances.values()) == 0

    @pytest.mark.parametrize("seed", [1, 7, 42, 2024])
    def test_partial_roster_still_sums_to_zero(self, seed):
        """Dropping a member from the roster never unbalances the rest."""
        sheet = compute_balances(MEMBERS[:-1], generated_ledger(seed), SETTINGS)

        assert sum(sheet.balances.values()) == 0
        assert {n.member for n in sheet.unknown_members} <= {MEMBERS[-1]}

    def test_same_input_same_balances(self):
        entries = generated_ledger(99)

        first = compute_balances(MEMBERS, entries, SETTINGS)
        second = compute_balances(MEMBERS, entries, SETTINGS)

        assert first == second
