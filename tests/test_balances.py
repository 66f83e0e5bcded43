"""Tests for dormduty.domain.ledger.balances and the ledger state reducer."""

from decimal import Decimal

import pytest

from dormduty.domain.ledger.balances import (
    ExpenseEntry,
    PaymentEntry,
    Settlement,
    apply_settlements,
    calculate_balances,
    convert_currency,
    simplify_debts,
)
from dormduty.domain.ledger.splits import Equal, allocate
from dormduty.domain.ledger.state import (
    AddExpense,
    AddMember,
    LedgerState,
    RecordPayment,
    RemoveExpense,
    RemoveMember,
    UpdateExpense,
    apply_action,
    replay,
)

PEOPLE = ["alice", "bob", "carol"]


def expense(expense_id, payer, total, participants=PEOPLE, currency="USD"):
    return ExpenseEntry(
        id=expense_id,
        payer_id=payer,
        total=Decimal(total),
        splits=allocate(Decimal(total), participants, Equal()),
        currency=currency,
    )


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------


class TestCalculateBalances:
    def test_payer_is_owed_everyone_elses_share(self):
        balances = calculate_balances([expense("e1", "alice", "90")], [], PEOPLE)
        assert balances == {
            "alice": Decimal("60.00"),
            "bob": Decimal("-30.00"),
            "carol": Decimal("-30.00"),
        }

    def test_balances_sum_to_zero(self):
        expenses = [
            expense("e1", "alice", "100"),
            expense("e2", "bob", "47.35"),
            expense("e3", "carol", "12.01", participants=["alice", "carol"]),
        ]
        balances = calculate_balances(expenses, [], PEOPLE)
        assert sum(balances.values()) == Decimal("0")

    def test_payment_moves_both_parties_toward_zero(self):
        payments = [PaymentEntry(id="p1", payer_id="bob", payee_id="alice", amount=Decimal("30"))]
        balances = calculate_balances([expense("e1", "alice", "90")], payments, PEOPLE)
        assert balances["bob"] == Decimal("0.00")
        assert balances["alice"] == Decimal("30.00")

    def test_members_without_activity_have_zero_balance(self):
        balances = calculate_balances([], [], PEOPLE)
        assert balances == {pid: Decimal("0.00") for pid in PEOPLE}

    def test_converted_balances_still_sum_to_zero(self):
        expenses = [expense("e1", "alice", "100", currency="EUR"), expense("e2", "bob", "33", currency="GBP")]
        balances = calculate_balances(expenses, [], PEOPLE, currency="USD")
        assert sum(balances.values()) == Decimal("0")


class TestConvertCurrency:
    def test_same_currency_is_identity(self):
        assert convert_currency("12.345", "USD", "USD") == Decimal("12.35")

    def test_usd_to_eur(self):
        assert convert_currency("100", "USD", "EUR") == Decimal("92.00")

    def test_unknown_currency_raises(self):
        with pytest.raises(ValueError):
            convert_currency("1", "USD", "XYZ")


# ---------------------------------------------------------------------------
# Debt simplification
# ---------------------------------------------------------------------------


class TestSimplifyDebts:
    def test_two_debtors_one_creditor(self):
        balances = {"alice": Decimal("66.67"), "bob": Decimal("-33.33"), "carol": Decimal("-33.34")}
        settlements = simplify_debts(balances)
        assert settlements == [
            Settlement(from_id="bob", to_id="alice", amount=Decimal("33.33")),
            Settlement(from_id="carol", to_id="alice", amount=Decimal("33.34")),
        ]

    def test_settled_room_needs_no_transfers(self):
        assert simplify_debts({"alice": Decimal("0"), "bob": Decimal("0.004")}) == []

    def test_at_most_n_minus_one_transfers(self):
        balances = {
            "a": Decimal("50"),
            "b": Decimal("-20"),
            "c": Decimal("-45"),
            "d": Decimal("25"),
            "e": Decimal("-10"),
        }
        settlements = simplify_debts(balances)
        assert len(settlements) <= len(balances) - 1

    def test_applying_settlements_zeroes_every_balance(self):
        expenses = [
            expense("e1", "alice", "100"),
            expense("e2", "bob", "47.35"),
            expense("e3", "carol", "12.01", participants=["alice", "carol"]),
        ]
        balances = calculate_balances(expenses, [], PEOPLE)
        settled = apply_settlements(balances, simplify_debts(balances))
        assert all(abs(amount) < Decimal("0.01") for amount in settled.values())

    def test_matches_in_insertion_order_not_by_size(self):
        balances = {
            "alice": Decimal("10"),
            "bob": Decimal("30"),
            "carol": Decimal("-5"),
            "dave": Decimal("-35"),
        }
        assert simplify_debts(balances) == [
            Settlement(from_id="carol", to_id="alice", amount=Decimal("5.00")),
            Settlement(from_id="dave", to_id="alice", amount=Decimal("5.00")),
            Settlement(from_id="dave", to_id="bob", amount=Decimal("30.00")),
        ]

    def test_amounts_are_positive(self):
        balances = {"alice": Decimal("10"), "bob": Decimal("-10")}
        assert all(s.amount > 0 for s in simplify_debts(balances))


# ---------------------------------------------------------------------------
# Ledger state
# ---------------------------------------------------------------------------


class TestLedgerState:
    def test_apply_action_does_not_mutate_input(self):
        state = LedgerState()
        new_state = apply_action(state, AddMember("alice"))
        assert state.members == ()
        assert new_state.members == ("alice",)

    def test_add_member_is_idempotent(self):
        state = replay([AddMember("alice"), AddMember("alice")])
        assert state.members == ("alice",)

    def test_replay_builds_balances(self):
        state = replay(
            [AddMember(pid) for pid in PEOPLE]
            + [
                AddExpense(expense("e1", "alice", "90")),
                RecordPayment(PaymentEntry(id="p1", payer_id="bob", payee_id="alice", amount=Decimal("30"))),
            ]
        )
        assert state.balances()["carol"] == Decimal("-30.00")
        assert state.settlements() == [Settlement(from_id="carol", to_id="alice", amount=Decimal("30.00"))]

    def test_update_and_remove_expense(self):
        state = replay([AddMember(pid) for pid in PEOPLE] + [AddExpense(expense("e1", "alice", "90"))])
        state = apply_action(state, UpdateExpense(expense("e1", "alice", "30")))
        assert state.balances()["bob"] == Decimal("-10.00")

        state = apply_action(state, RemoveExpense("e1"))
        assert state.expenses == ()
        assert state.balances()["alice"] == Decimal("0.00")

    def test_remove_member_drops_their_shares(self):
        state = replay([AddMember(pid) for pid in PEOPLE] + [AddExpense(expense("e1", "alice", "90"))])
        state = apply_action(state, RemoveMember("carol"))
        assert "carol" not in state.members
        assert "carol" not in state.expenses[0].splits
        assert sum(state.balances().values()) == Decimal("0")

    def test_unknown_action_raises(self):
        with pytest.raises(TypeError):
            apply_action(LedgerState(), object())
