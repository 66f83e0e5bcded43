"""
Immutable ledger snapshot and its transition function.

The ledger service never edits balances in place: it replays the persisted
expenses and payments as actions into a LedgerState and computes balances
and settlements from that snapshot.
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace
from decimal import Decimal
from functools import reduce
from typing import Optional, Union

from .balances import (
    ExpenseEntry,
    PaymentEntry,
    Settlement,
    calculate_balances,
    simplify_debts,
)


@dataclass(frozen=True)
class LedgerState:
    members: tuple[str, ...] = ()
    expenses: tuple[ExpenseEntry, ...] = ()
    payments: tuple[PaymentEntry, ...] = ()

    def balances(self, currency: Optional[str] = None) -> dict[str, Decimal]:
        return calculate_balances(self.expenses, self.payments, self.members, currency)

    def settlements(self, currency: Optional[str] = None) -> list[Settlement]:
        return simplify_debts(self.balances(currency))


@dataclass(frozen=True)
class AddMember:
    member_id: str


@dataclass(frozen=True)
class RemoveMember:
    member_id: str


@dataclass(frozen=True)
class AddExpense:
    expense: ExpenseEntry


@dataclass(frozen=True)
class UpdateExpense:
    expense: ExpenseEntry


@dataclass(frozen=True)
class RemoveExpense:
    expense_id: str


@dataclass(frozen=True)
class RecordPayment:
    payment: PaymentEntry


LedgerAction = Union[AddMember, RemoveMember, AddExpense, UpdateExpense, RemoveExpense, RecordPayment]


def apply_action(state: LedgerState, action: LedgerAction) -> LedgerState:
    """Return the state after action. The input state is left untouched."""
    if isinstance(action, AddMember):
        if action.member_id in state.members:
            return state
        return replace(state, members=state.members + (action.member_id,))

    if isinstance(action, RemoveMember):
        # A departed member's shares are dropped from every expense
        expenses = tuple(
            replace(e, splits={pid: v for pid, v in e.splits.items() if pid != action.member_id})
            if action.member_id in e.splits
            else e
            for e in state.expenses
        )
        members = tuple(m for m in state.members if m != action.member_id)
        return replace(state, members=members, expenses=expenses)

    if isinstance(action, AddExpense):
        return replace(state, expenses=state.expenses + (action.expense,))

    if isinstance(action, UpdateExpense):
        expenses = tuple(
            action.expense if e.id == action.expense.id else e for e in state.expenses
        )
        return replace(state, expenses=expenses)

    if isinstance(action, RemoveExpense):
        return replace(state, expenses=tuple(e for e in state.expenses if e.id != action.expense_id))

    if isinstance(action, RecordPayment):
        return replace(state, payments=state.payments + (action.payment,))

    raise TypeError(f"Unknown ledger action: {type(action).__name__}")


def replay(actions: Iterable[LedgerAction], initial: Optional[LedgerState] = None) -> LedgerState:
    return reduce(apply_action, actions, initial or LedgerState())
