"""
Balance calculator and debt simplifier. Pure functions, no I/O.

Positive balance = is owed money. Negative balance = owes money.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .splits import to_money

EPSILON = Decimal("0.01")

# Fixed conversion table relative to USD
CURRENCY_RATES = {
    "USD": Decimal("1"),
    "EUR": Decimal("0.92"),
    "GBP": Decimal("0.79"),
    "CAD": Decimal("1.35"),
    "AUD": Decimal("1.5"),
    "INR": Decimal("83"),
    "BDT": Decimal("109"),
}


@dataclass(frozen=True)
class ExpenseEntry:
    id: str
    payer_id: str
    total: Decimal
    splits: Mapping[str, Decimal]
    currency: str = "USD"


@dataclass(frozen=True)
class PaymentEntry:
    id: str
    payer_id: str
    payee_id: str
    amount: Decimal
    currency: str = "USD"


@dataclass(frozen=True)
class Settlement:
    from_id: str
    to_id: str
    amount: Decimal


def convert_currency(amount, from_currency: str, to_currency: str) -> Decimal:
    if from_currency not in CURRENCY_RATES or to_currency not in CURRENCY_RATES:
        raise ValueError(f"Unsupported currency conversion {from_currency} -> {to_currency}")
    if from_currency == to_currency:
        return to_money(amount)
    return to_money(Decimal(str(amount)) / CURRENCY_RATES[from_currency] * CURRENCY_RATES[to_currency])


def calculate_balances(
    expenses: Iterable[ExpenseEntry],
    payments: Iterable[PaymentEntry],
    members: Sequence[str],
    currency: Optional[str] = None,
) -> dict[str, Decimal]:
    """
    Net balance per participant.

    The payer is credited with everything the participants owe (their own
    share included), every participant is debited their share, and each
    payment lowers both what its payer owes and what its payee is owed. The
    balances of a closed set of expenses and payments always sum to zero.

    When currency is given, each share and payment is converted before it is
    booked; the payer's credit is the sum of the converted shares so the
    conversion cannot unbalance the ledger.
    """
    balances: dict[str, Decimal] = {member: Decimal("0.00") for member in members}

    for expense in expenses:
        credited = Decimal("0.00")
        for participant, share in expense.splits.items():
            amount = to_money(share)
            if currency:
                amount = convert_currency(amount, expense.currency, currency)
            balances[participant] = balances.get(participant, Decimal("0.00")) - amount
            credited += amount
        balances[expense.payer_id] = balances.get(expense.payer_id, Decimal("0.00")) + credited

    for payment in payments:
        amount = to_money(payment.amount)
        if currency:
            amount = convert_currency(amount, payment.currency, currency)
        balances[payment.payer_id] = balances.get(payment.payer_id, Decimal("0.00")) + amount
        balances[payment.payee_id] = balances.get(payment.payee_id, Decimal("0.00")) - amount

    return balances


def simplify_debts(balances: Mapping[str, Decimal], epsilon: Decimal = EPSILON) -> list[Settlement]:
    """
    Greedy min-cash-flow: match debtors to creditors in insertion order.

    Produces at most len(balances) - 1 transfers. This is a heuristic and
    does not always find the smallest possible number of transfers.
    """
    debtors = [[pid, -to_money(amount)] for pid, amount in balances.items() if amount < -epsilon]
    creditors = [[pid, to_money(amount)] for pid, amount in balances.items() if amount > epsilon]

    settlements: list[Settlement] = []
    i = j = 0
    while i < len(debtors) and j < len(creditors):
        debtor, creditor = debtors[i], creditors[j]
        paid = min(debtor[1], creditor[1])
        settlements.append(Settlement(from_id=debtor[0], to_id=creditor[0], amount=paid))
        debtor[1] -= paid
        creditor[1] -= paid
        if debtor[1] <= epsilon:
            i += 1
        if creditor[1] <= epsilon:
            j += 1

    return settlements


def apply_settlements(
    balances: Mapping[str, Decimal], settlements: Iterable[Settlement]
) -> dict[str, Decimal]:
    """Balances after every settlement has been paid"""
    result = dict(balances)
    for settlement in settlements:
        result[settlement.from_id] = result.get(settlement.from_id, Decimal("0")) + settlement.amount
        result[settlement.to_id] = result.get(settlement.to_id, Decimal("0")) - settlement.amount
    return result
