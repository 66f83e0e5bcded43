"""
Split-type allocator.

Divides an expense total among participants according to a split strategy.
Every strategy rounds to cents and puts the rounding residual on the last
participant, so the returned shares always sum exactly to the total.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Round any number (or numeric string) to cents, half-up"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Equal:
    pass


@dataclass(frozen=True)
class SpecificAmount:
    amounts: Mapping[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class Percentage:
    percentages: Mapping[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class Shares:
    shares: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class LineItem:
    name: str
    amount: Decimal
    participants: tuple[str, ...] = ()


@dataclass(frozen=True)
class Itemized:
    items: tuple[LineItem, ...] = ()


SplitStrategy = Union[Equal, SpecificAmount, Percentage, Shares, Itemized]

SPLIT_TYPES = {
    Equal: "equal",
    SpecificAmount: "specific",
    Percentage: "percentage",
    Shares: "shares",
    Itemized: "itemized",
}


def split_type_name(strategy: SplitStrategy) -> str:
    return SPLIT_TYPES[type(strategy)]


def _reconcile(shares: dict[str, Decimal], participants: Sequence[str], total: Decimal) -> dict[str, Decimal]:
    residual = total - sum(shares.values(), Decimal("0"))
    if residual:
        last = participants[-1]
        shares[last] = shares.get(last, Decimal("0")) + residual
    return shares


def _weighted(total: Decimal, participants: Sequence[str], weights: Mapping[str, Decimal]) -> dict[str, Decimal]:
    weight_sum = sum(weights.values(), Decimal("0"))
    if not weight_sum:
        weights = {pid: Decimal("1") for pid in participants}
        weight_sum = Decimal(len(participants))
    shares = {pid: to_money(total * weights[pid] / weight_sum) for pid in participants}
    return _reconcile(shares, participants, total)


def _equal(total: Decimal, participants: Sequence[str]) -> dict[str, Decimal]:
    base = to_money(total / len(participants))
    return _reconcile({pid: base for pid in participants}, participants, total)


def allocate(total, participants: Sequence[str], strategy: SplitStrategy) -> dict[str, Decimal]:
    """
    Compute each participant's owed amount.

    Args:
        total: Expense total; zero and negative totals (corrections) are allowed.
        participants: Ordered participant ids; the last one absorbs rounding.
        strategy: One of Equal, SpecificAmount, Percentage, Shares, Itemized.

    Returns:
        Mapping participant id -> Decimal share, summing exactly to total.

    Raises:
        ValueError: If there are no participants.
        TypeError: If strategy is not a known split strategy.
    """
    if not participants:
        raise ValueError("Cannot split an expense among zero participants")

    participants = list(dict.fromkeys(participants))
    total = to_money(total)

    if isinstance(strategy, Equal):
        return _equal(total, participants)

    if isinstance(strategy, SpecificAmount):
        shares = {pid: to_money(strategy.amounts.get(pid, 0)) for pid in participants}
        return _reconcile(shares, participants, total)

    if isinstance(strategy, Percentage):
        shares = {
            pid: to_money(total * Decimal(str(strategy.percentages.get(pid, 0))) / 100)
            for pid in participants
        }
        return _reconcile(shares, participants, total)

    if isinstance(strategy, Shares):
        weights = {pid: Decimal(str(strategy.shares.get(pid, 1))) for pid in participants}
        return _weighted(total, participants, weights)

    if isinstance(strategy, Itemized):
        shares = {pid: Decimal("0.00") for pid in participants}
        for item in strategy.items:
            item_participants = list(item.participants) or participants
            for pid, amount in _equal(to_money(item.amount), item_participants).items():
                shares[pid] = shares.get(pid, Decimal("0")) + amount
        # Items that do not add up to the total (tax, tip) settle on the last participant
        return _reconcile(shares, participants, total)

    raise TypeError(f"Unknown split strategy: {type(strategy).__name__}")
