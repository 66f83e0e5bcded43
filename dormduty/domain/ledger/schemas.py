"""Ledger domain schemas - Pydantic models for validation"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, Field, PlainSerializer, field_validator

from ...shared.validators import validate_currency
from .balances import CURRENCY_RATES
from .splits import Equal, Itemized, LineItem, Percentage, Shares, SpecificAmount

# Exact in Python, a plain number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

FREQUENCIES = ("daily", "weekly", "monthly", "yearly")


def validate_ledger_currency(v: str) -> str:
    """A currency the conversion table can price, so balances stay computable"""
    code = validate_currency(v)
    if code not in CURRENCY_RATES:
        raise ValueError(f"currency must be one of: {', '.join(CURRENCY_RATES)}")
    return code


LedgerCurrency = Annotated[str, AfterValidator(validate_ledger_currency)]


class EqualSplit(BaseModel):
    type: Literal["equal"] = "equal"

    def to_strategy(self) -> Equal:
        return Equal()


class SpecificSplit(BaseModel):
    type: Literal["specific"]
    amounts: dict[str, Decimal]

    def to_strategy(self) -> SpecificAmount:
        return SpecificAmount(amounts=self.amounts)


class PercentageSplit(BaseModel):
    type: Literal["percentage"]
    percentages: dict[str, Decimal]

    @field_validator("percentages")
    @classmethod
    def validate_percentages(cls, v):
        if any(pct < 0 for pct in v.values()):
            raise ValueError("Percentages cannot be negative")
        return v

    def to_strategy(self) -> Percentage:
        return Percentage(percentages=self.percentages)


class SharesSplit(BaseModel):
    type: Literal["shares"]
    shares: dict[str, int]

    @field_validator("shares")
    @classmethod
    def validate_shares(cls, v):
        if any(count < 0 for count in v.values()):
            raise ValueError("Share counts cannot be negative")
        return v

    def to_strategy(self) -> Shares:
        return Shares(shares=self.shares)


class LineItemIn(BaseModel):
    name: str
    amount: Decimal
    participants: list[str] = []


class ItemizedSplit(BaseModel):
    type: Literal["itemized"]
    items: list[LineItemIn] = Field(min_length=1)

    def to_strategy(self) -> Itemized:
        return Itemized(
            items=tuple(
                LineItem(name=i.name, amount=i.amount, participants=tuple(i.participants))
                for i in self.items
            )
        )


SplitIn = Annotated[
    Union[EqualSplit, SpecificSplit, PercentageSplit, SharesSplit, ItemizedSplit],
    Field(discriminator="type"),
]


class ExpenseCreate(BaseModel):
    """Schema for recording a shared expense"""

    roomId: Optional[str] = None
    payerId: str
    totalAmount: Decimal
    currency: LedgerCurrency = "USD"
    description: str = Field(min_length=1)
    category: Optional[str] = None
    date: Optional[datetime] = None
    participants: Optional[list[str]] = None  # None = every room member
    split: SplitIn = Field(default_factory=EqualSplit)


class ExpenseUpdate(BaseModel):
    payerId: Optional[str] = None
    totalAmount: Optional[Decimal] = None
    description: Optional[str] = None
    category: Optional[str] = None
    date: Optional[datetime] = None
    participants: Optional[list[str]] = None
    split: Optional[SplitIn] = None


class CurrencyConversionRequest(BaseModel):
    currency: LedgerCurrency


class ExpenseResponse(BaseModel):
    id: str
    roomId: str
    payerId: str
    totalAmount: Money
    currency: str
    description: str
    category: Optional[str]
    splitType: str
    splits: dict[str, Money]
    date: Optional[datetime] = None
    createdAt: Optional[datetime] = None


class PaymentCreate(BaseModel):
    """Schema for recording a settlement between two roommates"""

    roomId: Optional[str] = None
    payerId: str
    payeeId: str
    amount: Decimal = Field(ge=Decimal("0.01"))
    currency: LedgerCurrency = "USD"
    method: Optional[str] = None
    expenseId: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    roomId: str
    payerId: str
    payeeId: str
    amount: Money
    currency: str = "USD"
    method: Optional[str]
    expenseId: Optional[str]
    createdAt: Optional[datetime] = None


def validate_frequency(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip().lower()
    if v not in FREQUENCIES:
        raise ValueError(f"frequency must be one of: {', '.join(FREQUENCIES)}")
    return v


Frequency = Annotated[Optional[str], AfterValidator(validate_frequency)]


class RecurringExpenseCreate(BaseModel):
    """Schema for a bill that repeats on a fixed frequency"""

    roomId: Optional[str] = None
    payerId: str
    amount: Decimal = Field(ge=Decimal("0.01"))
    currency: LedgerCurrency = "USD"
    description: str = Field(min_length=1)
    category: Optional[str] = None
    frequency: Annotated[str, AfterValidator(validate_frequency)] = "monthly"
    participants: Optional[list[str]] = None  # None = every room member
    split: SplitIn = Field(default_factory=EqualSplit)


class RecurringExpenseUpdate(BaseModel):
    payerId: Optional[str] = None
    amount: Optional[Decimal] = Field(None, ge=Decimal("0.01"))
    currency: Optional[LedgerCurrency] = None
    description: Optional[str] = None
    category: Optional[str] = None
    frequency: Frequency = None
    active: Optional[bool] = None
    participants: Optional[list[str]] = None
    split: Optional[SplitIn] = None


class RecurringExpenseResponse(BaseModel):
    id: str
    roomId: str
    payerId: str
    amount: Money
    currency: str
    description: str
    category: Optional[str]
    frequency: str
    splitType: str
    participants: list[str]
    active: bool
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class BalanceEntry(BaseModel):
    userId: str
    name: Optional[str] = None
    balance: Money


class BalancesResponse(BaseModel):
    roomId: str
    currency: str
    balances: list[BalanceEntry]


class SettlementEntry(BaseModel):
    fromUserId: str
    toUserId: str
    amount: Money


class SettlementsResponse(BaseModel):
    roomId: str
    currency: str
    settlements: list[SettlementEntry]


class SpendingReportResponse(BaseModel):
    total: Money
    count: int
    byCategory: dict[str, Money]
    byPayer: dict[str, Money]
    expenses: list[ExpenseResponse]
