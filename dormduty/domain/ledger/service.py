"""Ledger service - Business logic for shared expenses, balances and settlements"""

import csv
import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from io import StringIO
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from ...membership import assert_membership, get_room_member, room_member_ids
from ...models import Expense, Payment, RecurringExpense, User
from ...shared.validators import to_utc_naive
from ..activity.repository import ActivityRepository
from .balances import ExpenseEntry, PaymentEntry, convert_currency
from .repository import LedgerRepository
from .schemas import (
    BalanceEntry,
    BalancesResponse,
    ExpenseCreate,
    ExpenseResponse,
    ExpenseUpdate,
    PaymentCreate,
    PaymentResponse,
    RecurringExpenseCreate,
    RecurringExpenseResponse,
    RecurringExpenseUpdate,
    SettlementEntry,
    SettlementsResponse,
    SpendingReportResponse,
    SplitIn,
)
from .splits import allocate, split_type_name, to_money
from .state import AddExpense, AddMember, LedgerState, RecordPayment, replay

logger = logging.getLogger(__name__)

_split_adapter = TypeAdapter(SplitIn)


def expense_to_response(expense: Expense) -> ExpenseResponse:
    return ExpenseResponse(
        id=expense.id,
        roomId=expense.room_id,
        payerId=expense.payer_id,
        totalAmount=to_money(expense.total_amount),
        currency=expense.currency,
        description=expense.description,
        category=expense.category,
        splitType=expense.split_type,
        splits={pid: Decimal(value) for pid, value in (expense.splits or {}).items()},
        date=expense.expense_date,
        createdAt=expense.created_at,
    )


def payment_to_response(payment: Payment) -> PaymentResponse:
    return PaymentResponse(
        id=payment.id,
        roomId=payment.room_id,
        payerId=payment.payer_id,
        payeeId=payment.payee_id,
        amount=to_money(payment.amount),
        currency=payment.currency,
        method=payment.method,
        expenseId=payment.expense_id,
        createdAt=payment.created_at,
    )


def recurring_to_response(recurring: RecurringExpense) -> RecurringExpenseResponse:
    details = recurring.split_details or {}
    return RecurringExpenseResponse(
        id=recurring.id,
        roomId=recurring.room_id,
        payerId=recurring.payer_id,
        amount=to_money(recurring.amount),
        currency=recurring.currency,
        description=recurring.description,
        category=recurring.category,
        frequency=recurring.frequency,
        splitType=recurring.split_type,
        participants=details.get("participants", []),
        active=recurring.active,
        createdAt=recurring.created_at,
        updatedAt=recurring.updated_at,
    )


def _expense_entry(expense: Expense) -> ExpenseEntry:
    return ExpenseEntry(
        id=expense.id,
        payer_id=expense.payer_id,
        total=to_money(expense.total_amount),
        splits={pid: Decimal(value) for pid, value in (expense.splits or {}).items()},
        currency=expense.currency,
    )


def _payment_entry(payment: Payment) -> PaymentEntry:
    return PaymentEntry(
        id=payment.id,
        payer_id=payment.payer_id,
        payee_id=payment.payee_id,
        amount=to_money(payment.amount),
        currency=payment.currency,
    )


def _convert_split_details(split: dict, from_currency: str, to_currency: str) -> dict:
    """Equal, percentage and shares splits are currency-free; amounts are not"""
    if split.get("type") == "specific":
        split = {
            **split,
            "amounts": {
                pid: str(convert_currency(amount, from_currency, to_currency))
                for pid, amount in split["amounts"].items()
            },
        }
    elif split.get("type") == "itemized":
        split = {
            **split,
            "items": [
                {**item, "amount": str(convert_currency(item["amount"], from_currency, to_currency))}
                for item in split["items"]
            ],
        }
    return split


class LedgerService:
    """Service layer for the bill-splitting ledger"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = LedgerRepository()

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def _check_members(self, room_id: str, user_ids) -> None:
        """Reject ids that are not current members of the room"""
        members = set(room_member_ids(self.db, room_id))
        strangers = sorted({pid for pid in user_ids if pid not in members})
        if strangers:
            raise HTTPException(
                status_code=400,
                detail=f"Participants are not members of this room: {', '.join(strangers)}",
            )

    def _check_new_participants(self, room_id: str, participants: Optional[list[str]], split) -> None:
        """Membership applies to the people a request names, not to those already on a stored split"""
        named = list(participants or [])
        if split is not None and split.type == "itemized":
            named += [pid for item in split.items for pid in item.participants]
        if named:
            self._check_members(room_id, named)

    @staticmethod
    def _compute_splits(total: Decimal, participants: list[str], split) -> tuple[list[str], dict[str, str]]:
        participants = list(dict.fromkeys(participants or []))
        if not participants:
            raise HTTPException(status_code=400, detail="An expense needs at least one participant")

        try:
            shares = allocate(total, participants, split.to_strategy())
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return participants, {pid: str(amount) for pid, amount in shares.items()}

    def get_expenses(
        self,
        user: User,
        room_id: Optional[str] = None,
        search: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> list[Expense]:
        room_id = assert_membership(user, room_id)
        expenses = self.repo.get_expenses(self.db, room_id, search)
        if user_id:
            expenses = [e for e in expenses if e.payer_id == user_id or user_id in (e.splits or {})]
        return expenses

    def get_expense(self, expense_id: str, user: User) -> Expense:
        expense = self.repo.get_expense_by_id(self.db, expense_id)
        if not expense:
            raise HTTPException(status_code=404, detail="Expense not found")
        assert_membership(user, expense.room_id)
        return expense

    def create_expense(self, data: ExpenseCreate, user: User) -> Expense:
        room_id = assert_membership(user, data.roomId)
        get_room_member(self.db, room_id, data.payerId, field="payerId")
        self._check_new_participants(room_id, data.participants, data.split)

        total = to_money(data.totalAmount)
        participants = data.participants or room_member_ids(self.db, room_id)
        participants, splits = self._compute_splits(total, participants, data.split)

        logger.info(
            f"💸 Expense '{data.description}' {total} {data.currency} in room {room_id} "
            f"({split_type_name(data.split.to_strategy())}, {len(participants)} participants)"
        )
        ActivityRepository.add_entry(
            self.db,
            room_id,
            "expense_added",
            f"{data.description.strip()} added ({total} {data.currency})",
            user_id=data.payerId,
            created_by=user.id,
        )
        return self.repo.create_expense(
            self.db,
            room_id,
            payer_id=data.payerId,
            total_amount=total,
            currency=data.currency,
            description=data.description.strip(),
            category=data.category,
            split_type=data.split.type,
            splits=splits,
            split_details={
                "split": data.split.model_dump(mode="json"),
                "participants": participants,
            },
            expense_date=to_utc_naive(data.date) or datetime.utcnow(),
        )

    def update_expense(self, expense_id: str, data: ExpenseUpdate, user: User) -> Expense:
        expense = self.get_expense(expense_id, user)
        room_id = expense.room_id
        details = expense.split_details or {}

        updates = {}
        if data.payerId is not None:
            if data.payerId != expense.payer_id:
                get_room_member(self.db, room_id, data.payerId, field="payerId")
            updates["payer_id"] = data.payerId
        if data.description is not None:
            updates["description"] = data.description.strip()
        if data.category is not None:
            updates["category"] = data.category
        if data.date is not None:
            updates["expense_date"] = to_utc_naive(data.date)

        if data.totalAmount is not None or data.participants is not None or data.split is not None:
            self._check_new_participants(room_id, data.participants, data.split)
            total = to_money(data.totalAmount if data.totalAmount is not None else expense.total_amount)
            split = data.split or _split_adapter.validate_python(details.get("split", {"type": "equal"}))
            participants = (
                data.participants or details.get("participants") or list((expense.splits or {}).keys())
            )
            participants, splits = self._compute_splits(total, participants, split)
            updates.update(
                total_amount=total,
                split_type=split.type,
                splits=splits,
                split_details={"split": split.model_dump(mode="json"), "participants": participants},
            )

        if not updates:
            raise HTTPException(status_code=400, detail="No valid update fields provided")

        ActivityRepository.add_entry(
            self.db,
            room_id,
            "expense_updated",
            f"{updates.get('description', expense.description)} updated",
            created_by=user.id,
        )
        return self.repo.update_expense(self.db, expense, **updates)

    def delete_expense(self, expense_id: str, user: User) -> dict:
        expense = self.get_expense(expense_id, user)
        ActivityRepository.add_entry(
            self.db, expense.room_id, "expense_deleted", f"{expense.description} removed", created_by=user.id
        )
        self.repo.delete_expense(self.db, expense)
        logger.info(f"🗑️ Expense {expense_id} deleted by {user.id}")
        return {"id": expense_id}

    def convert_expense(self, expense_id: str, currency: str, user: User) -> Expense:
        """
        Re-denominate an expense; the split strategy is re-applied to the converted total.
        The stored participants are kept even if some have since left the room.
        """
        expense = self.get_expense(expense_id, user)
        if currency == expense.currency:
            return expense

        try:
            total = convert_currency(expense.total_amount, expense.currency, currency)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        details = expense.split_details or {}
        split_dict = _convert_split_details(
            details.get("split", {"type": "equal"}), expense.currency, currency
        )
        split = _split_adapter.validate_python(split_dict)
        participants = details.get("participants") or list((expense.splits or {}).keys())
        participants, splits = self._compute_splits(total, participants, split)

        ActivityRepository.add_entry(
            self.db,
            expense.room_id,
            "expense_updated",
            f"{expense.description} converted to {currency}",
            created_by=user.id,
        )
        return self.repo.update_expense(
            self.db,
            expense,
            total_amount=total,
            currency=currency,
            splits=splits,
            split_details={"split": split.model_dump(mode="json"), "participants": participants},
        )

    # ------------------------------------------------------------------
    # Balances and settlements
    # ------------------------------------------------------------------

    def build_state(self, room_id: str) -> LedgerState:
        """Replay the room's persisted ledger into an immutable snapshot"""
        actions = [AddMember(member_id) for member_id in room_member_ids(self.db, room_id)]
        actions += [AddExpense(_expense_entry(e)) for e in self.repo.get_expenses_in_order(self.db, room_id)]
        actions += [RecordPayment(_payment_entry(p)) for p in self.repo.get_payments(self.db, room_id)]
        return replay(actions)

    def get_balances(self, user: User, room_id: Optional[str] = None, currency: str = "USD") -> BalancesResponse:
        room_id = assert_membership(user, room_id)
        state = self.build_state(room_id)
        try:
            balances = state.balances(currency)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        names = self.repo.get_member_names(self.db, room_id)
        return BalancesResponse(
            roomId=room_id,
            currency=currency,
            balances=[
                BalanceEntry(userId=pid, name=names.get(pid), balance=amount)
                for pid, amount in balances.items()
            ],
        )

    def get_settlements(
        self, user: User, room_id: Optional[str] = None, currency: str = "USD"
    ) -> SettlementsResponse:
        room_id = assert_membership(user, room_id)
        try:
            settlements = self.build_state(room_id).settlements(currency)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        return SettlementsResponse(
            roomId=room_id,
            currency=currency,
            settlements=[
                SettlementEntry(fromUserId=s.from_id, toUserId=s.to_id, amount=s.amount)
                for s in settlements
            ],
        )

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def record_payment(self, data: PaymentCreate, user: User) -> Payment:
        room_id = assert_membership(user, data.roomId)
        if data.payerId == data.payeeId:
            raise HTTPException(status_code=400, detail="payerId and payeeId must differ")
        payer = get_room_member(self.db, room_id, data.payerId, field="payerId")
        payee = get_room_member(self.db, room_id, data.payeeId, field="payeeId")

        if data.expenseId:
            expense = self.repo.get_expense_by_id(self.db, data.expenseId)
            if not expense or expense.room_id != room_id:
                raise HTTPException(status_code=404, detail="Expense not found")

        amount = to_money(data.amount)
        ActivityRepository.add_entry(
            self.db,
            room_id,
            "payment_recorded",
            f"{payer.name} paid {payee.name} {amount} {data.currency}",
            created_by=user.id,
        )
        payment = self.repo.create_payment(
            self.db,
            room_id,
            payer_id=data.payerId,
            payee_id=data.payeeId,
            amount=amount,
            currency=data.currency,
            method=data.method,
            expense_id=data.expenseId,
        )
        logger.info(f"✅ Payment {payment.amount} {payment.currency} {data.payerId} -> {data.payeeId}")
        return payment

    def get_payments(self, user: User, room_id: Optional[str] = None, user_id: Optional[str] = None) -> list[Payment]:
        room_id = assert_membership(user, room_id)
        return self.repo.get_payments(self.db, room_id, user_id)

    # ------------------------------------------------------------------
    # Recurring expenses
    # ------------------------------------------------------------------

    def get_recurring_expenses(
        self, user: User, room_id: Optional[str] = None, active: Optional[bool] = None
    ) -> list[RecurringExpense]:
        room_id = assert_membership(user, room_id)
        return self.repo.get_recurring_expenses(self.db, room_id, active)

    def get_recurring_expense(self, recurring_id: str, user: User) -> RecurringExpense:
        recurring = self.repo.get_recurring_expense_by_id(self.db, recurring_id)
        if not recurring:
            raise HTTPException(status_code=404, detail="Recurring expense not found")
        assert_membership(user, recurring.room_id)
        return recurring

    def create_recurring_expense(self, data: RecurringExpenseCreate, user: User) -> RecurringExpense:
        """Store the template; the split is validated now by allocating the amount once"""
        room_id = assert_membership(user, data.roomId)
        get_room_member(self.db, room_id, data.payerId, field="payerId")
        self._check_new_participants(room_id, data.participants, data.split)

        amount = to_money(data.amount)
        participants = data.participants or room_member_ids(self.db, room_id)
        participants, _ = self._compute_splits(amount, participants, data.split)

        ActivityRepository.add_entry(
            self.db,
            room_id,
            "recurring_added",
            f"Recurring {data.category or 'expense'} added",
            user_id=data.payerId,
            created_by=user.id,
        )
        recurring = self.repo.create_recurring_expense(
            self.db,
            room_id,
            payer_id=data.payerId,
            amount=amount,
            currency=data.currency,
            description=data.description.strip(),
            category=data.category,
            frequency=data.frequency,
            split_type=data.split.type,
            split_details={"split": data.split.model_dump(mode="json"), "participants": participants},
            active=True,
        )
        logger.info(
            f"🔁 Recurring '{recurring.description}' {amount} {data.currency} {data.frequency} in room {room_id}"
        )
        return recurring

    def update_recurring_expense(
        self, recurring_id: str, data: RecurringExpenseUpdate, user: User
    ) -> RecurringExpense:
        recurring = self.get_recurring_expense(recurring_id, user)
        room_id = recurring.room_id
        details = recurring.split_details or {}
        present = data.model_fields_set

        updates = {}
        if data.payerId is not None:
            if data.payerId != recurring.payer_id:
                get_room_member(self.db, room_id, data.payerId, field="payerId")
            updates["payer_id"] = data.payerId
        if data.currency is not None:
            updates["currency"] = data.currency
        if data.description is not None:
            if not data.description.strip():
                raise HTTPException(status_code=400, detail="description cannot be empty")
            updates["description"] = data.description.strip()
        if "category" in present:
            updates["category"] = data.category
        if data.frequency is not None:
            updates["frequency"] = data.frequency
        if data.active is not None:
            updates["active"] = data.active

        if data.amount is not None or data.participants is not None or data.split is not None:
            self._check_new_participants(room_id, data.participants, data.split)
            amount = to_money(data.amount if data.amount is not None else recurring.amount)
            split = data.split or _split_adapter.validate_python(details.get("split", {"type": "equal"}))
            participants = data.participants or details.get("participants")
            participants, _ = self._compute_splits(amount, participants, split)
            updates.update(
                amount=amount,
                split_type=split.type,
                split_details={"split": split.model_dump(mode="json"), "participants": participants},
            )

        if not updates:
            raise HTTPException(status_code=400, detail="No valid update fields provided")

        ActivityRepository.add_entry(
            self.db, room_id, "recurring_updated", "Recurring expense updated", created_by=user.id
        )
        return self.repo.update_recurring_expense(self.db, recurring, **updates)

    def delete_recurring_expense(self, recurring_id: str, user: User) -> dict:
        recurring = self.get_recurring_expense(recurring_id, user)
        ActivityRepository.add_entry(
            self.db, recurring.room_id, "recurring_deleted", "Recurring expense removed", created_by=user.id
        )
        self.repo.delete_recurring_expense(self.db, recurring)
        return {"id": recurring_id}

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def _report_expenses(
        self,
        room_id: str,
        user_id: Optional[str],
        start: Optional[datetime],
        end: Optional[datetime],
    ) -> list[Expense]:
        expenses = self.repo.get_expenses_between(
            self.db, room_id, to_utc_naive(start), to_utc_naive(end)
        )
        if user_id:
            expenses = [e for e in expenses if e.payer_id == user_id or user_id in (e.splits or {})]
        return expenses

    def spending_report(
        self,
        user: User,
        room_id: Optional[str] = None,
        user_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> SpendingReportResponse:
        room_id = assert_membership(user, room_id)
        expenses = self._report_expenses(room_id, user_id, start, end)

        by_category: dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
        by_payer: dict[str, Decimal] = defaultdict(lambda: Decimal("0.00"))
        for expense in expenses:
            amount = to_money(expense.total_amount)
            by_category[expense.category or "Uncategorized"] += amount
            by_payer[expense.payer_id] += amount

        return SpendingReportResponse(
            total=sum((to_money(e.total_amount) for e in expenses), Decimal("0.00")),
            count=len(expenses),
            byCategory=dict(by_category),
            byPayer=dict(by_payer),
            expenses=[expense_to_response(e) for e in expenses],
        )

    def export_expenses_csv(
        self, user: User, room_id: Optional[str] = None, user_id: Optional[str] = None
    ) -> StreamingResponse:
        room_id = assert_membership(user, room_id)
        expenses = self._report_expenses(room_id, user_id, None, None)

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(["Expense ID", "Payer", "Amount", "Currency", "Description", "Date", "Category"])
        for expense in expenses:
            writer.writerow(
                [
                    expense.id,
                    expense.payer_id,
                    str(to_money(expense.total_amount)),
                    expense.currency,
                    expense.description,
                    expense.expense_date.strftime("%Y-%m-%d %H:%M:%S") if expense.expense_date else "",
                    expense.category or "Uncategorized",
                ]
            )

        output.seek(0)
        filename = f"expenses_{room_id}_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.csv"
        logger.info(f"📊 CSV export {filename} ({len(expenses)} expenses)")

        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={
                "Content-Disposition": f"attachment; filename={filename}",
                "Cache-Control": "no-cache",
            },
        )
