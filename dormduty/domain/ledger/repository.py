"""Ledger repository - Database operations for expenses and payments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Expense, Payment, RecurringExpense, User


class LedgerRepository:
    """Repository for expense and payment database operations"""

    @staticmethod
    def get_expenses(db: Session, room_id: str, search: Optional[str] = None) -> list[Expense]:
        query = db.query(Expense).filter(Expense.room_id == room_id)
        if search:
            query = query.filter(Expense.description.ilike(f"%{search.lower()}%"))
        return query.order_by(Expense.created_at.desc()).all()

    @staticmethod
    def get_expenses_in_order(db: Session, room_id: str) -> list[Expense]:
        """Oldest first, the order the ledger is replayed in"""
        return (
            db.query(Expense)
            .filter(Expense.room_id == room_id)
            .order_by(Expense.created_at.asc(), Expense.id.asc())
            .all()
        )

    @staticmethod
    def get_expense_by_id(db: Session, expense_id: str) -> Optional[Expense]:
        return db.query(Expense).filter(Expense.id == expense_id).first()

    @staticmethod
    def get_expenses_between(
        db: Session,
        room_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Expense]:
        query = db.query(Expense).filter(Expense.room_id == room_id)
        if start:
            query = query.filter(Expense.expense_date >= start)
        if end:
            query = query.filter(Expense.expense_date <= end)
        return query.order_by(Expense.expense_date.asc()).all()

    @staticmethod
    def create_expense(db: Session, room_id: str, **expense_data) -> Expense:
        expense = Expense(room_id=room_id, **expense_data)
        db.add(expense)
        db.commit()
        db.refresh(expense)
        return expense

    @staticmethod
    def update_expense(db: Session, expense: Expense, **updates) -> Expense:
        for key, value in updates.items():
            if hasattr(expense, key):
                setattr(expense, key, value)
        db.commit()
        db.refresh(expense)
        return expense

    @staticmethod
    def delete_expense(db: Session, expense: Expense) -> None:
        # Payments outlive the expense they referenced
        db.query(Payment).filter(Payment.expense_id == expense.id).update(
            {Payment.expense_id: None}, synchronize_session=False
        )
        db.delete(expense)
        db.commit()

    @staticmethod
    def get_payments(db: Session, room_id: str, user_id: Optional[str] = None) -> list[Payment]:
        query = db.query(Payment).filter(Payment.room_id == room_id)
        if user_id:
            query = query.filter(or_(Payment.payer_id == user_id, Payment.payee_id == user_id))
        return query.order_by(Payment.created_at.asc(), Payment.id.asc()).all()

    @staticmethod
    def create_payment(db: Session, room_id: str, **payment_data) -> Payment:
        payment = Payment(room_id=room_id, **payment_data)
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    @staticmethod
    def get_recurring_expenses(
        db: Session, room_id: str, active: Optional[bool] = None
    ) -> list[RecurringExpense]:
        query = db.query(RecurringExpense).filter(RecurringExpense.room_id == room_id)
        if active is not None:
            query = query.filter(RecurringExpense.active.is_(active))
        return query.order_by(RecurringExpense.created_at.asc(), RecurringExpense.id.asc()).all()

    @staticmethod
    def get_recurring_expense_by_id(db: Session, recurring_id: str) -> Optional[RecurringExpense]:
        return db.query(RecurringExpense).filter(RecurringExpense.id == recurring_id).first()

    @staticmethod
    def create_recurring_expense(db: Session, room_id: str, **recurring_data) -> RecurringExpense:
        recurring = RecurringExpense(room_id=room_id, **recurring_data)
        db.add(recurring)
        db.commit()
        db.refresh(recurring)
        return recurring

    @staticmethod
    def update_recurring_expense(db: Session, recurring: RecurringExpense, **updates) -> RecurringExpense:
        for key, value in updates.items():
            if hasattr(recurring, key):
                setattr(recurring, key, value)
        db.commit()
        db.refresh(recurring)
        return recurring

    @staticmethod
    def delete_recurring_expense(db: Session, recurring: RecurringExpense) -> None:
        db.delete(recurring)
        db.commit()

    @staticmethod
    def get_member_names(db: Session, room_id: str) -> dict[str, str]:
        rows = db.query(User.id, User.name).filter(User.room_id == room_id).all()
        return {user_id: name for user_id, name in rows}
