"""Ledger router - FastAPI endpoints for expenses, payments and balances"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import (
    BalancesResponse,
    CurrencyConversionRequest,
    ExpenseCreate,
    ExpenseResponse,
    ExpenseUpdate,
    PaymentCreate,
    PaymentResponse,
    RecurringExpenseCreate,
    RecurringExpenseResponse,
    RecurringExpenseUpdate,
    SettlementsResponse,
    SpendingReportResponse,
)
from .service import (
    LedgerService,
    expense_to_response,
    payment_to_response,
    recurring_to_response,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Ledger"])


def get_ledger_service(db: Session = Depends(get_db)) -> LedgerService:
    """Dependency injection for LedgerService"""
    return LedgerService(db)


# ============================================================================
# EXPENSES
# ============================================================================


@router.get("/expenses", response_model=list[ExpenseResponse])
async def get_expenses(
    roomId: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    userId: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """List the room's expenses, newest first"""
    expenses = service.get_expenses(current_user, roomId, search, userId)
    return [expense_to_response(e) for e in expenses]


@router.post("/expenses", response_model=ExpenseResponse, status_code=201)
async def create_expense(
    data: ExpenseCreate,
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """Record a shared expense and split it among the participants"""
    return expense_to_response(service.create_expense(data, current_user))


@router.get("/expenses/balances", response_model=BalancesResponse)
async def get_balances(
    roomId: Optional[str] = Query(None),
    currency: str = Query("USD"),
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """Net balance per roommate in the requested currency"""
    return service.get_balances(current_user, roomId, currency.upper())


@router.get("/expenses/settlements", response_model=SettlementsResponse)
async def get_settlements(
    roomId: Optional[str] = Query(None),
    currency: str = Query("USD"),
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """Simplified list of transfers that settles the room"""
    return service.get_settlements(current_user, roomId, currency.upper())


@router.get("/expenses/report", response_model=SpendingReportResponse)
async def get_spending_report(
    roomId: Optional[str] = Query(None),
    userId: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """Spending totals by category and payer"""
    return service.spending_report(current_user, roomId, userId, start, end)


@router.get("/expenses/export")
async def export_expenses_csv(
    roomId: Optional[str] = Query(None),
    userId: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """Export expenses as CSV"""
    return service.export_expenses_csv(current_user, roomId, userId)


# ============================================================================
# RECURRING EXPENSES
# ============================================================================


@router.get("/expenses/recurring", response_model=list[RecurringExpenseResponse])
async def get_recurring_expenses(
    roomId: Optional[str] = Query(None),
    active: Optional[bool] = Query(None),
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """Recurring bills of the room"""
    return [recurring_to_response(r) for r in service.get_recurring_expenses(current_user, roomId, active)]


@router.post("/expenses/recurring", response_model=RecurringExpenseResponse, status_code=201)
async def create_recurring_expense(
    data: RecurringExpenseCreate,
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    return recurring_to_response(service.create_recurring_expense(data, current_user))


@router.patch("/expenses/recurring/{recurring_id}", response_model=RecurringExpenseResponse)
async def update_recurring_expense(
    recurring_id: str,
    data: RecurringExpenseUpdate,
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """Change a recurring bill, or pause it with active=false"""
    return recurring_to_response(service.update_recurring_expense(recurring_id, data, current_user))


@router.delete("/expenses/recurring/{recurring_id}")
async def delete_recurring_expense(
    recurring_id: str,
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    return service.delete_recurring_expense(recurring_id, current_user)


@router.get("/expenses/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: str,
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    return expense_to_response(service.get_expense(expense_id, current_user))


@router.patch("/expenses/{expense_id}", response_model=ExpenseResponse)
async def update_expense(
    expense_id: str,
    data: ExpenseUpdate,
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """Update an expense; amount or split changes recompute the shares"""
    return expense_to_response(service.update_expense(expense_id, data, current_user))


@router.delete("/expenses/{expense_id}")
async def delete_expense(
    expense_id: str,
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    return service.delete_expense(expense_id, current_user)


@router.post("/expenses/{expense_id}/convert", response_model=ExpenseResponse)
async def convert_expense(
    expense_id: str,
    data: CurrencyConversionRequest,
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """Re-denominate an expense in another currency"""
    return expense_to_response(service.convert_expense(expense_id, data.currency, current_user))


# ============================================================================
# PAYMENTS
# ============================================================================


@router.post("/payments", response_model=PaymentResponse, status_code=201)
async def record_payment(
    data: PaymentCreate,
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """Record a settlement between two roommates"""
    return payment_to_response(service.record_payment(data, current_user))


@router.get("/payments", response_model=list[PaymentResponse])
async def get_payments(
    roomId: Optional[str] = Query(None),
    userId: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: LedgerService = Depends(get_ledger_service),
):
    """Payment history, optionally for one roommate"""
    return [payment_to_response(p) for p in service.get_payments(current_user, roomId, userId)]
