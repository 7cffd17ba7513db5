"""
Expense Book

User-entered expenses plus the Refund Loss expenses the ledger
recognises when a refunded sale's delivery charge was not recovered.
"""

import datetime as dt
from typing import Any, Optional, Union

from pydantic import ValidationError

from biztrack.errors import LedgerValidationError
from biztrack.ledger.pricing import as_money
from biztrack.ledger.store import BusinessStore, newest_first
from biztrack.models.audit import AuditEventBuilder
from biztrack.models.ledger import Expense, ExpenseCategory, Sale
from biztrack.services.storage import Collection
from biztrack.validation import LedgerValidator


EXPENSE_FIELDS = {"category", "description", "amount", "date"}


class ExpenseBook:
    """Expense records."""

    def __init__(self, store: BusinessStore, validator: Optional[LedgerValidator] = None):
        self._store = store
        self._validator = validator or LedgerValidator()

    def add_expense(
        self,
        category: Union[ExpenseCategory, str],
        description: str,
        amount: Any,
        date: Optional[dt.date] = None,
    ) -> Expense:
        """
        Record an expense. date defaults to today.

        Raises:
            LedgerValidationError: unknown category, or a negative amount
                in strict mode
        """
        amount = as_money(amount)
        self._validator.ensure_valid(self._validator.validate_expense(description, amount))

        with self._store.transaction() as txn:
            try:
                expense = Expense(
                    category=category,
                    description=description,
                    amount=amount,
                    date=date or self._store.now().date(),
                )
            except ValidationError as e:
                raise LedgerValidationError(f"Invalid expense: {e}")
            return self._record(txn, expense)

    def record_refund_loss(self, sale: Sale) -> Expense:
        """
        Book a refunded sale's unrecovered delivery charge, dated today.

        Called by the ledger inside its refund transaction.
        """
        with self._store.transaction() as txn:
            expense = Expense(
                category=ExpenseCategory.REFUND_LOSS,
                description=f"Unpaid Delivery for Refund: {sale.product_name} ({sale.location})",
                amount=sale.delivery_charge,
                date=self._store.now().date(),
            )
            return self._record(txn, expense)

    def update_expense(self, expense_id: str, **changes: Any) -> Optional[Expense]:
        """Edit an expense. Unknown ids are a no-op returning None."""
        unknown = set(changes) - EXPENSE_FIELDS
        if unknown:
            raise LedgerValidationError(f"Cannot edit expense fields: {sorted(unknown)}")
        if "amount" in changes:
            changes["amount"] = as_money(changes["amount"])

        with self._store.transaction() as txn:
            expense = self._store.state.expenses.get(expense_id)
            if expense is None:
                return None
            self._validator.ensure_valid(self._validator.validate_expense(
                changes.get("description", expense.description),
                changes.get("amount", expense.amount),
            ))
            try:
                for field, value in changes.items():
                    setattr(expense, field, value)
            except ValidationError as e:
                raise LedgerValidationError(f"Invalid expense update: {e}")
            txn.touch(Collection.EXPENSES)
            return expense.model_copy()

    def delete_expense(self, expense_id: str) -> bool:
        with self._store.transaction() as txn:
            if self._store.state.expenses.pop(expense_id, None) is None:
                return False
            txn.touch(Collection.EXPENSES)
            return True

    def get_expense(self, expense_id: str) -> Optional[Expense]:
        with self._store.read() as state:
            expense = state.expenses.get(expense_id)
            return expense.model_copy() if expense else None

    def list_expenses(
        self,
        category: Optional[Union[ExpenseCategory, str]] = None,
    ) -> list[Expense]:
        """Expenses newest first, optionally of one category."""
        with self._store.read() as state:
            expenses = newest_first(state.expenses)
        if category is None:
            return expenses
        category = ExpenseCategory(category)
        return [e for e in expenses if e.category == category]

    def _record(self, txn, expense: Expense) -> Expense:
        self._store.state.expenses[expense.id] = expense
        txn.touch(Collection.EXPENSES)
        txn.emit(AuditEventBuilder.expense_recorded(
            expense.id,
            expense.category.value,
            str(expense.amount),
        ))
        return expense.model_copy()
