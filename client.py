"""API client and transient UI state behind the dashboard pages.

The client keeps a disposable copy of the last full fetch plus the form being
edited. Every write is followed by a re-fetch of all six datasets; nothing is
updated optimistically.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional

import requests

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ["Cash", "Transfer", "Debit Card", "Credit Card", "QR"]

DATASETS: dict[str, str] = {
    "transactions": "/transactions",
    "categories": "/categories",
    "summary": "/dashboard/summary",
    "expenses_by_category": "/dashboard/expenses-by-category",
    "income_by_category": "/dashboard/income-by-category",
    "trend": "/dashboard/trend",
}

VIEWS = ("dashboard", "transactions")


def format_currency(amount: Any) -> str:
    """Render an amount as Bolivian bolivianos, e.g. ``Bs 1.234,50``."""
    value = Decimal(str(amount or 0))
    sign = "-" if value < 0 else ""
    text = f"{abs(value):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}Bs {text}"


def _today() -> str:
    return date.today().isoformat()


@dataclass
class TransactionForm:
    description: str = ""
    amount: str = ""
    category_id: Optional[int] = None
    type: str = "expense"
    date: str = field(default_factory=_today)
    payment_method: str = ""
    notes: str = ""

    def with_type(self, txn_type: str) -> TransactionForm:
        # Category choices are filtered by type, so the old choice never carries over.
        return replace(self, type=txn_type, category_id=None)

    def payload(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "amount": self.amount,
            "category_id": self.category_id,
            "type": self.type,
            "date": self.date,
            "payment_method": self.payment_method or None,
            "notes": self.notes or None,
        }

    @classmethod
    def from_transaction(cls, txn: dict[str, Any]) -> TransactionForm:
        return cls(
            description=txn.get("description") or "",
            amount=str(txn.get("amount", "")),
            category_id=txn.get("category_id"),
            type=txn.get("type") or "expense",
            date=txn.get("date") or _today(),
            payment_method=txn.get("payment_method") or "",
            notes=txn.get("notes") or "",
        )


def _empty_summary() -> dict[str, float]:
    return {"total_income": 0, "total_expense": 0, "balance": 0}


@dataclass
class DashboardState:
    view: str = "dashboard"
    transactions: list[dict[str, Any]] = field(default_factory=list)
    categories: list[dict[str, Any]] = field(default_factory=list)
    summary: dict[str, float] = field(default_factory=_empty_summary)
    expenses_by_category: list[dict[str, Any]] = field(default_factory=list)
    income_by_category: list[dict[str, Any]] = field(default_factory=list)
    trend: list[dict[str, Any]] = field(default_factory=list)
    form: TransactionForm = field(default_factory=TransactionForm)
    editing_id: Optional[int] = None
    modal_open: bool = False


class DashboardClient:
    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        *,
        timeout: Optional[float] = 10.0,
        max_workers: int = len(DATASETS),
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = session or requests.Session()
        self.timeout = timeout
        self.max_workers = max_workers
        self.state = DashboardState()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        response = getattr(self.http, method)(self._url(path), **kwargs)
        response.raise_for_status()
        return response.json()

    def load_data(self) -> dict[str, bool]:
        """Fetch all dashboard datasets concurrently and wait for every one.

        A failed fetch is logged and leaves its dataset untouched. Returns a
        map of dataset name to whether it was refreshed.
        """
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                name: pool.submit(self._request, "get", path)
                for name, path in DATASETS.items()
            }
        loaded: dict[str, bool] = {}
        for name, future in futures.items():
            try:
                data = future.result()
            except Exception as exc:
                logger.error(f"load_failed: dataset={name} error={exc}")
                loaded[name] = False
                continue
            setattr(self.state, name, data)
            loaded[name] = True
        return loaded

    def set_view(self, view: str) -> None:
        if view not in VIEWS:
            raise ValueError(f"Unknown view: {view}")
        self.state.view = view

    def set_type(self, txn_type: str) -> None:
        self.state.form = self.state.form.with_type(txn_type)

    def filtered_categories(self) -> list[dict[str, Any]]:
        return [c for c in self.state.categories if c.get("type") == self.state.form.type]

    def latest(self, limit: int = 5) -> list[dict[str, Any]]:
        return self.state.transactions[:limit]

    def find_transaction(self, transaction_id: int) -> Optional[dict[str, Any]]:
        for txn in self.state.transactions:
            if txn.get("id") == transaction_id:
                return txn
        return None

    def reset_form(self) -> None:
        self.state.form = TransactionForm()
        self.state.editing_id = None

    def open_new(self) -> None:
        self.reset_form()
        self.state.modal_open = True

    def edit(self, txn: dict[str, Any]) -> None:
        self.state.form = TransactionForm.from_transaction(txn)
        self.state.editing_id = txn["id"]
        self.state.modal_open = True

    def close_modal(self) -> None:
        self.state.modal_open = False
        self.reset_form()

    def submit(self) -> bool:
        payload = self.state.form.payload()
        editing_id = self.state.editing_id
        try:
            if editing_id is not None:
                self._request("put", f"/transactions/{editing_id}", json=payload)
            else:
                self._request("post", "/transactions", json=payload)
        except Exception as exc:
            logger.error(f"save_failed: editing_id={editing_id} error={exc}")
            return False
        self.close_modal()
        self.load_data()
        return True

    def delete(self, transaction_id: int, confirm: Callable[[], bool]) -> bool:
        if not confirm():
            return False
        try:
            self._request("delete", f"/transactions/{transaction_id}")
        except Exception as exc:
            logger.error(f"delete_failed: id={transaction_id} error={exc}")
            return False
        self.load_data()
        return True

    def expense_chart(self) -> dict[str, list]:
        rows = self.state.expenses_by_category
        return {
            "labels": [f"{row.get('icon') or ''} {row['name']}".strip() for row in rows],
            "data": [row["total"] for row in rows],
        }

    def trend_chart(self) -> dict[str, list]:
        rows = self.state.trend
        return {
            "labels": [row["month"] for row in rows],
            "income": [row["income"] for row in rows],
            "expense": [row["expense"] for row in rows],
        }
