from datetime import date

import pytest
import requests
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from client import DATASETS, DashboardClient, TransactionForm, format_currency
from main import app, get_db


class FakeResponse:
    def __init__(self, data, status_code=200):
        self.data = data
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.data


class FakeSession:
    """Serves canned JSON per path; paths in ``failing`` raise a connection error."""

    def __init__(self, responses, failing=()):
        self.responses = responses
        self.failing = set(failing)
        self.calls = []

    def _handle(self, method, url, **kwargs):
        path = url.replace("http://api.test/api", "")
        self.calls.append((method, path, kwargs.get("json")))
        if path in self.failing:
            raise requests.ConnectionError(f"cannot reach {path}")
        return FakeResponse(self.responses.get(path, {}))

    def get(self, url, **kwargs):
        return self._handle("get", url, **kwargs)

    def post(self, url, **kwargs):
        return self._handle("post", url, **kwargs)

    def put(self, url, **kwargs):
        return self._handle("put", url, **kwargs)

    def delete(self, url, **kwargs):
        return self._handle("delete", url, **kwargs)


CATEGORIES = [
    {"id": 1, "name": "Food", "type": "expense", "icon": "🍔"},
    {"id": 2, "name": "Salary", "type": "income", "icon": "💰"},
    {"id": 3, "name": "Transport", "type": "expense", "icon": "🚗"},
]


def canned_responses():
    return {
        "/transactions": [{"id": 7, "description": "Lunch", "amount": 12.5, "type": "expense"}],
        "/categories": CATEGORIES,
        "/dashboard/summary": {"total_income": 100, "total_expense": 40, "balance": 60},
        "/dashboard/expenses-by-category": [{"name": "Food", "icon": "🍔", "total": 40}],
        "/dashboard/income-by-category": [{"name": "Salary", "icon": "💰", "total": 100}],
        "/dashboard/trend": [{"month": "2026-10", "income": 100, "expense": 40}],
    }


@pytest.fixture
def live_client(tmp_path):
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'client.db'}",
        connect_args={"check_same_thread": False},
    )
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    http = TestClient(app)
    http.get("/api/init")
    yield DashboardClient("http://testserver/api", session=http, timeout=None)
    app.dependency_overrides.clear()


def test_format_currency() -> None:
    assert format_currency(1234.5) == "Bs 1.234,50"
    assert format_currency(0) == "Bs 0,00"
    assert format_currency(-40) == "-Bs 40,00"
    assert format_currency("1000000") == "Bs 1.000.000,00"


def test_form_defaults_and_type_switch_clears_category() -> None:
    form = TransactionForm(category_id=3)
    assert form.type == "expense"
    assert form.date == date.today().isoformat()

    switched = form.with_type("income")

    assert switched.type == "income"
    assert switched.category_id is None


def test_load_data_fills_every_dataset() -> None:
    session = FakeSession(canned_responses())
    client = DashboardClient("http://api.test/api", session=session)

    loaded = client.load_data()

    assert loaded == {name: True for name in DATASETS}
    assert client.state.summary["balance"] == 60
    assert client.state.categories == CATEGORIES
    assert sorted(path for _, path, _ in session.calls) == sorted(DATASETS.values())


def test_failed_fetch_keeps_previous_value() -> None:
    client = DashboardClient("http://api.test/api", session=FakeSession(canned_responses()))
    client.load_data()

    responses = canned_responses()
    responses["/transactions"] = []
    client.http = FakeSession(responses, failing={"/dashboard/summary"})
    loaded = client.load_data()

    assert loaded["summary"] is False
    assert loaded["transactions"] is True
    assert client.state.summary["balance"] == 60
    assert client.state.transactions == []


def test_failed_first_fetch_leaves_initial_empty_value() -> None:
    session = FakeSession(canned_responses(), failing={"/dashboard/trend"})
    client = DashboardClient("http://api.test/api", session=session)

    client.load_data()

    assert client.state.trend == []
    assert client.state.expenses_by_category != []


def test_filtered_categories_follow_form_type() -> None:
    client = DashboardClient("http://api.test/api", session=FakeSession(canned_responses()))
    client.load_data()

    assert [c["name"] for c in client.filtered_categories()] == ["Food", "Transport"]
    client.set_type("income")
    assert [c["name"] for c in client.filtered_categories()] == ["Salary"]


def test_latest_returns_first_five() -> None:
    client = DashboardClient("http://api.test/api", session=FakeSession({}))
    client.state.transactions = [{"id": i} for i in range(8)]
    assert [t["id"] for t in client.latest()] == [0, 1, 2, 3, 4]


def test_set_view_rejects_unknown_view() -> None:
    client = DashboardClient("http://api.test/api", session=FakeSession({}))
    client.set_view("transactions")
    assert client.state.view == "transactions"
    with pytest.raises(ValueError):
        client.set_view("reports")


def test_failed_submit_keeps_form_open() -> None:
    session = FakeSession(canned_responses(), failing={"/transactions"})
    client = DashboardClient("http://api.test/api", session=session)
    client.open_new()
    client.state.form.description = "Taxi"

    assert client.submit() is False
    assert client.state.modal_open is True
    assert client.state.form.description == "Taxi"


def test_delete_requires_confirmation() -> None:
    session = FakeSession(canned_responses())
    client = DashboardClient("http://api.test/api", session=session)

    assert client.delete(7, confirm=lambda: False) is False
    assert session.calls == []

    assert client.delete(7, confirm=lambda: True) is True
    assert session.calls[0] == ("delete", "/transactions/7", None)
    assert len(session.calls) == 1 + len(DATASETS)


def test_submit_creates_then_refetches(live_client) -> None:
    live_client.load_data()
    food = next(c for c in live_client.state.categories if c["name"] == "Food")
    live_client.open_new()
    live_client.state.form.description = "Groceries"
    live_client.state.form.amount = "54.20"
    live_client.state.form.category_id = food["id"]
    live_client.state.form.payment_method = "QR"

    assert live_client.submit() is True

    state = live_client.state
    assert state.modal_open is False
    assert state.form == TransactionForm()
    assert state.editing_id is None
    assert [t["description"] for t in state.transactions] == ["Groceries"]
    assert state.transactions[0]["category_name"] == "Food"
    assert state.summary["total_expense"] == 54.2
    assert state.expenses_by_category == [{"name": "Food", "icon": "🍔", "total": 54.2}]


def test_edit_submits_update(live_client) -> None:
    live_client.open_new()
    live_client.state.form.description = "Salary"
    live_client.state.form.amount = "900"
    live_client.set_type("income")
    live_client.submit()
    txn = live_client.state.transactions[0]

    live_client.edit(txn)
    assert live_client.state.editing_id == txn["id"]
    assert live_client.state.form.type == "income"
    live_client.state.form.amount = "950"
    live_client.submit()

    assert len(live_client.state.transactions) == 1
    assert live_client.state.transactions[0]["amount"] == 950
    assert live_client.state.summary["total_income"] == 950


def test_confirmed_delete_removes_transaction(live_client) -> None:
    live_client.open_new()
    live_client.state.form.description = "Cinema"
    live_client.state.form.amount = "8"
    live_client.submit()
    txn_id = live_client.state.transactions[0]["id"]

    live_client.delete(txn_id, confirm=lambda: True)

    assert live_client.state.transactions == []
    assert live_client.state.summary["balance"] == 0
