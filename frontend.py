import logging
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from client import PAYMENT_METHODS, DashboardClient, TransactionForm, format_currency
from config import get_settings
from csrf import generate_csrf_token, validate_csrf_token

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

app = FastAPI(title="Finance Dashboard")
app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")
templates = Jinja2Templates(directory=BASE_DIR / "templates")

templates.env.filters["currency"] = format_currency
templates.env.globals["csrf_token"] = generate_csrf_token
templates.env.globals["PAYMENT_METHODS"] = PAYMENT_METHODS


def get_client():
    client = DashboardClient(get_settings().api_url)
    try:
        yield client
    finally:
        client.http.close()


def render(
    request: Request, template: str, client: DashboardClient
) -> HTMLResponse:
    ctx = {
        "state": client.state,
        "client": client,
        "expense_chart": client.expense_chart(),
        "trend_chart": client.trend_chart(),
    }
    return templates.TemplateResponse(request, template, ctx)


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value in (None, ""):
        return None
    return int(value)


@app.get("/", response_class=HTMLResponse)
def dashboard(request: Request, client: DashboardClient = Depends(get_client)):
    client.set_view("dashboard")
    client.load_data()
    return render(request, "dashboard.html", client)


@app.get("/transactions", response_class=HTMLResponse)
def transactions_page(
    request: Request,
    edit: Optional[int] = None,
    client: DashboardClient = Depends(get_client),
):
    client.set_view("transactions")
    client.load_data()
    params = request.query_params
    if edit is not None:
        txn = client.find_transaction(edit)
        if txn is None:
            raise HTTPException(status_code=404, detail="Transaction not found")
        client.edit(txn)
    elif params.get("new"):
        client.open_new()
    if params.get("type") in ("expense", "income"):
        client.set_type(params["type"])
    return render(request, "transactions.html", client)


@app.post("/transactions")
def submit_transaction(
    request: Request,
    csrf_token: str = Form(""),
    editing_id: str = Form(""),
    description: str = Form(""),
    amount: str = Form(""),
    category_id: str = Form(""),
    type: str = Form("expense"),
    date: str = Form(""),
    payment_method: str = Form(""),
    notes: str = Form(""),
    client: DashboardClient = Depends(get_client),
):
    if not validate_csrf_token(csrf_token):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")
    try:
        client.state.editing_id = _optional_int(editing_id)
        client.state.form = TransactionForm(
            description=description,
            amount=amount,
            category_id=_optional_int(category_id),
            type=type,
            date=date or TransactionForm().date,
            payment_method=payment_method,
            notes=notes,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    client.state.modal_open = True
    if client.submit():
        return RedirectResponse(
            url=request.app.url_path_for("transactions_page"), status_code=303
        )
    # Keep the modal open with the user's input; the lists stay as last fetched.
    client.set_view("transactions")
    client.load_data()
    return render(request, "transactions.html", client)


@app.post("/transactions/{transaction_id}/delete")
def delete_transaction(
    transaction_id: int,
    request: Request,
    csrf_token: str = Form(""),
    confirmed: str = Form(""),
    client: DashboardClient = Depends(get_client),
):
    if not validate_csrf_token(csrf_token):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")
    if not client.delete(transaction_id, confirm=lambda: confirmed == "1"):
        logger.info(f"delete_skipped: id={transaction_id} confirmed={confirmed!r}")
    return RedirectResponse(
        url=request.app.url_path_for("transactions_page"), status_code=303
    )
