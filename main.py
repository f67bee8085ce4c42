import logging

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import get_settings
from database import get_sessionmaker, session_scope
from models import Transaction, TransactionType
from schemas import (
    CategoryIn,
    CategoryOut,
    CategoryTotal,
    Created,
    Message,
    Summary,
    TransactionIn,
    TransactionListItem,
    TransactionOut,
    TrendPoint,
)
from services import (
    CategoryService,
    DashboardService,
    TransactionService,
    initialize_database,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Finance Tracker API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_db():
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()


def store_failure(action: str, exc: SQLAlchemyError) -> HTTPException:
    logger.exception(f"store_failure: action={action}")
    return HTTPException(status_code=500, detail=str(exc))


def transaction_list_item(txn: Transaction) -> TransactionListItem:
    item = TransactionListItem.model_validate(txn)
    if txn.category is not None:
        item.category_name = txn.category.name
        item.category_type = txn.category.type
    return item


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/transactions", response_model=list[TransactionListItem])
def list_transactions(db: Session = Depends(get_db)):
    try:
        items = TransactionService(db).list_all()
    except SQLAlchemyError as exc:
        raise store_failure("list_transactions", exc) from exc
    return [transaction_list_item(txn) for txn in items]


@app.get("/api/transactions/{transaction_id}", response_model=TransactionOut)
def get_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        return TransactionService(db).get(transaction_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        raise store_failure("get_transaction", exc) from exc


@app.post("/api/transactions", response_model=Created, status_code=201)
def create_transaction(data: TransactionIn, db: Session = Depends(get_db)):
    try:
        txn = TransactionService(db).create(data)
    except SQLAlchemyError as exc:
        raise store_failure("create_transaction", exc) from exc
    logger.info(f"transaction_created: id={txn.id} type={txn.type.value}")
    return Created(id=txn.id, message="Transaction created")


@app.put("/api/transactions/{transaction_id}", response_model=Message)
def update_transaction(
    transaction_id: int, data: TransactionIn, db: Session = Depends(get_db)
):
    try:
        updated = TransactionService(db).update(transaction_id, data)
    except SQLAlchemyError as exc:
        raise store_failure("update_transaction", exc) from exc
    logger.info(f"transaction_updated: id={transaction_id} rows={updated}")
    return Message(message="Transaction updated")


@app.delete("/api/transactions/{transaction_id}", response_model=Message)
def delete_transaction(transaction_id: int, db: Session = Depends(get_db)):
    try:
        deleted = TransactionService(db).delete(transaction_id)
    except SQLAlchemyError as exc:
        raise store_failure("delete_transaction", exc) from exc
    logger.info(f"transaction_deleted: id={transaction_id} rows={deleted}")
    return Message(message="Transaction deleted")


@app.get("/api/categories", response_model=list[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    try:
        return CategoryService(db).list_all()
    except SQLAlchemyError as exc:
        raise store_failure("list_categories", exc) from exc


@app.post("/api/categories", response_model=Created, status_code=201)
def create_category(data: CategoryIn, db: Session = Depends(get_db)):
    try:
        category = CategoryService(db).create(data)
    except SQLAlchemyError as exc:
        raise store_failure("create_category", exc) from exc
    return Created(id=category.id, message="Category created")


@app.get("/api/dashboard/summary", response_model=Summary)
def dashboard_summary(db: Session = Depends(get_db)):
    try:
        return DashboardService(db).summary()
    except SQLAlchemyError as exc:
        raise store_failure("dashboard_summary", exc) from exc


@app.get("/api/dashboard/expenses-by-category", response_model=list[CategoryTotal])
def dashboard_expenses_by_category(db: Session = Depends(get_db)):
    try:
        return DashboardService(db).by_category(TransactionType.expense)
    except SQLAlchemyError as exc:
        raise store_failure("expenses_by_category", exc) from exc


@app.get("/api/dashboard/income-by-category", response_model=list[CategoryTotal])
def dashboard_income_by_category(db: Session = Depends(get_db)):
    try:
        return DashboardService(db).by_category(TransactionType.income)
    except SQLAlchemyError as exc:
        raise store_failure("income_by_category", exc) from exc


@app.get("/api/dashboard/trend", response_model=list[TrendPoint])
def dashboard_trend(db: Session = Depends(get_db)):
    try:
        return DashboardService(db).trend()
    except SQLAlchemyError as exc:
        raise store_failure("dashboard_trend", exc) from exc


@app.get("/api/init", response_model=Message)
def init_database(db: Session = Depends(get_db)):
    try:
        initialize_database(db)
    except SQLAlchemyError as exc:
        raise store_failure("init_database", exc) from exc
    return Message(message="Database initialized")


def init_db_command() -> None:
    with session_scope() as session:
        seeded = initialize_database(session)
    logger.info(f"database_initialized: seeded={seeded}")


def run() -> None:
    import uvicorn

    settings = get_settings()
    logger.info(f"server_start: port={settings.port}")
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
