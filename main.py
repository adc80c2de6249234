import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import get_settings
from database import SessionLocal, StorageUnavailable, session_scope
from models import TransactionType
from periods import resolve_period
from schemas import (
    CategoryIn,
    CategoryOut,
    DashboardStats,
    TransactionIn,
    TransactionOut,
)
from services import (
    CategoryService,
    MetricsService,
    NotFoundOrForbidden,
    TransactionFilters,
    TransactionService,
    seed_default_categories,
)


settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Finance Dashboard")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(x_user_id: str = Header(..., min_length=1)) -> str:
    # Authentication happens upstream; it forwards the resolved identity.
    return x_user_id


@app.on_event("startup")
def startup_event():
    if not settings.seed_on_startup:
        return
    with session_scope() as session:
        seed_default_categories(session)


@app.exception_handler(StorageUnavailable)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
    logger.error(f"request_failed: path={request.url.path} error=storage_unavailable")
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/api/categories", response_model=list[CategoryOut])
def api_categories(
    type: Optional[TransactionType] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    service = CategoryService(db, user_id)
    if type is not None:
        return service.list_by_type(type)
    return service.list_all()


@app.post("/api/categories", response_model=CategoryOut, status_code=201)
def api_create_category(
    data: CategoryIn,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return CategoryService(db, user_id).create(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/api/transactions", response_model=list[TransactionOut])
def api_transactions(
    type: Optional[TransactionType] = None,
    period: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        resolved = resolve_period(period, start, end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    filters = TransactionFilters.for_period(resolved, type)
    return TransactionService(db, user_id).list(filters)


@app.get("/api/transactions/{transaction_id}", response_model=TransactionOut)
def api_transaction(
    transaction_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return TransactionService(db, user_id).get(transaction_id)
    except NotFoundOrForbidden as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.post("/api/transactions", response_model=TransactionOut, status_code=201)
def api_create_transaction(
    data: TransactionIn,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return TransactionService(db, user_id).create(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.put("/api/transactions/{transaction_id}", response_model=TransactionOut)
def api_update_transaction(
    transaction_id: int,
    data: TransactionIn,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return TransactionService(db, user_id).update(transaction_id, data)
    except NotFoundOrForbidden as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def api_delete_transaction(
    transaction_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        TransactionService(db, user_id).delete(transaction_id)
    except NotFoundOrForbidden as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


@app.get("/api/dashboard", response_model=DashboardStats)
def api_dashboard(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return MetricsService(db, user_id).dashboard_stats()
