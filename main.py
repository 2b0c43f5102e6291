import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from pydantic import ValidationError
from sqlalchemy.orm import Session

from categories import Category, category_choices, normalize_category
from config import get_settings
from csrf import generate_csrf_token, validate_csrf_token
from database import create_schema, session_scope
from formatting import format_month
from periods import MonthKey, default_timezone, resolve_month
from schemas import BudgetIn, BudgetOut, ExpenseFilters, ExpenseIn, ExpenseOut, KPIOut
from services import (
    BudgetService,
    ExpenseService,
    StatsService,
    describe_store_error,
    get_current_owner,
)


logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Budget Pulse")


def get_db():
    with session_scope() as db:
        yield db


@app.on_event("startup")
def startup_event():
    create_schema()


def owner_from_request(request: Request) -> str:
    return (request.headers.get("X-Owner") or "").strip() or get_current_owner()


def require_csrf(request: Request) -> None:
    owner = owner_from_request(request)
    token = request.headers.get("X-CSRF-Token", "")
    if not validate_csrf_token(token, owner):
        logger.warning(f"csrf_rejected: owner={owner} path={request.url.path}")
        raise HTTPException(status_code=400, detail="Invalid CSRF token")


def month_from_request(request: Request) -> MonthKey:
    try:
        return resolve_month(request.query_params.get("month"), tz=default_timezone())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def optional_month_from_request(request: Request) -> Optional[MonthKey]:
    if not request.query_params.get("month"):
        return None
    return month_from_request(request)


def filters_from_request(request: Request) -> ExpenseFilters:
    params = request.query_params
    date_from = params.get("date_from") or None
    date_to = params.get("date_to") or None
    # month=YYYY-MM fills whichever date bound is not given explicitly.
    month = optional_month_from_request(request)
    if month is not None:
        date_from = date_from or month.start
        date_to = date_to or month.end
    try:
        return ExpenseFilters(
            category=params.get("category") or None,
            type=params.get("type") or None,
            date_from=date_from,
            date_to=date_to,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_validation_detail(exc)) from exc


def _validation_detail(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid JSON body") from exc
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="JSON object expected")
    return body


def stats_service(db: Session, owner: str) -> StatsService:
    return StatsService(
        ExpenseService(db, owner),
        BudgetService(db, owner),
        tz=default_timezone(),
    )


def _expense_json(expense) -> dict:
    return ExpenseOut.model_validate(expense).model_dump(mode="json")


def _budget_json(budget) -> dict:
    return BudgetOut.model_validate(budget).model_dump(mode="json")


@app.get("/api/csrf-token")
def api_csrf_token(request: Request):
    return {"csrf_token": generate_csrf_token(owner_from_request(request))}


@app.get("/api/categories")
def api_categories():
    return category_choices()


@app.get("/api/expenses")
def api_expenses(request: Request, db: Session = Depends(get_db)):
    filters = filters_from_request(request)
    items = ExpenseService(db, owner_from_request(request)).list(filters)
    return {"items": [_expense_json(e) for e in items]}


@app.post("/api/expenses", status_code=201, dependencies=[Depends(require_csrf)])
async def api_create_expense(request: Request, db: Session = Depends(get_db)):
    body = await _json_body(request)
    try:
        data = ExpenseIn(**body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_validation_detail(exc)) from exc
    try:
        expense = ExpenseService(db, owner_from_request(request)).create(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _expense_json(expense)


@app.put("/api/expenses/{expense_id}", dependencies=[Depends(require_csrf)])
async def api_update_expense(
    expense_id: int, request: Request, db: Session = Depends(get_db)
):
    body = await _json_body(request)
    try:
        data = ExpenseIn(**body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_validation_detail(exc)) from exc
    service = ExpenseService(db, owner_from_request(request))
    try:
        service.get(expense_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    try:
        expense = service.update(expense_id, data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _expense_json(expense)


@app.delete("/api/expenses/{expense_id}", dependencies=[Depends(require_csrf)])
def api_delete_expense(
    expense_id: int, request: Request, db: Session = Depends(get_db)
):
    try:
        ExpenseService(db, owner_from_request(request)).delete(expense_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


@app.get("/api/budgets")
def api_budgets(request: Request, db: Session = Depends(get_db)):
    budgets = BudgetService(db, owner_from_request(request)).list_all()
    return {"items": [_budget_json(b) for b in budgets]}


@app.put("/api/budgets", dependencies=[Depends(require_csrf)])
async def api_upsert_budget(request: Request, db: Session = Depends(get_db)):
    body = await _json_body(request)
    try:
        data = BudgetIn(**body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=_validation_detail(exc)) from exc
    try:
        budget = BudgetService(db, owner_from_request(request)).upsert(data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=describe_store_error(exc)) from exc
    if budget is None:
        return {"category": data.category.value, "deleted": True}
    return _budget_json(budget)


@app.delete("/api/budgets/{category}", dependencies=[Depends(require_csrf)])
def api_delete_budget(category: str, request: Request, db: Session = Depends(get_db)):
    try:
        resolved: Category = normalize_category(category)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    try:
        BudgetService(db, owner_from_request(request)).delete(resolved)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


@app.get("/api/kpis")
def api_kpis(request: Request, db: Session = Depends(get_db)):
    month = month_from_request(request)
    kpis = stats_service(db, owner_from_request(request)).kpis(month)
    return KPIOut(**kpis.as_dict())


@app.get("/api/insights")
def api_insights(request: Request, db: Session = Depends(get_db)):
    month = month_from_request(request)
    insights = stats_service(db, owner_from_request(request)).insights(month)
    return {"month": str(month), "label": format_month(month), "insights": insights}


@app.get("/api/budget-progress")
def api_budget_progress(request: Request, db: Session = Depends(get_db)):
    month = month_from_request(request)
    return stats_service(db, owner_from_request(request)).budget_progress(month)


@app.get("/api/stats/categories")
def api_category_breakdown(request: Request, db: Session = Depends(get_db)):
    month = optional_month_from_request(request)
    service = stats_service(db, owner_from_request(request))
    return {
        "month": str(month) if month else None,
        "categories": service.category_breakdown(month),
        "types": {k.value: v for k, v in service.type_breakdown(month).items()},
    }


@app.get("/api/stats/monthly")
def api_monthly_totals(request: Request, db: Session = Depends(get_db)):
    return {"months": stats_service(db, owner_from_request(request)).monthly_totals()}


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
