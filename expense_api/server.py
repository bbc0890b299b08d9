"""FastAPI application exposing user, expense and category endpoints."""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Annotated, List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Path, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import crud, database, schemas
from .config import Settings
from .logging import setup_logger

logger = logging.getLogger(__name__)

NOT_FOUND = "Not found"
INTERNAL_ERROR = "Internal Server Error"

PathId = Annotated[int, Path(ge=1, le=schemas.MAX_RECORD_ID)]

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)


@router.get("/users", response_model=List[schemas.UserRead])
def list_users(db: Session = Depends(database.get_db)) -> List[schemas.UserRead]:
    return crud.list_users(db)


@router.post("/users", response_model=schemas.UserRead, status_code=status.HTTP_201_CREATED)
def create_user(user_in: schemas.UserCreate, db: Session = Depends(database.get_db)) -> schemas.UserRead:
    return crud.create_user(db, user_in)


@router.get("/users/{user_id}", response_model=schemas.UserRead)
def get_user(user_id: PathId, db: Session = Depends(database.get_db)) -> schemas.UserRead:
    try:
        return crud.get_user(db, user_id)
    except crud.EntityNotFoundError as exc:
        raise _not_found() from exc


@router.patch("/users/{user_id}", response_model=schemas.UserRead)
def update_user(
    user_id: PathId,
    update_in: schemas.UserUpdate,
    db: Session = Depends(database.get_db),
) -> schemas.UserRead:
    try:
        return crud.update_user(db, user_id, update_in)
    except crud.EntityNotFoundError as exc:
        raise _not_found() from exc


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: PathId, db: Session = Depends(database.get_db)) -> None:
    try:
        crud.delete_user(db, user_id)
    except crud.EntityNotFoundError as exc:
        raise _not_found() from exc


def expense_query(
    user_id: Optional[str] = Query(None, alias="userId"),
    spent_from: Optional[str] = Query(None, alias="from"),
    spent_to: Optional[str] = Query(None, alias="to"),
    categories: Optional[str] = Query(None),
) -> schemas.ExpenseQuery:
    """Collect the expense list filters from the query string."""
    try:
        return schemas.ExpenseQuery(
            user_id=user_id,
            spent_from=spent_from,
            spent_to=spent_to,
            categories=categories,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=schemas.BAD_REQUEST) from exc


@router.get("/expenses", response_model=List[schemas.ExpenseRead])
def list_expenses(
    query: schemas.ExpenseQuery = Depends(expense_query),
    db: Session = Depends(database.get_db),
) -> List[schemas.ExpenseRead]:
    return crud.list_expenses(db, query)


@router.post("/expenses", response_model=schemas.ExpenseRead, status_code=status.HTTP_201_CREATED)
def create_expense(expense_in: schemas.ExpenseCreate, db: Session = Depends(database.get_db)) -> schemas.ExpenseRead:
    try:
        return crud.create_expense(db, expense_in)
    except crud.InvalidReferenceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=schemas.BAD_REQUEST) from exc


@router.get("/expenses/{expense_id}", response_model=schemas.ExpenseRead)
def get_expense(expense_id: PathId, db: Session = Depends(database.get_db)) -> schemas.ExpenseRead:
    try:
        return crud.get_expense(db, expense_id)
    except crud.EntityNotFoundError as exc:
        raise _not_found() from exc


@router.patch("/expenses/{expense_id}", response_model=schemas.ExpenseRead)
def update_expense(
    expense_id: PathId,
    update_in: schemas.ExpenseUpdate,
    db: Session = Depends(database.get_db),
) -> schemas.ExpenseRead:
    try:
        return crud.update_expense(db, expense_id, update_in)
    except crud.EntityNotFoundError as exc:
        raise _not_found() from exc
    except crud.InvalidReferenceError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=schemas.BAD_REQUEST) from exc


@router.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(expense_id: PathId, db: Session = Depends(database.get_db)) -> None:
    try:
        crud.delete_expense(db, expense_id)
    except crud.EntityNotFoundError as exc:
        raise _not_found() from exc


@router.get("/categories", response_model=List[schemas.CategoryRead])
def list_categories(db: Session = Depends(database.get_db)) -> List[schemas.CategoryRead]:
    return crud.list_categories(db)


@router.post("/categories", response_model=schemas.CategoryRead, status_code=status.HTTP_201_CREATED)
def create_category(category_in: schemas.CategoryCreate, db: Session = Depends(database.get_db)) -> schemas.CategoryRead:
    return crud.create_category(db, category_in)


@router.get("/categories/{category_id}", response_model=schemas.CategoryRead)
def get_category(category_id: PathId, db: Session = Depends(database.get_db)) -> schemas.CategoryRead:
    try:
        return crud.get_category(db, category_id)
    except crud.EntityNotFoundError as exc:
        raise _not_found() from exc


@router.patch("/categories/{category_id}", response_model=schemas.CategoryRead)
def update_category(
    category_id: PathId,
    update_in: schemas.CategoryUpdate,
    db: Session = Depends(database.get_db),
) -> schemas.CategoryRead:
    try:
        return crud.update_category(db, category_id, update_in)
    except crud.EntityNotFoundError as exc:
        raise _not_found() from exc


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: PathId, db: Session = Depends(database.get_db)) -> None:
    try:
        crud.delete_category(db, category_id)
    except crud.EntityNotFoundError as exc:
        raise _not_found() from exc


@router.get("/health", tags=["system"])
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": schemas.validation_message(exc.errors())},
    )


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": INTERNAL_ERROR},
    )


async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000
    logger.info(
        "%s %s -> %s",
        request.method,
        request.url.path,
        response.status_code,
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 3),
        },
    )
    return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    database.init_db(app.state.engine)
    yield
    app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application with its own engine and session factory."""

    settings = settings or Settings.from_env()
    setup_logger(
        "expense_api",
        json_format=settings.json_logs,
        level=settings.log_level,
        log_path=settings.log_file,
    )

    app = FastAPI(title="Expense Tracker API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = database.create_db_engine(settings.database_url)
    app.state.session_factory = database.create_session_factory(app.state.engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, internal_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.include_router(router)
    return app


app = create_app()


def main() -> None:
    """Entrypoint for running the API with uvicorn."""

    settings: Settings = app.state.settings
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
