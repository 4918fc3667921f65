from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from datetime import datetime
from typing import Any, Optional

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ValidationError

from .repositories import SqliteEntityStore, SqliteStats, customer_store, product_store
from .settings import Settings

logger = logging.getLogger("biz_db.api")


class CustomerIn(BaseModel):
    CustomerName: str
    CustomerPhone: Optional[str] = None
    CustomerAddress: Optional[str] = None
    CustomerTCKN: Optional[str] = None
    CustomerVD: Optional[str] = None
    CustomerDebt: float = 0
    CustomerBalance: float = 0
    CustomerPayments: list[Any] = []
    CustomerOrders: list[Any] = []
    CustomerShipments: list[Any] = []


class CustomerUpdate(BaseModel):
    CustomerName: Optional[str] = None
    CustomerPhone: Optional[str] = None
    CustomerAddress: Optional[str] = None
    CustomerTCKN: Optional[str] = None
    CustomerVD: Optional[str] = None
    CustomerDebt: Optional[float] = None
    CustomerBalance: Optional[float] = None
    CustomerPayments: Optional[list[Any]] = None
    CustomerOrders: Optional[list[Any]] = None
    CustomerShipments: Optional[list[Any]] = None


class ProductIn(BaseModel):
    ProductCode: str
    Details: Optional[str] = None
    Barcode: Optional[str] = None
    Price: float
    Category: Optional[str] = None
    ActualInventory: int = 0
    ReservedInventory: int = 0
    AwaitingInventory: int = 0


class ProductUpdate(BaseModel):
    ProductCode: Optional[str] = None
    Details: Optional[str] = None
    Barcode: Optional[str] = None
    Price: Optional[float] = None
    Category: Optional[str] = None
    ActualInventory: Optional[int] = None
    ReservedInventory: Optional[int] = None
    AwaitingInventory: Optional[int] = None


def _parse(model: type[BaseModel], payload: dict) -> BaseModel:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False)) from e


def _write_error(entity: str, action: str, e: Exception) -> HTTPException:
    if isinstance(e, sqlite3.IntegrityError):
        logger.warning("%s %s rejected: %s", entity, action, e)
        return HTTPException(status_code=409, detail=str(e))
    logger.exception("%s %s failed", entity, action)
    return HTTPException(status_code=500, detail=f"Failed to {action} {entity}")


def create_app(settings: Settings) -> FastAPI:
    app = FastAPI(title="biz_db API", version="0.1.0")
    customers = customer_store(settings)
    products = product_store(settings)
    stats_source = SqliteStats(settings)

    if settings.BIZ_API_CORS_ALLOW_ALL:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def request_log_middleware(request: Request, call_next):
        request_id = uuid.uuid4().hex[:12]
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        logger.info(
            "%s %s -> %s (%.1f ms, request_id=%s)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/health")
    def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now().isoformat(timespec="seconds"),
        }

    @app.get("/")
    def root():
        return {
            "service": "biz_db API",
            "ok": True,
            "endpoints": {
                "health": "/health",
                "stats": "/stats",
                "customers": "/api/customers",
                "products": "/api/products",
                "docs": "/docs",
            },
        }

    @app.get("/stats")
    def stats():
        """Record counts per table; null for a table that does not exist."""
        return {
            "db_path": str(settings.BIZ_DB_PATH),
            "counts": stats_source.table_counts(),
        }

    def _register_crud(prefix: str, store: SqliteEntityStore, model_in: type[BaseModel], model_update: type[BaseModel]) -> None:
        entity = store.entity
        label = entity.capitalize()

        def list_records():
            return store.get_all()

        def get_record(record_id: str):
            record = store.get_by_id(record_id)
            if record is None:
                raise HTTPException(status_code=404, detail=f"{label} not found")
            return record

        def create_record(payload: dict = Body(...)):
            data = _parse(model_in, payload)
            try:
                record = store.create(data.model_dump())
            except Exception as e:
                raise _write_error(entity, "create", e) from e
            logger.info("%s created (id=%s)", label, record.get("id"))
            return record

        def update_record(record_id: str, payload: dict = Body(...)):
            data = _parse(model_update, payload)
            try:
                record = store.update(record_id, data.model_dump(exclude_unset=True))
            except Exception as e:
                raise _write_error(entity, "update", e) from e
            if record is None:
                raise HTTPException(status_code=404, detail=f"{label} not found")
            logger.info("%s updated (id=%s)", label, record_id)
            return record

        def delete_record(record_id: str):
            try:
                removed = store.delete(record_id)
            except Exception as e:
                raise _write_error(entity, "delete", e) from e
            if not removed:
                raise HTTPException(status_code=404, detail=f"{label} not found")
            logger.info("%s deleted (id=%s)", label, record_id)
            return {"success": True}

        app.add_api_route(prefix, list_records, methods=["GET"])
        app.add_api_route(f"{prefix}/{{record_id}}", get_record, methods=["GET"])
        app.add_api_route(prefix, create_record, methods=["POST"], status_code=201)
        app.add_api_route(f"{prefix}/{{record_id}}", update_record, methods=["PUT"])
        app.add_api_route(f"{prefix}/{{record_id}}", delete_record, methods=["DELETE"])

    _register_crud("/api/customers", customers, CustomerIn, CustomerUpdate)
    _register_crud("/api/products", products, ProductIn, ProductUpdate)

    return app
