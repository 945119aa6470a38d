from __future__ import annotations

import logging
import os
import socket
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from db import checkout, create_pool, load_settings
from models.dashboard import ErrorResponse, FiltersResponse, InventoryPage, InventoryRow, KpiResponse
from models.health import Health
from queries import (
    LOW_STOCK_THRESHOLD,
    Pagination,
    Query as SqlQuery,
    build_filters,
    build_sort,
    count_query,
    filters_query,
    inventory_page_query,
    kpis_query,
)

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

port = int(os.environ.get("PORT", 3000))
static_dir = os.environ.get("STATIC_DIR", "public")


def _to_number(v):
    """MySQL hands back DECIMAL for sums and money columns; JSON wants numbers."""
    if isinstance(v, Decimal):
        return int(v) if v == v.to_integral_value() else float(v)
    return v


def fetch_all(conn, query: SqlQuery) -> list[dict]:
    with conn.cursor() as cur:
        cur.execute(query.sql, query.params)
        return list(cur.fetchall())


def error_response(e: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(e) or e.__class__.__name__})


@asynccontextmanager
async def lifespan(app: FastAPI):
    # missing settings raise here and abort startup
    settings = load_settings()
    app.state.low_stock_threshold = settings.low_stock_threshold
    app.state.pool = create_pool(settings)
    logger.info("Inventory dashboard API ready on port %s", port)
    try:
        yield
    finally:
        app.state.pool.dispose()
        logger.info("Connection pool disposed")


app = FastAPI(
    title="Inventory Dashboard API",
    description="Read-only filters, KPIs and paged inventory over products, categories, suppliers and stock",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)


def get_pool(request: Request):
    return request.app.state.pool


def get_low_stock_threshold(request: Request) -> int:
    return getattr(request.app.state, "low_stock_threshold", LOW_STOCK_THRESHOLD)


def filter_params(
        categoria: Optional[str] = Query(None, description="Category name (compared trimmed)"),
        proveedor: Optional[str] = Query(None, description="Supplier name (compared trimmed)"),
        q: Optional[str] = Query(None, description="Substring of SKU or description"),
        min_stock: Optional[str] = Query(None, alias="minStock", description="Minimum stock"),
        max_stock: Optional[str] = Query(None, alias="maxStock", description="Maximum stock"),
        missing_category: Optional[str] = Query(
            None, alias="missingCategory", description="1 to list only products without category"),
        missing_supplier: Optional[str] = Query(
            None, alias="missingSupplier", description="1 to list only products without supplier"),
) -> Dict[str, Optional[str]]:
    # kept as raw strings: malformed values are normalized, never rejected
    return {
        "categoria": categoria,
        "proveedor": proveedor,
        "q": q,
        "minStock": min_stock,
        "maxStock": max_stock,
        "missingCategory": missing_category,
        "missingSupplier": missing_supplier,
    }


# ============================================================================
# Health endpoints
# ============================================================================


@app.get("/health", response_model=Health)
def get_health(echo: str | None = Query(None, description="Optional echo string")):
    return Health(
        status=200,
        status_message="OK",
        timestamp=datetime.utcnow().isoformat() + "Z",
        ip_address=socket.gethostbyname(socket.gethostname()),
        echo=echo,
    )


# -----------------------------------------------------------------------------
# Dashboard endpoints
# -----------------------------------------------------------------------------


@app.get("/api/filtros", response_model=FiltersResponse, responses={500: {"model": ErrorResponse}})
def get_filters(pool=Depends(get_pool)):
    """Distinct category and supplier names for the filter dropdowns."""
    categorias_sql, proveedores_sql = filters_query()
    try:
        with checkout(pool) as conn:
            categorias = fetch_all(conn, categorias_sql)
            proveedores = fetch_all(conn, proveedores_sql)
        return FiltersResponse(
            categorias=[row["nombre"] for row in categorias],
            proveedores=[row["nombre"] for row in proveedores],
        )
    except Exception as e:
        logger.exception("Failed to load filter values")
        return error_response(e)


@app.get("/api/kpis", response_model=KpiResponse, responses={500: {"model": ErrorResponse}})
def get_kpis(
        filters: Dict[str, Optional[str]] = Depends(filter_params),
        low_stock_threshold: int = Depends(get_low_stock_threshold),
        pool=Depends(get_pool),
):
    """Totals over the filtered inventory."""
    query = kpis_query(build_filters(filters), low_stock_threshold)
    try:
        with checkout(pool) as conn:
            rows = fetch_all(conn, query)
        if not rows:
            return JSONResponse(content={})
        return KpiResponse(**{key: _to_number(val) for key, val in rows[0].items()})
    except Exception as e:
        logger.exception("Failed to compute KPIs")
        return error_response(e)


@app.get("/api/inventario", response_model=InventoryPage, responses={500: {"model": ErrorResponse}})
def list_inventory(
        filters: Dict[str, Optional[str]] = Depends(filter_params),
        sort: Optional[str] = Query(None, description="value_desc (default), stock_desc or sku_asc"),
        page: Optional[str] = Query(None, description="Page number, 1 to 100000"),
        page_size: Optional[str] = Query(None, alias="pageSize", description="Rows per page, 5 to 50"),
        pool=Depends(get_pool),
):
    """Paged, sorted inventory listing.

    Runs a COUNT and then the page query; the two are not wrapped in a
    transaction, so totalRows may be slightly stale relative to rows.
    """
    where = build_filters(filters)
    pagination = Pagination.from_params(page, page_size)

    try:
        with checkout(pool) as conn:
            count_rows = fetch_all(conn, count_query(where))
            total_rows = int(count_rows[0]["total"] or 0) if count_rows else 0
            rows = fetch_all(conn, inventory_page_query(where, build_sort(sort), pagination))
        return InventoryPage(
            page=pagination.page,
            pageSize=pagination.page_size,
            totalRows=total_rows,
            totalPages=pagination.total_pages(total_rows),
            rows=[InventoryRow(**{key: _to_number(val) for key, val in row.items()}) for row in rows],
        )
    except Exception as e:
        logger.exception("Failed to list inventory")
        return error_response(e)


# -----------------------------------------------------------------------------
# Frontend
# -----------------------------------------------------------------------------
# mounted last so the API routes above take precedence over "/"
if os.path.isdir(static_dir):
    app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")


# -----------------------------------------------------------------------------
# Run the app
# -----------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=port)
