"""SQL construction for the dashboard endpoints.

Everything here is pure: request parameters go in, SQL text plus the list of
values for its ``%s`` placeholders comes out. Nothing user supplied is ever
formatted into the SQL text itself.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional


BASE_FROM = """
    FROM productos p
    LEFT JOIN categorias c ON p.categoria_id = c.id
    LEFT JOIN proveedores pr ON p.proveedor_id = pr.id
    LEFT JOIN inventario i ON i.producto_id = p.id
"""

STOCK = "COALESCE(i.cantidad, 0)"
VALUE = f"({STOCK} * p.costo)"

LOW_STOCK_THRESHOLD = 10

PAGE_SIZE_DEFAULT, PAGE_SIZE_MIN, PAGE_SIZE_MAX = 10, 5, 50
PAGE_DEFAULT, PAGE_MIN, PAGE_MAX = 1, 1, 100000


@dataclass
class Query:
    sql: str
    params: List[Any] = field(default_factory=list)


@dataclass
class FilterClause:
    where: str = " WHERE 1=1"
    params: List[Any] = field(default_factory=list)

    def add(self, predicate: str, *values: Any) -> None:
        self.where += f" AND {predicate}"
        self.params.extend(values)


# -----------------------------------------------------------------------------
# Parameter parsing
# -----------------------------------------------------------------------------


def parse_text(value: Any) -> Optional[str]:
    """Trimmed string, or None when the value is absent or blank."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_number(value: Any) -> Optional[float]:
    """Finite number, or None. Blank strings are absent, not zero."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def parse_flag(value: Any) -> bool:
    return str(value if value is not None else "") == "1"


def clamp_int(value: Any, default: int, low: int, high: int) -> int:
    """Truncate toward zero and clamp to [low, high].

    Anything that is not a finite number maps to ``default`` rather than to a
    boundary.
    """
    number = parse_number(value)
    if number is None:
        return default
    return max(low, min(high, math.trunc(number)))


# -----------------------------------------------------------------------------
# Filter / sort / pagination
# -----------------------------------------------------------------------------


def build_filters(query: Mapping[str, Any]) -> FilterClause:
    """Translate request parameters into the shared WHERE clause.

    Predicates are appended in a fixed order (categoria, proveedor,
    missingCategory, missingSupplier, q, minStock, maxStock) and the bound
    values follow that same order.
    """
    clause = FilterClause()

    # names are compared trimmed on both sides
    categoria = parse_text(query.get("categoria"))
    if categoria:
        clause.add("TRIM(c.nombre) = %s", categoria)

    proveedor = parse_text(query.get("proveedor"))
    if proveedor:
        clause.add("TRIM(pr.nombre) = %s", proveedor)

    if parse_flag(query.get("missingCategory")):
        clause.add("p.categoria_id IS NULL")
    if parse_flag(query.get("missingSupplier")):
        clause.add("p.proveedor_id IS NULL")

    q = query.get("q")
    if q:
        like = f"%{q}%"
        clause.add("(p.sku LIKE %s OR p.descripcion LIKE %s)", like, like)

    min_stock = parse_number(query.get("minStock"))
    if min_stock is not None:
        clause.add(f"{STOCK} >= %s", min_stock)

    max_stock = parse_number(query.get("maxStock"))
    if max_stock is not None:
        clause.add(f"{STOCK} <= %s", max_stock)

    return clause


class SortKey(str, Enum):
    VALUE_DESC = "value_desc"
    STOCK_DESC = "stock_desc"
    SKU_ASC = "sku_asc"


SORT_CLAUSES = {
    SortKey.STOCK_DESC: f" ORDER BY {STOCK} DESC, p.sku ASC",
    SortKey.SKU_ASC: " ORDER BY p.sku ASC",
    SortKey.VALUE_DESC: f" ORDER BY {VALUE} DESC, p.sku ASC",
}


def build_sort(sort: Optional[str]) -> str:
    try:
        key = SortKey(str(sort or ""))
    except ValueError:
        key = SortKey.VALUE_DESC
    return SORT_CLAUSES[key]


@dataclass(frozen=True)
class Pagination:
    page: int = PAGE_DEFAULT
    page_size: int = PAGE_SIZE_DEFAULT

    @classmethod
    def from_params(cls, page: Any = None, page_size: Any = None) -> "Pagination":
        return cls(
            page=clamp_int(page, PAGE_DEFAULT, PAGE_MIN, PAGE_MAX),
            page_size=clamp_int(page_size, PAGE_SIZE_DEFAULT, PAGE_SIZE_MIN, PAGE_SIZE_MAX),
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def total_pages(self, total_rows: int) -> int:
        return max(1, math.ceil(total_rows / self.page_size))


# -----------------------------------------------------------------------------
# Query shapes
# -----------------------------------------------------------------------------


def filters_query() -> tuple[Query, Query]:
    categorias = Query("SELECT DISTINCT TRIM(nombre) AS nombre FROM categorias ORDER BY TRIM(nombre)")
    proveedores = Query("SELECT DISTINCT TRIM(nombre) AS nombre FROM proveedores ORDER BY TRIM(nombre)")
    return categorias, proveedores


def kpis_query(filters: FilterClause, low_stock_threshold: int = LOW_STOCK_THRESHOLD) -> Query:
    # the threshold placeholder sits in the SELECT list, ahead of the WHERE values
    sql = f"""
        SELECT
            COUNT(*) AS total_products,
            COALESCE(SUM({STOCK}), 0) AS total_stock_units,
            COALESCE(SUM({VALUE}), 0) AS total_value_cost,
            COALESCE(SUM(CASE WHEN {STOCK} <= %s THEN 1 ELSE 0 END), 0) AS low_stock_count
        {BASE_FROM}
        {filters.where}
    """
    return Query(sql, [low_stock_threshold, *filters.params])


def count_query(filters: FilterClause) -> Query:
    return Query(f"SELECT COUNT(*) AS total {BASE_FROM} {filters.where}", list(filters.params))


def inventory_page_query(filters: FilterClause, sort: str, pagination: Pagination) -> Query:
    sql = f"""
        SELECT
            p.id AS producto_id,
            p.sku,
            p.descripcion,
            TRIM(c.nombre) AS categoria,
            TRIM(pr.nombre) AS proveedor,
            {STOCK} AS stock,
            p.costo,
            p.precio,
            {VALUE} AS valor
        {BASE_FROM}
        {filters.where}
        {sort}
        LIMIT %s OFFSET %s
    """
    return Query(sql, [*filters.params, pagination.page_size, pagination.offset])
