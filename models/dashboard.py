from __future__ import annotations

from typing import List, Optional, Union
from pydantic import BaseModel, Field


class FiltersResponse(BaseModel):
    """Distinct, trimmed names available for the dashboard dropdowns."""
    categorias: List[str] = Field(
        default_factory=list,
        description="Category names, trimmed and sorted ascending.",
        json_schema_extra={"example": ["Herramientas", "Pinturas"]},
    )
    proveedores: List[str] = Field(
        default_factory=list,
        description="Supplier names, trimmed and sorted ascending.",
        json_schema_extra={"example": ["Acme", "Ferreteria Sur"]},
    )


class KpiResponse(BaseModel):
    """Aggregates over the filtered inventory."""
    total_products: int = Field(
        ...,
        description="Number of products matching the filters.",
        json_schema_extra={"example": 120},
    )
    total_stock_units: Union[int, float] = Field(
        ...,
        description="Sum of stock; products without an inventory row count as 0.",
        json_schema_extra={"example": 4310},
    )
    total_value_cost: float = Field(
        ...,
        description="Sum of stock * cost.",
        json_schema_extra={"example": 98234.5},
    )
    low_stock_count: int = Field(
        ...,
        description="Products whose stock is at or below the low stock threshold.",
        json_schema_extra={"example": 17},
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "total_products": 120,
                    "total_stock_units": 4310,
                    "total_value_cost": 98234.5,
                    "low_stock_count": 17,
                }
            ]
        }
    }


class InventoryRow(BaseModel):
    producto_id: int = Field(..., json_schema_extra={"example": 42})
    sku: str = Field(..., json_schema_extra={"example": "MART-001"})
    descripcion: Optional[str] = Field(None, json_schema_extra={"example": "Martillo de carpintero"})
    categoria: Optional[str] = Field(
        None,
        description="Trimmed category name, null when the product has none.",
        json_schema_extra={"example": "Herramientas"},
    )
    proveedor: Optional[str] = Field(
        None,
        description="Trimmed supplier name, null when the product has none.",
        json_schema_extra={"example": "Acme"},
    )
    stock: Union[int, float] = Field(
        ...,
        description="Stock quantity, 0 when there is no inventory row.",
        json_schema_extra={"example": 8},
    )
    costo: Optional[float] = Field(None, json_schema_extra={"example": 12.5})
    precio: Optional[float] = Field(None, json_schema_extra={"example": 19.9})
    valor: Optional[float] = Field(
        None,
        description="stock * costo.",
        json_schema_extra={"example": 100.0},
    )


class InventoryPage(BaseModel):
    """One page of the inventory listing."""
    page: int = Field(..., ge=1, json_schema_extra={"example": 2})
    pageSize: int = Field(..., ge=1, json_schema_extra={"example": 10})
    totalRows: int = Field(..., ge=0, json_schema_extra={"example": 37})
    totalPages: int = Field(
        ...,
        ge=1,
        description="ceil(totalRows / pageSize), never below 1.",
        json_schema_extra={"example": 4},
    )
    rows: List[InventoryRow]


class ErrorResponse(BaseModel):
    error: str = Field(
        ...,
        description="Message of the error that aborted the request.",
        json_schema_extra={"example": "(2003, \"Can't connect to MySQL server\")"},
    )
