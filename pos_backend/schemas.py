"""
Pydantic Schemas for Request/Response Validation

Wire names follow the existing POS clients: camelCase for orders
(``tableId``, ``unitPrice``) and Spanish snake_case for delivery orders
(``nombre_cliente``, ``detalles_pedido``).

Request bodies are lenient about presence (missing fields reach the
services, which raise ValidationError with a client-facing message);
types are still enforced here.

Author: POS Backend Team
Version: 1.0.0
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# AUTH
# =============================================================================

class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(BaseModel):
    token: str
    username: str


class StaffIdentity(BaseModel):
    """Claims carried by a verified staff token."""
    id: int
    username: str


# =============================================================================
# CATALOG
# =============================================================================

class ProductWrite(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = None
    type: Optional[str] = None
    image: Optional[str] = None


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: float
    type: str
    image: Optional[str] = None


class TableWrite(BaseModel):
    name: Optional[str] = None


class TableResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class TableCreateResponse(TableResponse):
    message: str


class ConfiguracionWrite(BaseModel):
    domicilios_activos: bool


class ConfiguracionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    domicilios_activos: bool


# =============================================================================
# ORDERS
# =============================================================================

class LineItemIn(BaseModel):
    """
    Line item as sent by the clients: product id, captured price, quantity.

    Extra keys (product name, image...) are kept so delivery snapshots
    store exactly what the customer saw.
    """
    model_config = ConfigDict(extra="allow")

    id: int = Field(..., examples=[5])
    price: float = Field(default=0.0, ge=0, examples=[10.0])
    quantity: int = Field(default=1, ge=1, examples=[2])


class OrderCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    table_id: Optional[int] = Field(None, alias="tableId")
    items: Optional[List[LineItemIn]] = None


class OrderItemUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[int] = Field(None, alias="productId")
    quantity: Optional[int] = Field(None, ge=1)
    unit_price: Optional[float] = Field(None, alias="unitPrice", gt=0)


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    order_id: int = Field(alias="orderId")
    product_id: int = Field(alias="productId")
    product_name: Optional[str] = Field(None, alias="productName")
    quantity: int
    unit_price: float = Field(alias="unitPrice")
    subtotal: float


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    table_id: int = Field(alias="tableId")
    total: float
    status: str
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    items: List[OrderItemResponse] = []


class OrderCreateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: int = Field(alias="orderId")
    total: float
    message: str


# =============================================================================
# TEMPORARY (DELIVERY) ORDERS
# =============================================================================

class TempOrderCreate(BaseModel):
    """Public delivery submission."""
    nombre_cliente: Optional[str] = Field(None, max_length=100, examples=["Ana"])
    direccion_cliente: Optional[str] = Field(None, max_length=255)
    telefono_cliente: Optional[str] = Field(None, max_length=30, examples=["555"])
    detalles_pedido: Optional[List[LineItemIn]] = None
    total: Optional[float] = Field(None, ge=0)


class TempOrderResponse(BaseModel):
    """Temporary order with its line-item snapshot deserialized."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    nombre_cliente: str
    direccion_cliente: str
    telefono_cliente: str
    detalles_pedido: List[dict[str, Any]]
    total: float
    estado: str
    confiable: bool
    creado_en: Optional[datetime] = None


class TempOrderCreateResponse(BaseModel):
    message: str
    id: int


class ConfiableUpdate(BaseModel):
    confiable: bool


class PhoneTrustResponse(BaseModel):
    existe: bool
    confiable: Optional[bool] = None


class ApprovalResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    order_id: int = Field(alias="orderId")


# =============================================================================
# GENERIC
# =============================================================================

class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    realtime_provider: str
    connected_clients: int
    timestamp: datetime
