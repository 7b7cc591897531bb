"""
SQLAlchemy Database Models

Point-of-sale schema:
- Catalog: products, tables, single-row configuration
- Permanent orders and their line items
- Temporary (delivery) orders awaiting staff approval
- Staff users
- Outbox of realtime events written alongside the data they describe

Table and column names follow the existing restaurant database.

Author: POS Backend Team
Version: 1.0.0
"""

import enum
import json
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from pos_backend.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class ProductType(str, enum.Enum):
    """Product categories defined by the schema."""
    HAMBURGUESA = "HAMBURGUESA"
    PERRO = "PERRO"
    BEBIDA = "BEBIDA"


class OrderStatus(str, enum.Enum):
    """Permanent order lifecycle. CLOSED is terminal."""
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class TempOrderStatus(str, enum.Enum):
    """Temporary order workflow. Only PENDIENTE is non-terminal."""
    PENDIENTE = "pendiente"
    FACTURADO = "facturado"  # promoted into order/orderitem
    RECHAZADO = "rechazado"

    @property
    def is_terminal(self) -> bool:
        return self is not TempOrderStatus.PENDIENTE


class OutboxStatus(str, enum.Enum):
    QUEUED = "queued"
    DELIVERED = "delivered"
    DROPPED = "dropped"  # targeted event with no live session
    FAILED = "failed"


class Product(Base):
    """Catalog product."""
    __tablename__ = "product"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    price = Column(Float, nullable=False)
    type = Column(
        Enum(ProductType, name="product_type", values_callable=_enum_values),
        nullable=False,
    )
    image = Column(String(500), nullable=True)

    def __repr__(self):
        return f"<Product #{self.id} - {self.name} - {self.price}>"


class Table(Base):
    """Physical table, or the delivery sentinel row."""
    __tablename__ = "table"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)

    def __repr__(self):
        return f"<Table #{self.id} - {self.name}>"


class Order(Base):
    """
    Permanent order.

    Created OPEN; closed exactly once. ``total`` is kept equal to the sum
    of its items' subtotals.
    """
    __tablename__ = "order"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    table_id = Column("tableId", Integer, ForeignKey("table.id"), nullable=False, index=True)
    total = Column(Float, nullable=False, default=0.0)
    status = Column(
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        default=OrderStatus.OPEN,
        nullable=False,
        index=True,
    )
    created_at = Column("createdAt", DateTime(timezone=True), default=utcnow, server_default=func.now())

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )

    def __repr__(self):
        return f"<Order #{self.id} - table {self.table_id} - {self.status.value}>"


class OrderItem(Base):
    """
    Order line. ``unit_price`` is captured when the line is inserted and
    never re-read from the catalog.
    """
    __tablename__ = "orderitem"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column("orderId", Integer, ForeignKey("order.id"), nullable=False, index=True)
    product_id = Column("productId", Integer, ForeignKey("product.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column("unitPrice", Float, nullable=False)
    subtotal = Column(Float, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product", lazy="selectin")

    def __repr__(self):
        return f"<OrderItem #{self.id} - order {self.order_id} - product {self.product_id} x{self.quantity}>"


class TemporaryOrder(Base):
    """
    Delivery order submitted by a customer, waiting for staff review.

    ``detalles_pedido`` holds the submitted line items as a JSON snapshot so
    later catalog changes never alter it. ``confiable`` annotates the
    customer's phone and is independent of ``estado``.
    """
    __tablename__ = "pedidos_temp"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    nombre_cliente = Column(String(100), nullable=False)
    direccion_cliente = Column(String(255), nullable=False, default="")
    telefono_cliente = Column(String(30), nullable=False, default="", index=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    detalles_pedido = Column(Text, nullable=False)  # JSON string of submitted items
    total = Column(Float, nullable=False, default=0.0)

    # =========================================================================
    # REVIEW
    # =========================================================================
    estado = Column(
        Enum(TempOrderStatus, name="temp_order_status", values_callable=_enum_values),
        default=TempOrderStatus.PENDIENTE,
        nullable=False,
        index=True,
    )
    confiable = Column(Boolean, nullable=False, default=True)

    creado_en = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)

    @property
    def lines(self) -> list[dict]:
        return json.loads(self.detalles_pedido or "[]")

    def __repr__(self):
        return f"<TemporaryOrder #{self.id} - {self.nombre_cliente} - {self.estado.value}>"


class Configuracion(Base):
    """Single-row business configuration."""
    __tablename__ = "configuracion"

    id = Column(Integer, primary_key=True)
    domicilios_activos = Column(Boolean, nullable=False, default=True)


class User(Base):
    """Staff account allowed to use the protected endpoints."""
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    password_hash = Column("passwordHash", String(255), nullable=False)

    def __repr__(self):
        return f"<User #{self.id} - {self.username}>"


class OutboxEvent(Base):
    """
    Realtime event committed together with the change that produced it.

    ``target`` is a customer phone for single-session events, or NULL for
    events broadcast to every connected client.
    """
    __tablename__ = "outbox_events"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    event = Column(String(100), nullable=False)
    payload = Column(JSON, nullable=False)
    target = Column(String(30), nullable=True)
    status = Column(
        Enum(OutboxStatus, name="outbox_status", values_callable=_enum_values),
        default=OutboxStatus.QUEUED,
        nullable=False,
        index=True,
    )
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    dispatched_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<OutboxEvent #{self.id} - {self.event} - {self.status.value}>"
