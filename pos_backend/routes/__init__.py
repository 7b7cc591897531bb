"""
HTTP routers, one per resource.
"""

from pos_backend.routes import auth, configuracion, orders, pedidos_temp, products, tables

ALL_ROUTERS = [
    auth.router,
    products.router,
    tables.router,
    orders.router,
    configuracion.router,
    pedidos_temp.router,
]

__all__ = ["ALL_ROUTERS"]
