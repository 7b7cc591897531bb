"""
                Restaurant POS Backend

Async backend for a restaurant point-of-sale: staff authentication,
catalog, tables, orders and the delivery-order approval workflow with
realtime notifications over Socket.IO.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
