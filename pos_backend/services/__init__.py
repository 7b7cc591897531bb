"""
                        Services Module

Business logic behind the HTTP routes. Services receive an AsyncSession,
raise domain errors from pos_backend.core.errors, and queue realtime events
through the outbox inside their own unit of work.

Services:
    - catalog: products, tables, configuration
    - orders: permanent orders and order items
    - pedidos_temp: delivery order intake, review, approval and rejection
    - realtime: session registry, Socket.IO broadcaster, outbox dispatcher
"""
