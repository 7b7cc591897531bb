from sqlalchemy import func, select

from pos_backend.models import Order, OrderStatus


def _create(pos, table_id: int, items: list[dict]):
    return pos.client.post(
        "/orders", json={"tableId": table_id, "items": items}, headers=pos.staff_headers()
    )


def _open_order(pos, table_id: int) -> dict:
    orders = pos.client.get(f"/orders/{table_id}", headers=pos.staff_headers()).json()
    assert len(orders) == 1
    return orders[0]


def test_create_order(pos):
    burger = pos.add_product(name="Sencilla", price=10)
    soda = pos.add_product(name="Gaseosa", price=5)
    table_id = pos.add_table()

    resp = _create(pos, table_id, [
        {"id": burger, "price": 10, "quantity": 2},
        {"id": soda, "price": 5},
    ])
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 25
    assert body["message"] == "Pedido creado correctamente"

    order = _open_order(pos, table_id)
    assert order["id"] == body["orderId"]
    assert order["tableId"] == table_id
    assert order["status"] == "OPEN"
    assert [(i["productName"], i["quantity"], i["unitPrice"], i["subtotal"]) for i in order["items"]] == [
        ("Sencilla", 2, 10, 20),
        ("Gaseosa", 1, 5, 5),
    ]

    assert pos.broadcaster.events() == ["pedido_creado"]
    event, payload = pos.broadcaster.broadcasts[0]
    assert payload["orderId"] == body["orderId"]
    assert payload["tableId"] == table_id


def test_create_order_incomplete(pos):
    table_id = pos.add_table()

    resp = _create(pos, table_id, [])
    assert resp.status_code == 400
    assert resp.json()["error"] == "Datos incompletos para crear pedido"

    resp = pos.client.post("/orders", json={"items": [{"id": 1}]}, headers=pos.staff_headers())
    assert resp.status_code == 400


def test_create_order_unknown_references(pos):
    product_id = pos.add_product()
    table_id = pos.add_table()

    assert _create(pos, 999, [{"id": product_id, "price": 10}]).status_code == 404
    assert _create(pos, table_id, [{"id": 999, "price": 10}]).status_code == 404

    assert pos.run(lambda s: s.scalar(select(func.count(Order.id)))) == 0
    assert pos.broadcaster.broadcasts == []


def test_orders_require_token(pos):
    assert pos.client.get("/orders").status_code == 401
    assert pos.client.post("/orders", json={}).status_code == 401


def test_update_item_recomputes_total(pos):
    burger = pos.add_product(price=10)
    hotdog = pos.add_product(name="Perro", price=8)
    table_id = pos.add_table()
    _create(pos, table_id, [{"id": burger, "price": 10}, {"id": hotdog, "price": 8}])
    item_id = _open_order(pos, table_id)["items"][0]["id"]

    resp = pos.client.put(
        f"/orders/order-items/{item_id}",
        json={"productId": burger, "quantity": 3, "unitPrice": 12},
        headers=pos.staff_headers(),
    )
    assert resp.status_code == 200

    order = _open_order(pos, table_id)
    assert order["items"][0]["subtotal"] == 36
    assert order["total"] == 44
    assert pos.broadcaster.events()[-1] == "pedido_actualizado"


def test_update_item_missing_fields(pos):
    burger = pos.add_product(price=10)
    table_id = pos.add_table()
    _create(pos, table_id, [{"id": burger, "price": 10}])
    item_id = _open_order(pos, table_id)["items"][0]["id"]

    resp = pos.client.put(
        f"/orders/order-items/{item_id}", json={"quantity": 2}, headers=pos.staff_headers()
    )
    assert resp.status_code == 400


def test_delete_item_recomputes_total(pos):
    burger = pos.add_product(price=10)
    hotdog = pos.add_product(name="Perro", price=8)
    table_id = pos.add_table()
    _create(pos, table_id, [{"id": burger, "price": 10}, {"id": hotdog, "price": 8}])
    item_id = _open_order(pos, table_id)["items"][0]["id"]

    resp = pos.client.delete(f"/orders/order-items/{item_id}", headers=pos.staff_headers())
    assert resp.status_code == 200

    order = _open_order(pos, table_id)
    assert len(order["items"]) == 1
    assert order["total"] == 8

    assert pos.client.delete(f"/orders/order-items/{item_id}", headers=pos.staff_headers()).status_code == 404


def test_close_order_is_terminal(pos):
    burger = pos.add_product(price=10)
    table_id = pos.add_table()
    order_id = _create(pos, table_id, [{"id": burger, "price": 10}]).json()["orderId"]
    item_id = _open_order(pos, table_id)["items"][0]["id"]
    headers = pos.staff_headers()

    assert pos.client.put(f"/orders/{order_id}/close", headers=headers).status_code == 200
    assert pos.run(lambda s: s.get(Order, order_id)).status is OrderStatus.CLOSED
    assert pos.client.get(f"/orders/{table_id}", headers=headers).json() == []

    assert pos.client.put(f"/orders/{order_id}/close", headers=headers).status_code == 409
    resp = pos.client.put(
        f"/orders/order-items/{item_id}",
        json={"productId": burger, "quantity": 2, "unitPrice": 10},
        headers=headers,
    )
    assert resp.status_code == 409
    assert pos.client.delete(f"/orders/order-items/{item_id}", headers=headers).status_code == 409

    assert pos.broadcaster.events().count("pedido_cerrado") == 1


def test_close_unknown_order(pos):
    assert pos.client.put("/orders/999/close", headers=pos.staff_headers()).status_code == 404


def test_list_orders_newest_first(pos):
    burger = pos.add_product(price=10)
    first_table = pos.add_table("Mesa 1")
    second_table = pos.add_table("Mesa 2")
    first = _create(pos, first_table, [{"id": burger, "price": 10}]).json()["orderId"]
    second = _create(pos, second_table, [{"id": burger, "price": 10}]).json()["orderId"]

    orders = pos.client.get("/orders", headers=pos.staff_headers()).json()
    assert [o["id"] for o in orders] == [second, first]
