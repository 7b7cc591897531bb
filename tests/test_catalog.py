from sqlalchemy import select

from pos_backend.models import Configuracion, Order, OrderItem, OrderStatus, Product, ProductType, Table


def _product_body(**overrides) -> dict:
    body = {"name": "Doble", "price": 18.5, "type": "HAMBURGUESA", "image": "doble.png"}
    body.update(overrides)
    return body


def _seed_order(pos, table_id: int, product_id: int) -> int:
    order = Order(table_id=table_id, status=OrderStatus.OPEN, total=10)
    order.items = [OrderItem(product_id=product_id, quantity=1, unit_price=10, subtotal=10)]
    return pos.seed(order)[0]


# =============================================================================
# PRODUCTS
# =============================================================================

def test_create_product(pos):
    resp = pos.client.post("/products", json=_product_body(), headers=pos.staff_headers())
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Doble"
    assert body["type"] == "HAMBURGUESA"

    assert pos.broadcaster.broadcasts == [("producto_creado", body)]


def test_create_product_requires_token(pos):
    assert pos.client.post("/products", json=_product_body()).status_code == 401


def test_create_product_validation(pos):
    headers = pos.staff_headers()

    resp = pos.client.post("/products", json=_product_body(name=""), headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Faltan datos"

    resp = pos.client.post("/products", json=_product_body(price=0), headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "El precio debe ser un número válido"

    resp = pos.client.post("/products", json=_product_body(type="PIZZA"), headers=headers)
    assert resp.status_code == 400

    assert pos.run(lambda s: s.scalar(select(Product.id))) is None
    assert pos.broadcaster.broadcasts == []


def test_product_types_and_public_menu(pos):
    pos.add_product(name="Coca-Cola", price=3, type=ProductType.BEBIDA)

    resp = pos.client.get("/products/types", headers=pos.staff_headers())
    assert resp.json() == ["HAMBURGUESA", "PERRO", "BEBIDA"]

    menu = pos.client.get("/products/public")
    assert menu.status_code == 200
    assert [p["name"] for p in menu.json()] == ["Coca-Cola"]

    assert pos.client.get("/products").status_code == 401


def test_update_product(pos):
    product_id = pos.add_product()

    resp = pos.client.put(
        f"/products/{product_id}", json=_product_body(price=12), headers=pos.staff_headers()
    )
    assert resp.status_code == 200

    product = pos.run(lambda s: s.get(Product, product_id))
    assert product.price == 12
    assert pos.broadcaster.events() == ["producto_actualizado"]


def test_update_product_requires_image(pos):
    product_id = pos.add_product()
    resp = pos.client.put(
        f"/products/{product_id}", json=_product_body(image=None), headers=pos.staff_headers()
    )
    assert resp.status_code == 400


def test_update_unknown_product(pos):
    resp = pos.client.put("/products/999", json=_product_body(), headers=pos.staff_headers())
    assert resp.status_code == 404


def test_delete_product_in_use_is_refused(pos):
    product_id = pos.add_product()
    table_id = pos.add_table()
    _seed_order(pos, table_id, product_id)

    resp = pos.client.delete(f"/products/{product_id}", headers=pos.staff_headers())
    assert resp.status_code == 409
    assert resp.json() == {
        "success": False,
        "error": "No se puede eliminar este producto porque ya está en pedidos.",
    }
    assert pos.run(lambda s: s.get(Product, product_id)) is not None
    assert pos.broadcaster.broadcasts == []


def test_delete_product(pos):
    product_id = pos.add_product()

    resp = pos.client.delete(f"/products/{product_id}", headers=pos.staff_headers())
    assert resp.status_code == 200
    assert pos.run(lambda s: s.get(Product, product_id)) is None
    assert pos.broadcaster.broadcasts == [("producto_eliminado", {"id": product_id})]

    assert pos.client.delete(f"/products/{product_id}", headers=pos.staff_headers()).status_code == 404


# =============================================================================
# TABLES
# =============================================================================

def test_delivery_table_exists_at_startup(pos):
    tables = pos.client.get("/tables", headers=pos.staff_headers()).json()
    assert {"id": pos.delivery_table_id, "name": "Domicilios"} in tables


def test_create_and_rename_table(pos):
    headers = pos.staff_headers()

    resp = pos.client.post("/tables", json={"name": "Terraza"}, headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Terraza"
    assert body["message"] == "Mesa creada correctamente"

    resp = pos.client.put(f"/tables/{body['id']}", json={"name": "Terraza 2"}, headers=headers)
    assert resp.status_code == 200
    assert pos.run(lambda s: s.get(Table, body["id"])).name == "Terraza 2"

    assert pos.broadcaster.events() == ["mesa_creada", "mesa_actualizada"]


def test_create_table_requires_name(pos):
    resp = pos.client.post("/tables", json={"name": "  "}, headers=pos.staff_headers())
    assert resp.status_code == 400


def test_tables_require_token(pos):
    assert pos.client.get("/tables").status_code == 401


def test_delivery_table_cannot_be_deleted(pos):
    resp = pos.client.delete(f"/tables/{pos.delivery_table_id}", headers=pos.staff_headers())
    assert resp.status_code == 409
    assert pos.run(lambda s: s.get(Table, pos.delivery_table_id)) is not None


def test_table_with_orders_cannot_be_deleted(pos):
    table_id = pos.add_table()
    _seed_order(pos, table_id, pos.add_product())

    resp = pos.client.delete(f"/tables/{table_id}", headers=pos.staff_headers())
    assert resp.status_code == 409
    assert resp.json()["error"] == "No se puede eliminar la mesa porque tiene pedidos asociados."


def test_delete_table(pos):
    table_id = pos.add_table()

    resp = pos.client.delete(f"/tables/{table_id}", headers=pos.staff_headers())
    assert resp.status_code == 200
    assert pos.broadcaster.broadcasts == [("mesa_eliminada", {"id": table_id})]
    assert pos.client.delete(f"/tables/{table_id}", headers=pos.staff_headers()).status_code == 404


# =============================================================================
# CONFIGURATION
# =============================================================================

def test_toggle_delivery_intake(pos):
    assert pos.client.get("/configuracion/public").json() == {"domicilios_activos": True}

    resp = pos.client.put(
        "/configuracion", json={"domicilios_activos": False}, headers=pos.staff_headers()
    )
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Configuración actualizada correctamente"}

    assert pos.client.get("/configuracion/public").json() == {"domicilios_activos": False}
    assert pos.client.get("/configuracion", headers=pos.staff_headers()).json() == {
        "domicilios_activos": False
    }
    assert pos.broadcaster.broadcasts == [("estadoDomicilios", {"activo": False})]


def test_configuration_write_requires_token(pos):
    resp = pos.client.put("/configuracion", json={"domicilios_activos": False})
    assert resp.status_code == 401
    assert pos.run(lambda s: s.get(Configuracion, 1)).domicilios_activos is True
