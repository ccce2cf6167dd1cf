def receipt_body(ids, qty="10", **extra):
    body = {
        "supplier": {"name": "Proveedor SA", "email": "ventas@proveedor.test"},
        "destination": "WH1-STOCK",
        "products": [{"product": ids.widget, "orderedQuantity": qty}],
    }
    body.update(extra)
    return body


def create_and_validate_receipt(client, ids, qty="10"):
    resp = client.post("/operations/receipts", json=receipt_body(ids, qty))
    assert resp.status_code == 201
    doc_id = resp.get_json()["receipt"]["id"]
    resp = client.put(f"/operations/receipts/{doc_id}/validate")
    assert resp.status_code == 200
    return doc_id


def test_health_is_public(app):
    resp = app.test_client().get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "status": "ok"}


def test_requires_login(app, ids):
    resp = app.test_client().get("/operations/receipts")
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_login_rejects_bad_password(app, ids):
    resp = app.test_client().post("/auth/login", json={"email": "admin@test.com", "password": "nope"})
    assert resp.status_code == 401


def test_me_and_logout(staff_client):
    assert staff_client.get("/auth/me").get_json()["user"]["role"] == "staff"
    assert staff_client.post("/auth/logout").status_code == 200
    assert staff_client.get("/auth/me").status_code == 401


def test_locations_listing(staff_client):
    body = staff_client.get("/locations").get_json()
    codes = [l["code"] for l in body["warehouses"][0]["locations"]]
    assert codes == ["WH1-RACK-A", "WH1-RACK-B", "WH1-STOCK"]


def test_receipt_create_and_validate(manager_client, ids):
    resp = manager_client.post("/operations/receipts", json=receipt_body(ids, "50"))
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    receipt = body["receipt"]
    assert receipt["reference"] == "RCP000001"
    assert receipt["status"] == "draft"
    assert receipt["supplier"]["name"] == "Proveedor SA"
    assert receipt["destination"]["code"] == "WH1-STOCK"
    assert receipt["products"][0]["orderedQuantity"] == 50.0
    assert receipt["products"][0]["receivedQuantity"] is None

    resp = manager_client.put(f"/operations/receipts/{receipt['id']}/validate")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["receipt"]["status"] == "done"
    assert body["receipt"]["products"][0]["receivedQuantity"] == 50.0
    assert len(body["moves"]) == 1
    assert body["moves"][0]["destinationLocation"]["code"] == "WH1-STOCK"

    detail = manager_client.get(f"/operations/receipts/{receipt['id']}").get_json()
    assert detail["receipt"]["completedDate"] is not None

    product = manager_client.get(f"/products/{ids.widget}").get_json()["product"]
    assert product["totalStock"] == 50.0


def test_validate_twice_returns_already_validated(admin_client, ids):
    doc_id = create_and_validate_receipt(admin_client, ids)

    resp = admin_client.put(f"/operations/receipts/{doc_id}/validate")
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["success"] is False
    assert body["error"] == "already_validated"

    moves = admin_client.get("/operations/moves").get_json()
    assert moves["count"] == 1


def test_insufficient_stock_envelope(admin_client, ids):
    create_and_validate_receipt(admin_client, ids, qty="10")
    resp = admin_client.post("/operations/deliveries", json={
        "customer": {"name": "Cliente"},
        "source": "WH1-STOCK",
        "products": [{"product": ids.widget, "orderedQuantity": "15"}],
    })
    doc_id = resp.get_json()["delivery"]["id"]

    resp = admin_client.put(f"/operations/deliveries/{doc_id}/validate")
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "insufficient_stock"
    assert float(body["details"]["available"]) == 10.0

    detail = admin_client.get(f"/operations/deliveries/{doc_id}").get_json()
    assert detail["delivery"]["status"] == "draft"
    assert admin_client.get(f"/products/{ids.widget}").get_json()["product"]["totalStock"] == 10.0


def test_validate_with_line_overrides(admin_client, ids):
    doc_id = admin_client.post("/operations/receipts", json=receipt_body(ids, "20")).get_json()["receipt"]["id"]

    resp = admin_client.put(
        f"/operations/receipts/{doc_id}/validate",
        json={"products": [{"product": ids.widget, "receivedQuantity": "17"}]},
    )
    assert resp.status_code == 200
    line = resp.get_json()["receipt"]["products"][0]
    assert line["orderedQuantity"] == 20.0
    assert line["receivedQuantity"] == 17.0


def test_missing_document_is_404(admin_client):
    resp = admin_client.get("/operations/adjustments/999")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not_found"

    resp = admin_client.put("/operations/transfers/999/validate")
    assert resp.status_code == 404


def test_validation_error_envelope(admin_client, ids):
    resp = admin_client.post("/operations/receipts", json=receipt_body(ids, destination="NOWHERE"))
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["success"] is False
    assert body["error"] == "validation_error"
    assert "NOWHERE" in body["message"]


def test_duplicate_reference_is_400(admin_client, ids):
    assert admin_client.post("/operations/receipts", json=receipt_body(ids, reference="PO-1")).status_code == 201
    resp = admin_client.post("/operations/receipts", json=receipt_body(ids, reference="po-1"))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "duplicate_reference"


def test_staff_cannot_create_receipts_or_validate(staff_client, admin_client, ids):
    resp = staff_client.post("/operations/receipts", json=receipt_body(ids))
    assert resp.status_code == 403

    doc_id = admin_client.post("/operations/receipts", json=receipt_body(ids)).get_json()["receipt"]["id"]
    assert staff_client.put(f"/operations/receipts/{doc_id}/validate").status_code == 403
    assert staff_client.get(f"/operations/receipts/{doc_id}").status_code == 200


def test_staff_can_create_transfer_but_not_validate(staff_client, admin_client, ids):
    create_and_validate_receipt(admin_client, ids, qty="5")
    resp = staff_client.post("/operations/transfers", json={
        "sourceLocation": "WH1-STOCK",
        "destinationLocation": "WH1-RACK-B",
        "products": [{"product": "WIDGET", "requestedQuantity": "5"}],
    })
    assert resp.status_code == 201
    transfer = resp.get_json()["transfer"]
    assert transfer["reference"] == "TRF000001"

    assert staff_client.put(f"/operations/transfers/{transfer['id']}/validate").status_code == 403

    resp = admin_client.put(f"/operations/transfers/{transfer['id']}/validate")
    assert resp.status_code == 200
    stock = admin_client.get(f"/products/{ids.widget}/stock-by-location").get_json()
    by_code = {s["location"]["code"]: s["quantity"] for s in stock["stockLevels"]}
    assert by_code == {"WH1-STOCK": 0.0, "WH1-RACK-B": 5.0}
    assert stock["totalStock"] == 5.0


def test_adjustment_via_api(manager_client, ids):
    create_and_validate_receipt(manager_client, ids, qty="100")
    resp = manager_client.post("/operations/adjustments", json={
        "location": "WH1-STOCK",
        "reason": "physical_inventory",
        "products": [{"product": ids.widget, "countedQuantity": "92"}],
    })
    assert resp.status_code == 201
    line = resp.get_json()["adjustment"]["products"][0]
    assert line["systemQuantity"] == 100.0
    assert line["difference"] == -8.0

    doc_id = resp.get_json()["adjustment"]["id"]
    body = manager_client.put(f"/operations/adjustments/{doc_id}/validate").get_json()
    assert body["moves"][0]["quantity"] == 8.0
    assert body["moves"][0]["documentType"] == "adjustment"


def test_list_documents_paging(admin_client, ids):
    for _ in range(3):
        admin_client.post("/operations/receipts", json=receipt_body(ids))

    body = admin_client.get("/operations/receipts?limit=2&page=2").get_json()
    assert body["count"] == 3
    assert body["totalPages"] == 2
    assert body["currentPage"] == 2
    assert len(body["receipts"]) == 1

    assert admin_client.get("/operations/receipts?status=done").get_json()["count"] == 0
    assert admin_client.get("/operations/receipts?status=bogus").status_code == 400


def test_moves_endpoint_filters(admin_client, ids):
    create_and_validate_receipt(admin_client, ids, qty="3")

    body = admin_client.get("/operations/moves?documentType=receipt&limit=500").get_json()
    assert body["count"] == 1
    assert body["moves"][0]["documentReference"] == "RCP000001"
    assert body["moves"][0]["product"]["sku"] == "WIDGET"

    assert admin_client.get("/operations/moves?documentType=delivery").get_json()["count"] == 0
    assert admin_client.get("/operations/moves?startDate=not-a-date").status_code == 400


def test_product_crud_roles(admin_client, manager_client, staff_client, ids):
    resp = staff_client.post("/products", json={"name": "X", "sku": "X1"})
    assert resp.status_code == 403

    resp = manager_client.post("/products", json={
        "name": "Tuerca", "sku": "tue-8", "initialStock": "12", "location": "WH1-RACK-A",
    })
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["product"]["sku"] == "TUE-8"
    assert body["product"]["totalStock"] == 12.0
    assert body["openingReceipt"].startswith("RCP")
    product_id = body["product"]["id"]

    resp = manager_client.post("/products", json={"name": "Otra", "sku": "TUE-8"})
    assert resp.status_code == 400

    resp = manager_client.put(f"/products/{product_id}", json={"price": "3.5"})
    assert resp.get_json()["product"]["price"] == 3.5

    assert manager_client.delete(f"/products/{product_id}").status_code == 403
    assert admin_client.delete(f"/products/{product_id}").status_code == 200

    listed = staff_client.get("/products?status=all").get_json()
    assert listed["count"] == 3
    assert staff_client.get("/products/999").status_code == 404


def test_low_stock_endpoint(staff_client, ids):
    body = staff_client.get("/products/low-stock").get_json()
    assert body["count"] == 2
    assert {p["sku"] for p in body["products"]} == {"WIDGET", "GADGET"}


def test_dashboard_endpoints(admin_client, ids):
    create_and_validate_receipt(admin_client, ids, qty="4")

    kpis = admin_client.get("/dashboard/kpis").get_json()["kpis"]
    assert kpis["totalProducts"] == 2
    assert kpis["outOfStockItems"] == 1
    assert kpis["lowStockItems"] == 1

    stats = admin_client.get("/dashboard/stats?period=30").get_json()["stats"]
    assert stats["movementsByType"][0]["documentType"] == "receipt"

    alerts = admin_client.get("/dashboard/low-stock-alerts").get_json()
    assert alerts["count"] == 2
    assert alerts["alerts"][0]["severity"] == "critical"

    activities = admin_client.get("/dashboard/recent-activities?limit=5").get_json()["activities"]
    assert activities[0]["reference"] == "RCP000001"


def test_unknown_route_is_json_404(admin_client):
    resp = admin_client.get("/nope")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_wrong_method_is_json_405(admin_client):
    resp = admin_client.delete("/operations/moves")
    assert resp.status_code == 405
    assert resp.get_json()["success"] is False


def test_oversized_quantity_is_400(admin_client, ids):
    for qty in ("1e30", "123456789012345678.123"):
        resp = admin_client.post("/operations/receipts", json=receipt_body(ids, qty))
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "validation_error"


def test_create_product_initial_stock_requires_location(manager_client, ids):
    resp = manager_client.post("/products", json={"name": "X", "sku": "xx1", "initialStock": "50"})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "initialStock requiere location."
