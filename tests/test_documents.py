from decimal import Decimal

import pytest

from models import db
from models.documents import AdjustmentLine, Delivery, DocumentStatus, Receipt
from models.product import Product
from models.stock_move import DocumentType, StockMove
from services.documents import create_document, get_document, list_documents, validate_document
from services.errors import AlreadyValidated, InsufficientStock, NotFound, ValidationError
from services.stock import stock_at, total_stock


def receipt_payload(ids, qty, *, product=None, location="WH1-STOCK", received=None):
    line = {"product": product or ids.widget, "orderedQuantity": str(qty)}
    if received is not None:
        line["receivedQuantity"] = str(received)
    return {"supplier": {"name": "Proveedor SA"}, "destination": location, "products": [line]}


def receive(ids, admin, qty, *, product=None, location="WH1-STOCK"):
    doc = create_document(db.session, "receipt", receipt_payload(ids, qty, product=product, location=location), admin)
    validate_document(db.session, "receipt", doc.id, admin)
    db.session.commit()
    return doc


def widget_stock(ids) -> Decimal:
    return db.session.get(Product, ids.widget).stock


def moves_for(kind, doc_id):
    return (
        db.session.query(StockMove)
        .filter(StockMove.document_type == kind, StockMove.document_id == doc_id)
        .all()
    )


# -------------------------
# Receipt
# -------------------------
def test_receipt_validation_adds_stock_and_logs_move(ctx, ids, admin):
    doc = create_document(db.session, "receipt", receipt_payload(ids, 50, received=50), admin)
    db.session.commit()

    assert doc.status == DocumentStatus.DRAFT
    assert doc.reference == "RCP000001"
    assert widget_stock(ids) == 0

    doc, moves = validate_document(db.session, "receipt", doc.id, admin)
    db.session.commit()

    assert doc.status == DocumentStatus.DONE
    assert doc.completed_date is not None
    assert widget_stock(ids) == Decimal("50")
    assert stock_at(db.session, product_id=ids.widget, location_id=ids.stock) == Decimal("50")

    assert len(moves) == 1
    move = moves[0]
    assert Decimal(move.quantity) == Decimal("50")
    assert move.document_type == DocumentType.RECEIPT
    assert move.document_reference == "RCP000001"
    assert move.source_location_id is None
    assert move.destination_location_id == ids.stock
    assert move.status == DocumentStatus.DONE
    assert move.user_id == admin.id


def test_receipt_received_defaults_to_ordered(ctx, ids, admin):
    doc = create_document(db.session, "receipt", receipt_payload(ids, 12), admin)
    assert doc.lines[0].received_quantity is None

    doc, _ = validate_document(db.session, "receipt", doc.id, admin)
    db.session.commit()

    assert Decimal(doc.lines[0].received_quantity) == Decimal("12")
    assert widget_stock(ids) == Decimal("12")


def test_receipt_with_zero_received_emits_no_move(ctx, ids, admin):
    doc = create_document(db.session, "receipt", receipt_payload(ids, 10, received=0), admin)
    doc, moves = validate_document(db.session, "receipt", doc.id, admin)
    db.session.commit()

    assert doc.status == DocumentStatus.DONE
    assert moves == []
    assert widget_stock(ids) == 0


def test_validation_overrides_actual_quantities(ctx, ids, admin):
    doc = create_document(db.session, "receipt", receipt_payload(ids, 20), admin)
    db.session.commit()

    doc, moves = validate_document(
        db.session, "receipt", doc.id, admin,
        overrides=[{"product": ids.widget, "receivedQuantity": "18"}],
    )
    db.session.commit()

    assert len(doc.lines) == 1
    assert Decimal(doc.lines[0].ordered_quantity) == Decimal("20")
    assert Decimal(doc.lines[0].received_quantity) == Decimal("18")
    assert Decimal(moves[0].quantity) == Decimal("18")


# -------------------------
# Delivery
# -------------------------
def test_delivery_insufficient_stock_changes_nothing(ctx, ids, admin):
    receive(ids, admin, 10)
    doc = create_document(
        db.session,
        "delivery",
        {
            "customer": {"name": "Cliente Uno"},
            "source": "WH1-STOCK",
            "products": [{"product": ids.widget, "orderedQuantity": "15", "deliveredQuantity": "15"}],
        },
        admin,
    )
    db.session.commit()
    doc_id = doc.id

    with pytest.raises(InsufficientStock):
        validate_document(db.session, "delivery", doc_id, admin)
    db.session.rollback()

    assert widget_stock(ids) == Decimal("10")
    assert moves_for(DocumentType.DELIVERY, doc_id) == []
    assert db.session.get(Delivery, doc_id).status == DocumentStatus.DRAFT


def test_delivery_removes_stock(ctx, ids, admin):
    receive(ids, admin, 10)
    doc = create_document(
        db.session,
        "delivery",
        {
            "customer": "Cliente Uno",
            "source": "WH1-STOCK",
            "products": [{"product": "widget", "orderedQuantity": "4"}],
        },
        admin,
    )
    doc, moves = validate_document(db.session, "delivery", doc.id, admin)
    db.session.commit()

    assert doc.reference == "DEL000001"
    assert widget_stock(ids) == Decimal("6")
    assert moves[0].source_location_id == ids.stock
    assert moves[0].destination_location_id is None


def test_failed_line_rolls_back_earlier_lines(ctx, ids, admin):
    receive(ids, admin, 10)
    receive(ids, admin, 1, product=ids.gadget)
    doc = create_document(
        db.session,
        "delivery",
        {
            "customer": {"name": "Cliente Uno"},
            "source": "WH1-STOCK",
            "products": [
                {"product": ids.widget, "orderedQuantity": "5"},
                {"product": ids.gadget, "orderedQuantity": "3"},
            ],
        },
        admin,
    )
    db.session.commit()
    doc_id = doc.id

    with pytest.raises(InsufficientStock):
        validate_document(db.session, "delivery", doc_id, admin)
    db.session.rollback()

    assert widget_stock(ids) == Decimal("10")
    assert db.session.get(Product, ids.gadget).stock == Decimal("1")
    assert moves_for(DocumentType.DELIVERY, doc_id) == []
    assert db.session.get(Delivery, doc_id).status == DocumentStatus.DRAFT


# -------------------------
# Transfer
# -------------------------
def test_transfer_moves_stock_between_locations(ctx, ids, admin):
    receive(ids, admin, 20)
    doc = create_document(
        db.session,
        "transfer",
        {
            "sourceLocation": "WH1-STOCK",
            "destinationLocation": "Rack A",
            "products": [{"product": ids.widget, "requestedQuantity": "20", "transferredQuantity": "20"}],
        },
        admin,
    )
    doc, moves = validate_document(db.session, "transfer", doc.id, admin)
    db.session.commit()

    assert doc.reference == "TRF000001"
    assert stock_at(db.session, product_id=ids.widget, location_id=ids.stock) == 0
    assert stock_at(db.session, product_id=ids.widget, location_id=ids.rack_a) == Decimal("20")
    assert widget_stock(ids) == Decimal("20")

    assert len(moves) == 1
    assert moves[0].source_location_id == ids.stock
    assert moves[0].destination_location_id == ids.rack_a
    assert moves[0].notes == "Transferencia de WH1-STOCK a WH1-RACK-A"


def test_transfer_requires_distinct_locations(ctx, ids, admin):
    with pytest.raises(ValidationError):
        create_document(
            db.session,
            "transfer",
            {
                "sourceLocation": "WH1-STOCK",
                "destinationLocation": ids.stock,
                "products": [{"product": ids.widget, "requestedQuantity": "1"}],
            },
            admin,
        )


def test_transfer_with_insufficient_source_fails(ctx, ids, admin):
    receive(ids, admin, 5)
    doc = create_document(
        db.session,
        "transfer",
        {
            "sourceLocation": "WH1-STOCK",
            "destinationLocation": "WH1-RACK-B",
            "products": [{"product": ids.widget, "requestedQuantity": "6"}],
        },
        admin,
    )
    db.session.commit()

    with pytest.raises(InsufficientStock):
        validate_document(db.session, "transfer", doc.id, admin)
    db.session.rollback()

    assert stock_at(db.session, product_id=ids.widget, location_id=ids.stock) == Decimal("5")
    assert stock_at(db.session, product_id=ids.widget, location_id=ids.rack_b) == 0


# -------------------------
# Adjustment
# -------------------------
def adjustment_payload(ids, counted, reason="damage"):
    return {
        "location": "WH1-STOCK",
        "reason": reason,
        "products": [{"product": ids.widget, "countedQuantity": str(counted)}],
    }


def test_adjustment_negative_difference(ctx, ids, admin):
    receive(ids, admin, 100)
    doc = create_document(db.session, "adjustment", adjustment_payload(ids, 92), admin)

    line = doc.lines[0]
    assert Decimal(line.system_quantity) == Decimal("100")
    assert Decimal(line.difference) == Decimal("-8")

    doc, moves = validate_document(db.session, "adjustment", doc.id, admin)
    db.session.commit()

    assert doc.reference == "ADJ000001"
    assert doc.status == DocumentStatus.DONE
    assert widget_stock(ids) == Decimal("92")
    assert len(moves) == 1
    assert Decimal(moves[0].quantity) == Decimal("8")
    assert moves[0].source_location_id == ids.stock
    assert moves[0].destination_location_id is None
    assert "damage" in moves[0].notes


def test_adjustment_positive_difference(ctx, ids, admin):
    receive(ids, admin, 10)
    doc = create_document(db.session, "adjustment", adjustment_payload(ids, 13, reason="other"), admin)
    _, moves = validate_document(db.session, "adjustment", doc.id, admin)
    db.session.commit()

    assert widget_stock(ids) == Decimal("13")
    assert moves[0].destination_location_id == ids.stock
    assert Decimal(moves[0].quantity) == Decimal("3")


def test_adjustment_without_difference_emits_no_move(ctx, ids, admin):
    receive(ids, admin, 100)
    doc = create_document(db.session, "adjustment", adjustment_payload(ids, 100), admin)
    doc, moves = validate_document(db.session, "adjustment", doc.id, admin)
    db.session.commit()

    assert doc.status == DocumentStatus.DONE
    assert moves == []
    assert widget_stock(ids) == Decimal("100")
    assert moves_for(DocumentType.ADJUSTMENT, doc.id) == []


def test_adjustment_ignores_client_difference(ctx, ids, admin):
    receive(ids, admin, 10)
    payload = adjustment_payload(ids, 7)
    payload["products"][0].update(systemQuantity="500", difference="99")
    doc = create_document(db.session, "adjustment", payload, admin)
    db.session.flush()

    line = db.session.query(AdjustmentLine).filter_by(adjustment_id=doc.id).one()
    assert Decimal(line.system_quantity) == Decimal("10")
    assert Decimal(line.difference) == Decimal("-3")


def test_adjustment_override_keeps_creation_snapshot(ctx, ids, admin):
    receive(ids, admin, 10)
    doc = create_document(db.session, "adjustment", adjustment_payload(ids, 10), admin)
    db.session.commit()
    receive(ids, admin, 5)

    doc, moves = validate_document(
        db.session, "adjustment", doc.id, admin,
        overrides=[{"product": ids.widget, "countedQuantity": "12"}],
    )
    db.session.commit()

    assert Decimal(doc.lines[0].system_quantity) == Decimal("10")
    assert Decimal(doc.lines[0].difference) == Decimal("2")
    assert widget_stock(ids) == Decimal("17")


def test_adjustment_rejects_unknown_reason(ctx, ids, admin):
    with pytest.raises(ValidationError):
        create_document(db.session, "adjustment", adjustment_payload(ids, 1, reason="magic"), admin)


# -------------------------
# State machine
# -------------------------
def test_second_validation_is_rejected(ctx, ids, admin):
    doc = create_document(db.session, "receipt", receipt_payload(ids, 50), admin)
    validate_document(db.session, "receipt", doc.id, admin)
    db.session.commit()

    with pytest.raises(AlreadyValidated):
        validate_document(db.session, "receipt", doc.id, admin)
    db.session.rollback()

    assert widget_stock(ids) == Decimal("50")
    assert len(moves_for(DocumentType.RECEIPT, doc.id)) == 1


def test_validate_unknown_document(ctx, ids, admin):
    with pytest.raises(NotFound):
        validate_document(db.session, "receipt", 999, admin)


def test_cancelled_document_cannot_be_validated(ctx, ids, admin):
    doc = create_document(db.session, "receipt", receipt_payload(ids, 5), admin)
    doc.status = DocumentStatus.CANCELLED
    db.session.commit()

    with pytest.raises(ValidationError):
        validate_document(db.session, "receipt", doc.id, admin)


@pytest.mark.parametrize("status", [DocumentStatus.WAITING, DocumentStatus.READY])
def test_only_draft_documents_can_be_validated(ctx, ids, admin, status):
    doc = create_document(db.session, "receipt", receipt_payload(ids, 5), admin)
    doc.status = status
    db.session.commit()

    with pytest.raises(ValidationError):
        validate_document(db.session, "receipt", doc.id, admin)
    db.session.rollback()

    assert db.session.get(Receipt, doc.id).status == status
    assert total_stock(db.session, ids.widget) == 0


# -------------------------
# Creation rules
# -------------------------
@pytest.mark.parametrize(
    "payload",
    [
        {"supplier": {"name": "X"}, "destination": "WH1-STOCK", "products": []},
        {"supplier": {"name": "X"}, "destination": "NOWHERE", "products": [{"product": 1, "orderedQuantity": "1"}]},
        {"supplier": {"name": ""}, "destination": "WH1-STOCK", "products": [{"product": 1, "orderedQuantity": "1"}]},
        {"supplier": {"name": "X"}, "destination": "WH1-STOCK", "products": [{"product": 1, "orderedQuantity": "-1"}]},
        {"supplier": {"name": "X"}, "destination": "WH1-STOCK", "products": [{"product": 1}]},
        {"supplier": {"name": "X"}, "destination": "WH1-STOCK", "products": [{"product": "NOPE", "orderedQuantity": "1"}]},
    ],
)
def test_invalid_receipts_are_rejected(ctx, ids, admin, payload):
    with pytest.raises(ValidationError):
        create_document(db.session, "receipt", payload, admin)


def test_inactive_product_is_rejected(ctx, ids, admin):
    db.session.get(Product, ids.gadget).is_active = False
    db.session.flush()

    with pytest.raises(ValidationError):
        create_document(db.session, "receipt", receipt_payload(ids, 1, product=ids.gadget), admin)


def test_list_and_get_documents(ctx, ids, admin):
    first = create_document(db.session, "receipt", receipt_payload(ids, 1), admin)
    create_document(db.session, "receipt", receipt_payload(ids, 2), admin)
    validate_document(db.session, "receipt", first.id, admin)
    db.session.commit()

    docs, count, pages = list_documents(db.session, "receipt", page=1, limit=10)
    assert count == 2 and pages == 1
    assert {d.reference for d in docs} == {"RCP000001", "RCP000002"}

    done, count, _ = list_documents(db.session, "receipt", status=DocumentStatus.DONE)
    assert count == 1 and done[0].id == first.id

    assert get_document(db.session, "receipt", first.id).reference == "RCP000001"
    with pytest.raises(NotFound):
        get_document(db.session, "receipt", 999)

    assert db.session.query(Receipt).count() == 2
