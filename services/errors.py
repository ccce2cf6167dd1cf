"""
Errores del núcleo de inventario.
Cada uno sabe con qué status HTTP se responde (ver app.py).
"""


class InventoryError(Exception):
    status_code = 500
    code = "inventory_error"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"success": False, "message": self.message, "error": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFound(InventoryError):
    status_code = 404
    code = "not_found"


class ValidationError(InventoryError):
    status_code = 400
    code = "validation_error"


class AlreadyValidated(InventoryError):
    status_code = 400
    code = "already_validated"


class InsufficientStock(InventoryError):
    status_code = 400
    code = "insufficient_stock"

    def __init__(self, *, product_id: int, location_id: int, available, requested, product_label: str | None = None):
        label = product_label or f"#{product_id}"
        super().__init__(
            f"Stock insuficiente para {label} en ubicación #{location_id}. "
            f"Disponible={available} requerido={requested}",
            product_id=product_id,
            location_id=location_id,
            available=str(available),
            requested=str(requested),
        )
        self.product_id = product_id
        self.location_id = location_id


class DuplicateReference(InventoryError):
    status_code = 400
    code = "duplicate_reference"


class ImmutableRecordError(InventoryError):
    code = "immutable_record"


class UpstreamServiceError(InventoryError):
    """Fallo del servicio de IA. Nunca se propaga como error del núcleo."""

    status_code = 502
    code = "upstream_unavailable"
