from datetime import datetime

from . import db


class DocumentSequence(db.Model):
    """
    Contador por prefijo (RCP, DEL, TRF, ADJ) para generar referencias.
    La fila se bloquea (SELECT ... FOR UPDATE) al pedir el siguiente valor,
    así dos altas simultáneas nunca reciben el mismo número.
    """
    __tablename__ = "document_sequences"

    id = db.Column(db.Integer, primary_key=True)

    prefix = db.Column(db.String(10), nullable=False, unique=True)
    last_value = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<DocumentSequence {self.prefix}={self.last_value}>"
