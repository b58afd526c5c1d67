from datetime import datetime
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer
from sqlalchemy.dialects.postgresql import JSONB
from app.config.database import Base


class FacturaHistorial(Base):
    __tablename__ = "factura_historial"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Sin relación ORM: el borrado en cascada lo resuelve la FK
    factura_id = Column(
        Integer,
        ForeignKey("facturas.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )

    # {campo: {"from": valor_anterior, "to": valor_nuevo}}, nunca vacío
    changes = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)

    changed_at = Column(DateTime, default=datetime.utcnow, nullable=False)
