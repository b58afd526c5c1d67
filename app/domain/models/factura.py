from datetime import datetime
from sqlalchemy import (
    BigInteger,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from app.config.database import Base


class Factura(Base):
    __tablename__ = "facturas"
    __table_args__ = (
        Index("idx_facturas_fecha", "fecha"),
        Index("idx_facturas_cliente", "cliente"),
        Index("idx_facturas_guia", "guia"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    cliente = Column(SmallInteger, nullable=False)
    dia = Column(String(20), nullable=True)
    fecha = Column(Date, nullable=False)

    # Datos del reparto
    conductor_xp = Column(String(150), nullable=True)
    camion = Column(String(50), nullable=True)
    vueltas = Column(Integer, nullable=True)
    guia = Column(String(100), nullable=True)      # N° de factura/guía, no único
    guia_num = Column(BigInteger, nullable=True)   # dígitos de la guía, solo para ordenar
    local = Column(String(150), nullable=True)
    kg = Column(Numeric(12, 3), nullable=True)
    carga = Column(String(50), nullable=True)      # seco | refrigerado | congelado | ...
    observaciones = Column(Text, nullable=True)
    estado = Column(String(50), nullable=True)     # p.ej. 'entregado sin novedad'

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    archivos = relationship(
        "FacturaArchivo",
        back_populates="factura",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="FacturaArchivo.id",
    )


class FacturaArchivo(Base):
    __tablename__ = "factura_archivos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    factura_id = Column(
        Integer,
        ForeignKey("facturas.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    filename = Column(String(255), nullable=False)
    mimetype = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    factura = relationship("Factura", back_populates="archivos")
