"""Excepciones de negocio del ciclo de vida de facturas."""

from typing import Optional


class FacturaError(Exception):
    """Base para errores del almacenamiento de facturas."""


class ValidationError(FacturaError):
    """Datos obligatorios ausentes o mal formados. Se lanza antes de escribir."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message)


class NotFoundError(FacturaError):
    """La factura pedida no existe."""

    def __init__(self, factura_id: int) -> None:
        self.factura_id = factura_id
        super().__init__(f"Factura {factura_id} no encontrada")


class StoreError(FacturaError):
    """Falla del backend (conexión, restricción no atribuible al cliente)."""
