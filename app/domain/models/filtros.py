from datetime import date
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from app.domain.constants import ORDENES_FACTURA
from app.domain.exceptions import ValidationError


class FiltrosFactura(BaseModel):
    """Filtros del listado de facturas. Todos opcionales, se combinan con AND.

    Un filtro ausente (o enviado como cadena vacía) no restringe nada.
    `fecha` y el rango `desde`/`hasta` son independientes y se aplican juntos.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    cliente: Optional[int] = None
    desde: Optional[date] = Field(None, alias="from")
    hasta: Optional[date] = Field(None, alias="to")
    fecha: Optional[date] = None
    guia: Optional[str] = None
    q: Optional[str] = None
    sort: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _vacio_es_ausente(cls, valor: Any) -> Any:
        if isinstance(valor, str) and valor == "":
            return None
        return valor

    @field_validator("sort")
    @classmethod
    def _orden_conocido(cls, valor: Optional[str]) -> Optional[str]:
        if valor is not None and valor not in ORDENES_FACTURA:
            raise ValueError(f"orden no soportado: {valor}")
        return valor

    def tiene_seleccion(self) -> bool:
        """True si al menos un filtro restringe filas (el orden no cuenta)."""
        return any(
            v is not None
            for v in (self.cliente, self.desde, self.hasta, self.fecha, self.guia, self.q)
        )


def crear_filtros(**parametros: Any) -> FiltrosFactura:
    """Construye FiltrosFactura desde parámetros crudos (query string, CLI).

    Acepta `from`/`to` o `desde`/`hasta`. Traduce errores de pydantic a
    ValidationError del dominio.
    """
    try:
        return FiltrosFactura.model_validate(parametros)
    except PydanticValidationError as e:
        error = e.errors()[0]
        campo = str(error["loc"][0]) if error.get("loc") else None
        raise ValidationError(f"Filtro inválido en {campo}: {error['msg']}", field=campo) from e
