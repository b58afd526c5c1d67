"""
Vinculación de archivos adjuntos a una factura en su creación.

Los archivos ya fueron validados y guardados por el almacén de archivos;
aquí solo se valida el descriptor (nombre, tipo, tamaño) y el máximo por
factura, y se arman las filas factura_id -> archivo.
"""
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from app.domain.constants import MAX_ARCHIVOS_POR_FACTURA
from app.domain.exceptions import ValidationError


class ArchivoAdjunto(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    mimetype: str = Field(..., min_length=1, max_length=100)
    size: int = Field(..., ge=0)


def validar_archivos(archivos: Optional[Iterable[Any]]) -> List[Dict[str, Any]]:
    """Valida los descriptores y el máximo de adjuntos por factura."""
    lista = list(archivos or [])
    if len(lista) > MAX_ARCHIVOS_POR_FACTURA:
        raise ValidationError(
            f"Máximo {MAX_ARCHIVOS_POR_FACTURA} archivos por factura (recibidos {len(lista)})",
            field="archivos",
        )
    validados = []
    for archivo in lista:
        try:
            adjunto = archivo if isinstance(archivo, ArchivoAdjunto) else ArchivoAdjunto.model_validate(archivo)
        except PydanticValidationError as e:
            raise ValidationError("Descriptor de archivo adjunto inválido", field="archivos") from e
        validados.append(adjunto.model_dump())
    return validados


def vincular_archivos(factura_id: int, archivos: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Filas de factura_archivos para la factura recién creada."""
    return [{"factura_id": factura_id, **archivo} for archivo in archivos]
