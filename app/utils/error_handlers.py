"""
Utilidades para manejo consistente de errores en controladores.
"""
from fastapi import HTTPException, status
from typing import Optional
import logging

from app.domain.exceptions import FacturaError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def handle_error(
    error: Exception,
    operation: str,
    default_message: str = "Error interno del servidor",
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    log_error: bool = True
) -> HTTPException:
    """
    Maneja errores de forma consistente y construye la HTTPException.

    Args:
        error: Excepción capturada
        operation: Descripción de la operación que falló
        default_message: Mensaje por defecto si no se puede extraer del error
        status_code: Código HTTP de error
        log_error: Si se debe registrar el error en logs

    Returns:
        HTTPException para lanzar
    """
    if log_error:
        logger.error(f"Error en {operation}: {str(error)}", exc_info=True)

    detail = str(error) if str(error) else default_message
    return HTTPException(status_code=status_code, detail=detail)


def handle_validation_error(
    message: str,
    field: Optional[str] = None
) -> HTTPException:
    """
    Maneja errores de validación.

    Args:
        message: Mensaje de error
        field: Campo que falló la validación (opcional)

    Returns:
        HTTPException con código 400
    """
    detail = f"Error de validación en {field}: {message}" if field else message
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail
    )


def traducir_error(error: FacturaError, operation: str) -> HTTPException:
    """
    Traduce los errores del repositorio de facturas a respuestas HTTP.

    ValidationError -> 400, NotFoundError -> 404, el resto (StoreError) -> 500 con log.
    """
    if isinstance(error, ValidationError):
        return handle_validation_error(str(error), error.field)
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    return handle_error(error, operation, f"Error al {operation}")
