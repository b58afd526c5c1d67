"""
Utilidades para formatear datos de clientes.
"""
from typing import Any

from app.domain.constants import CLIENTES_NAMES


def nombre_cliente(cliente: Any) -> str:
    """
    Nombre legible de un cliente para exportaciones.

    Args:
        cliente: Código numérico del cliente (int o str)

    Returns:
        Nombre conocido o el código tal cual si no hay nombre registrado
    """
    if cliente is None:
        return ""
    try:
        return CLIENTES_NAMES.get(int(cliente), str(cliente))
    except (TypeError, ValueError):
        return str(cliente)
