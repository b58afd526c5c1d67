"""
Auditoría de cambios de facturas.

Calcula el diff mínimo por campo entre la versión anterior y la nueva de
una factura. Solo se comparan los campos de CAMPOS_AUDITABLES.
"""
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping

from app.domain.constants import CAMPOS_AUDITABLES

Cambios = Dict[str, Dict[str, Any]]


def _mismo_kg(anterior: Any, nuevo: Any) -> bool:
    if anterior is None or nuevo is None:
        return anterior is nuevo
    return Decimal(str(anterior)) == Decimal(str(nuevo))


def _mismo_valor(anterior: Any, nuevo: Any) -> bool:
    return anterior == nuevo


_COMPARADORES: Dict[str, Callable[[Any, Any], bool]] = {
    "kg": _mismo_kg,
}


def fusionar_cambios(previo: Mapping[str, Any], cambios: Mapping[str, Any]) -> Dict[str, Any]:
    """Estado nuevo de los campos auditables tras una actualización parcial.

    Un campo ausente en `cambios` conserva el valor previo.
    """
    nuevo = {campo: previo.get(campo) for campo in CAMPOS_AUDITABLES}
    for campo in CAMPOS_AUDITABLES:
        if campo in cambios:
            nuevo[campo] = cambios[campo]
    return nuevo


def calcular_cambios(previo: Mapping[str, Any], nuevo: Mapping[str, Any]) -> Cambios:
    """Devuelve {campo: {"from": anterior, "to": nuevo}} para cada campo distinto.

    Los campos que no aparecen en `nuevo` se consideran sin cambio. Un diff
    vacío significa que no hay nada que registrar en el historial.
    """
    diff: Cambios = {}
    for campo in CAMPOS_AUDITABLES:
        if campo not in nuevo:
            continue
        anterior = previo.get(campo)
        actual = nuevo[campo]
        iguales = _COMPARADORES.get(campo, _mismo_valor)
        if not iguales(anterior, actual):
            diff[campo] = {"from": anterior, "to": actual}
    return diff


def aplicar_cambios(registro: Mapping[str, Any], cambios: Cambios) -> Dict[str, Any]:
    """Aplica un diff registrado sobre una copia del registro previo."""
    resultado = dict(registro)
    for campo, cambio in cambios.items():
        resultado[campo] = cambio["to"]
    return resultado
