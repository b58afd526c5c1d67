"""
Traducción de FiltrosFactura a cada backend.

Este módulo construye, a partir de un mismo FiltrosFactura, las condiciones
SQLAlchemy del repositorio SQL y el predicado del repositorio en memoria.
Ambas versiones deben seleccionar exactamente las mismas filas.
"""
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.sql.elements import ColumnElement

from app.domain.constants import (
    CAMPOS_BUSQUEDA,
    DEFAULT_PAGINATION_LIMIT,
    MAX_PAGINATION_LIMIT,
    ORDENES_FACTURA,
)
from app.domain.models.factura import Factura
from app.domain.models.filtros import FiltrosFactura
from app.utils.factura_helpers import a_entero, extraer_numero_guia

Registro = Dict[str, Any]


def normalizar_paginacion(limit: Any = None, offset: Any = None) -> Tuple[int, int]:
    """
    Normaliza limit/offset del listado.

    limit ausente o <= 0 usa el valor por defecto y nunca supera
    MAX_PAGINATION_LIMIT. offset ausente vale 0; negativo es un error.
    """
    limite = a_entero(limit, "limit")
    if limite is None or limite <= 0:
        limite = DEFAULT_PAGINATION_LIMIT
    desplazamiento = a_entero(offset, "offset", minimo=0) or 0
    return min(limite, MAX_PAGINATION_LIMIT), desplazamiento


def build_condiciones_sql(filtros: FiltrosFactura) -> List[ColumnElement]:
    """
    Construye las condiciones WHERE (combinadas con AND por el llamador).

    Args:
        filtros: Filtros ya validados

    Returns:
        Lista de expresiones SQLAlchemy
    """
    conds: List[ColumnElement] = []
    if filtros.cliente is not None:
        conds.append(Factura.cliente == filtros.cliente)
    if filtros.desde is not None:
        conds.append(Factura.fecha >= filtros.desde)
    if filtros.hasta is not None:
        conds.append(Factura.fecha <= filtros.hasta)
    if filtros.fecha is not None:
        conds.append(Factura.fecha == filtros.fecha)
    if filtros.guia is not None:
        conds.append(func.lower(Factura.guia) == filtros.guia.lower())
    if filtros.q is not None:
        needle = filtros.q.lower()
        # autoescape: % y _ del texto buscado se tratan como literales
        conds.append(or_(*[
            func.lower(func.coalesce(getattr(Factura, campo), "")).contains(needle, autoescape=True)
            for campo in CAMPOS_BUSQUEDA
        ]))
    return conds


def build_orden_sql(sort: Optional[str]) -> List[ColumnElement]:
    """
    Construye el ORDER BY. Por defecto created_at descendente.

    Los NULL van al final en ambos sentidos; el desempate es id descendente.
    """
    if not sort:
        return [Factura.created_at.desc(), Factura.id.desc()]
    campo, descendente = ORDENES_FACTURA[sort]
    columna = getattr(Factura, campo)
    orden = columna.desc() if descendente else columna.asc()
    return [orden.nulls_last(), Factura.id.desc()]


def build_predicado(filtros: FiltrosFactura) -> Callable[[Registro], bool]:
    """Predicado equivalente a build_condiciones_sql para registros en memoria."""
    desde = filtros.desde.isoformat() if filtros.desde else None
    hasta = filtros.hasta.isoformat() if filtros.hasta else None
    fecha = filtros.fecha.isoformat() if filtros.fecha else None
    guia = filtros.guia.lower() if filtros.guia is not None else None
    needle = filtros.q.lower() if filtros.q is not None else None

    def _cumple(registro: Registro) -> bool:
        if filtros.cliente is not None and registro["cliente"] != filtros.cliente:
            return False
        # fechas en formato ISO: la comparación de strings respeta el orden
        if desde is not None and registro["fecha"] < desde:
            return False
        if hasta is not None and registro["fecha"] > hasta:
            return False
        if fecha is not None and registro["fecha"] != fecha:
            return False
        if guia is not None and (registro.get("guia") is None or registro["guia"].lower() != guia):
            return False
        if needle is not None:
            valores = [(registro.get(campo) or "").lower() for campo in CAMPOS_BUSQUEDA]
            if not any(needle in valor for valor in valores):
                return False
        return True

    return _cumple


def _valor_orden(campo: str) -> Callable[[Registro], Any]:
    if campo == "guia_num":
        return lambda registro: extraer_numero_guia(registro.get("guia"))
    return lambda registro: registro.get(campo)


def ordenar_registros(registros: List[Registro], sort: Optional[str]) -> List[Registro]:
    """Mismo orden que build_orden_sql, sobre registros en memoria."""
    por_id = sorted(registros, key=lambda r: r["id"], reverse=True)
    if not sort:
        # sorted es estable: a igual created_at queda id descendente
        return sorted(por_id, key=lambda r: r["created_at"], reverse=True)
    campo, descendente = ORDENES_FACTURA[sort]
    valor = _valor_orden(campo)
    con_valor = [r for r in por_id if valor(r) is not None]
    sin_valor = [r for r in por_id if valor(r) is None]
    return sorted(con_valor, key=valor, reverse=descendente) + sin_valor
