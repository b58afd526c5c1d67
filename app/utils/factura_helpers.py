"""
Utilidades para validar y normalizar datos de facturas.

Ambos repositorios (SQL y memoria) pasan los payloads por estas funciones
antes de escribir, de modo que un mismo input produce el mismo registro.
"""
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from app.domain.constants import (
    ALIAS_CAMPOS,
    CAMPOS_AUDITABLES,
    CAMPOS_OBLIGATORIOS,
    CAMPOS_TEXTO,
    CLIENTE_MAX,
    CLIENTE_MIN,
    KG_MAX_ENTEROS,
    VUELTAS_MAX,
)
from app.domain.exceptions import ValidationError

_ESCALA_KG = Decimal("0.001")
_LIMITE_KG = Decimal(10) ** KG_MAX_ENTEROS
_MAX_BIGINT = 2 ** 63 - 1


def normalizar_nombres(campos: Mapping[str, Any]) -> Dict[str, Any]:
    """Traduce alias del frontend (conductorXp) a nombres de columna.

    Si llegan ambos nombres, gana el de columna.
    """
    resultado: Dict[str, Any] = {}
    for key, value in campos.items():
        destino = ALIAS_CAMPOS.get(key, key)
        if destino != key and destino in campos:
            continue
        resultado[destino] = value
    return resultado


def _a_decimal(valor: Any, campo: str) -> Optional[Decimal]:
    if valor is None:
        return None
    if isinstance(valor, bool):
        raise ValidationError(f"{campo} debe ser numérico", field=campo)
    texto = str(valor).strip()
    if texto == "":
        return None
    if "," in texto and "." not in texto:
        texto = texto.replace(",", ".")
    try:
        numero = Decimal(texto)
    except InvalidOperation:
        raise ValidationError(f"{campo} debe ser numérico", field=campo)
    if not numero.is_finite():
        raise ValidationError(f"{campo} debe ser numérico", field=campo)
    return numero


def a_entero(
    valor: Any,
    campo: str,
    minimo: Optional[int] = None,
    maximo: Optional[int] = None,
) -> Optional[int]:
    """Convierte a int aceptando strings ('3', ' 3 ', '3.0'). Vacío -> None."""
    numero = _a_decimal(valor, campo)
    if numero is None:
        return None
    if numero != numero.to_integral_value():
        raise ValidationError(f"{campo} debe ser un número entero", field=campo)
    entero = int(numero)
    if minimo is not None and entero < minimo:
        raise ValidationError(f"{campo} debe ser mayor o igual a {minimo}", field=campo)
    if maximo is not None and entero > maximo:
        raise ValidationError(f"{campo} debe ser menor o igual a {maximo}", field=campo)
    return entero


def a_kg(valor: Any, campo: str = "kg") -> Optional[float]:
    """Kilos con tres decimales, no negativos y menores a 10^9 (NUMERIC(12,3))."""
    numero = _a_decimal(valor, campo)
    if numero is None:
        return None
    if numero < 0:
        raise ValidationError(f"{campo} no puede ser negativo", field=campo)
    fuera_de_rango = ValidationError(f"{campo} debe ser menor a {_LIMITE_KG:f}", field=campo)
    if numero >= _LIMITE_KG:
        raise fuera_de_rango
    try:
        redondeado = numero.quantize(_ESCALA_KG)
    except InvalidOperation:
        raise fuera_de_rango
    # 999999999.9995 redondea a 10^9
    if redondeado >= _LIMITE_KG:
        raise fuera_de_rango
    return float(redondeado)


def a_fecha_iso(valor: Any, campo: str = "fecha") -> Optional[str]:
    """Normaliza a 'YYYY-MM-DD'. Acepta date, datetime o string ISO."""
    if valor is None:
        return None
    if isinstance(valor, datetime):
        return valor.date().isoformat()
    if isinstance(valor, date):
        return valor.isoformat()
    texto = str(valor).strip()
    if texto == "":
        return None
    for fmt in ("%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"):
        try:
            return datetime.strptime(texto, fmt).date().isoformat()
        except ValueError:
            continue
    raise ValidationError(f"{campo} debe tener formato YYYY-MM-DD", field=campo)


def a_texto(valor: Any) -> Optional[str]:
    if valor is None:
        return None
    texto = str(valor).strip()
    return texto or None


def _normalizar_campo(campo: str, valor: Any) -> Any:
    if campo == "cliente":
        return a_entero(valor, campo, minimo=CLIENTE_MIN, maximo=CLIENTE_MAX)
    if campo == "vueltas":
        return a_entero(valor, campo, minimo=0, maximo=VUELTAS_MAX)
    if campo == "kg":
        return a_kg(valor, campo)
    if campo == "fecha":
        return a_fecha_iso(valor, campo)
    if campo in CAMPOS_TEXTO:
        return a_texto(valor)
    raise KeyError(campo)


def normalizar_alta(campos: Mapping[str, Any]) -> Dict[str, Any]:
    """Valida y normaliza los campos de una factura nueva.

    Devuelve todos los campos auditables (None para los no informados).
    Lanza ValidationError si falta cliente o fecha o si un numérico no lo es.
    """
    campos = normalizar_nombres(campos or {})
    faltantes = [c for c in CAMPOS_OBLIGATORIOS if a_texto(campos.get(c)) is None]
    if faltantes:
        raise ValidationError("cliente y fecha son obligatorios", field=faltantes[0])
    return {campo: _normalizar_campo(campo, campos.get(campo)) for campo in CAMPOS_AUDITABLES}


def normalizar_cambios(campos: Mapping[str, Any]) -> Dict[str, Any]:
    """Valida un payload de actualización parcial.

    Solo devuelve los campos presentes. None equivale a "no informado" y se
    descarta; una cadena vacía limpia el campo (queda None en el resultado).
    Los campos obligatorios no se pueden limpiar.
    """
    resultado: Dict[str, Any] = {}
    for campo, valor in normalizar_nombres(campos or {}).items():
        if campo not in CAMPOS_AUDITABLES or valor is None:
            continue
        normalizado = _normalizar_campo(campo, valor)
        if normalizado is None and campo in CAMPOS_OBLIGATORIOS:
            raise ValidationError(f"{campo} es obligatorio y no puede quedar vacío", field=campo)
        resultado[campo] = normalizado
    return resultado


def extraer_numero_guia(guia: Optional[str]) -> Optional[int]:
    """Valor numérico de los dígitos de la guía ('ST-2024-15' -> 202415)."""
    digitos = re.sub(r"\D", "", guia or "")
    if not digitos:
        return None
    numero = int(digitos)
    return numero if numero <= _MAX_BIGINT else None
