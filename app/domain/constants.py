"""
Constantes del dominio de la aplicación.
"""
from typing import Dict, Tuple

# Estados habituales de una factura (la BD no los restringe)
ESTADOS_FACTURA: Tuple[str, ...] = (
    "entregado sin novedad",
    "entregado con detalle",
    "rechazado",
    "reprogramado",
)
PREFIJO_ESTADO_ENTREGADO = "entregado"

# Campos de negocio de la factura (todos salvo id y created_at).
# Agregar un campo nuevo a la factura exige agregarlo aquí para que se audite.
CAMPOS_AUDITABLES: Tuple[str, ...] = (
    "cliente",
    "dia",
    "fecha",
    "conductor_xp",
    "camion",
    "vueltas",
    "guia",
    "local",
    "kg",
    "carga",
    "observaciones",
    "estado",
)
CAMPOS_TEXTO: Tuple[str, ...] = (
    "dia",
    "conductor_xp",
    "camion",
    "guia",
    "local",
    "carga",
    "observaciones",
    "estado",
)
CAMPOS_OBLIGATORIOS: Tuple[str, ...] = ("cliente", "fecha")

# Columnas sobre las que busca el filtro libre `q`
CAMPOS_BUSQUEDA: Tuple[str, ...] = (
    "guia",
    "conductor_xp",
    "camion",
    "local",
    "carga",
    "observaciones",
)

# Nombres alternativos aceptados en los payloads (formulario del frontend)
ALIAS_CAMPOS: Dict[str, str] = {
    "conductorXp": "conductor_xp",
}

# Rango de SMALLINT
CLIENTE_MIN = 1
CLIENTE_MAX = 32767

# Límites de columnas numéricas: vueltas INTEGER, kg NUMERIC(12,3)
VUELTAS_MAX = 2 ** 31 - 1
KG_MAX_ENTEROS = 9

# Archivos adjuntos
MAX_ARCHIVOS_POR_FACTURA = 5
TIPOS_ARCHIVO_PERMITIDOS: Tuple[str, ...] = (
    "image/png",
    "image/jpeg",
    "application/pdf",
)

# Ordenamientos aceptados por el listado: nombre -> (campo, descendente)
ORDENES_FACTURA: Dict[str, Tuple[str, bool]] = {
    "guia_asc": ("guia_num", False),
    "guia_desc": ("guia_num", True),
    "kg_asc": ("kg", False),
    "kg_desc": ("kg", True),
    "vueltas_asc": ("vueltas", False),
    "vueltas_desc": ("vueltas", True),
    "fecha_asc": ("fecha", False),
    "fecha_desc": ("fecha", True),
}

# Nombres de clientes para exportaciones
CLIENTES_NAMES: Dict[int, str] = {
    1: "Brival",
    2: "Nutrisco",
    3: "Carnicero",
    4: "Gourmet",
}

# Valores por defecto
DEFAULT_PAGINATION_LIMIT = 50
MAX_PAGINATION_LIMIT = 200
