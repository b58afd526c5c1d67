"""
Módulo para gestión de migraciones y creación de tablas de base de datos.

Crea las tablas de facturas si faltan y agrega columnas nuevas a bases
creadas con versiones anteriores. En producción conviene un sistema formal
de migraciones; esto permite levantar el entorno sin fricción.
"""
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
import logging

from app.config.database import init_db

logger = logging.getLogger("db.migrations")

# Columnas agregadas después de la primera versión de la tabla facturas
COLUMNAS_AGREGADAS = {
    "estado": "VARCHAR(50)",
    "guia_num": "BIGINT",
}


def migrate_facturas_columns(engine: Engine) -> list:
    """Añade a `facturas` las columnas que falten. Retorna las agregadas."""
    existentes = {c["name"] for c in inspect(engine).get_columns("facturas")}
    faltantes = [nombre for nombre in COLUMNAS_AGREGADAS if nombre not in existentes]
    if not faltantes:
        return []
    with engine.begin() as conn:
        for nombre in faltantes:
            conn.execute(text(f"ALTER TABLE facturas ADD COLUMN {nombre} {COLUMNAS_AGREGADAS[nombre]}"))
            logger.info(f"Columna facturas.{nombre} agregada")
    return faltantes


def asegurar_esquema(engine: Engine) -> None:
    """Crea tablas e índices faltantes y completa columnas nuevas."""
    init_db(engine)
    migrate_facturas_columns(engine)
    logger.info("Esquema de facturas verificado")
