"""
Selección del backend de facturas.

Se resuelve una sola vez al arrancar: con SKIP_DB_INIT activo se usa el
repositorio en memoria, si no el repositorio SQL sobre la BD configurada.
"""
import logging
from typing import Optional

from app.config.database import get_session_factory
from app.config.settings import get_skip_db
from app.domain.ports.repositorio_facturas import RepositorioFacturas
from app.infrastructure.repositorio_facturas_memoria import RepositorioFacturasMemoria
from app.infrastructure.repositorio_facturas_sql import RepositorioFacturasSQL

logger = logging.getLogger("facturas")


def crear_repositorio_facturas(skip_db: Optional[bool] = None) -> RepositorioFacturas:
    if skip_db is None:
        skip_db = get_skip_db()
    if skip_db:
        logger.info("SKIP_DB_INIT activo: corriendo en modo sin base de datos")
        return RepositorioFacturasMemoria()
    return RepositorioFacturasSQL(get_session_factory())
