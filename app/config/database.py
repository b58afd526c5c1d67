from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from app.config.settings import get_database_url
import logging

logger = logging.getLogger("db")

# Base única para facturas, archivos e historial
Base = declarative_base()


def _habilitar_foreign_keys(dbapi_connection, connection_record):
    """SQLite no aplica ON DELETE CASCADE si no se activa el pragma por conexión."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def crear_engine(url_str: str) -> Engine:
    """Crea el engine para la URL indicada.

    SQLite se usa en desarrollo y en tests: se desactiva el chequeo de hilo
    (FastAPI atiende endpoints síncronos en un threadpool) y, para bases en
    memoria, se comparte una única conexión con StaticPool.
    """
    url = make_url(url_str)
    if url.get_backend_name() == "sqlite":
        kwargs = {"connect_args": {"check_same_thread": False}}
        if not url.database or url.database == ":memory:":
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url_str, **kwargs)
        event.listen(engine, "connect", _habilitar_foreign_keys)
        return engine

    return create_engine(
        url_str,
        pool_size=5,            # Pool pequeño para evitar conexiones colgadas
        max_overflow=5,
        pool_timeout=30,
        pool_recycle=300,       # Reciclar conexiones cada 5 minutos
        pool_pre_ping=True,     # Verificar conexiones antes de usar
        echo=False,
    )


@lru_cache()
def get_engine() -> Engine:
    """Engine de la BD de facturas (se crea en el primer uso, no al importar)."""
    engine = crear_engine(get_database_url())
    logger.info(f"Engine de facturas creado para {engine.url.render_as_string(hide_password=True)}")
    return engine


@lru_cache()
def get_session_factory() -> sessionmaker:
    return sessionmaker(bind=get_engine(), autoflush=False)


def init_db(engine: Engine) -> None:
    """Crea las tablas de facturas si no existen.

    Importa los modelos para registrarlos en Base.metadata antes de create_all.
    """
    from app.domain.models import factura, historial  # noqa: F401

    Base.metadata.create_all(bind=engine)
