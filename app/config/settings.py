import os
from functools import lru_cache
from dotenv import load_dotenv

# Carga variables desde .env si existe
load_dotenv()

# Valores por defecto seguros para desarrollo (evitan fallos al importar)
DEFAULT_DATABASE_URL = os.getenv("DEFAULT_SQLALCHEMY_URL_FACTURAS", "sqlite:///./facturas.db")
DEFAULT_CORS_ORIGIN = "http://localhost:5173"
DEFAULT_UPLOADS_DIR = "./uploads"
DEFAULT_MAX_UPLOAD_BYTES = 15 * 1024 * 1024
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_PORT = 4000

_VALORES_VERDADEROS = {"1", "true", "yes", "si", "sí"}


def _get_first_env(keys: list[str], default: str) -> str:
    """Devuelve el primer valor definido entre varias claves de entorno."""
    for k in keys:
        v = os.getenv(k)
        if v:
            return v
    return default


@lru_cache()
def get_database_url() -> str:
    """Obtiene la URL de conexión para la BD de facturas.

    Acepta múltiples nombres de variables para compatibilidad:
    - DATABASE_URL (preferida)
    - DATABASE_URL_FACTURAS
    """
    return _get_first_env([
        "DATABASE_URL",
        "DATABASE_URL_FACTURAS",
    ], DEFAULT_DATABASE_URL)


@lru_cache()
def get_skip_db() -> bool:
    """True si la API debe correr sin base de datos (almacenamiento en memoria).

    Se activa con SKIP_DB_INIT=1 (o true/yes). Los datos se pierden al reiniciar.
    """
    valor = _get_first_env(["SKIP_DB_INIT"], "0")
    return valor.strip().lower() in _VALORES_VERDADEROS


@lru_cache()
def get_cors_origins() -> list[str]:
    valor = _get_first_env(["CORS_ORIGIN", "CORS_ORIGINS"], DEFAULT_CORS_ORIGIN)
    return [o.strip() for o in valor.split(",") if o.strip()]


@lru_cache()
def get_uploads_dir() -> str:
    return _get_first_env(["UPLOADS_DIR"], DEFAULT_UPLOADS_DIR)


@lru_cache()
def get_max_upload_bytes() -> int:
    try:
        return int(_get_first_env([
            "MAX_UPLOAD_BYTES",
        ], str(DEFAULT_MAX_UPLOAD_BYTES)))
    except ValueError:
        return DEFAULT_MAX_UPLOAD_BYTES


@lru_cache()
def get_log_level() -> str:
    return _get_first_env(["LOG_LEVEL"], DEFAULT_LOG_LEVEL).upper()


@lru_cache()
def get_port() -> int:
    try:
        return int(_get_first_env(["PORT"], str(DEFAULT_PORT)))
    except ValueError:
        return DEFAULT_PORT
