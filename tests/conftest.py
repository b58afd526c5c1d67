import os

import pytest
from sqlalchemy.orm import sessionmaker

# La app de tests arranca sin BD; cada test recibe su propio repositorio
os.environ.setdefault("SKIP_DB_INIT", "1")

from app.config.database import crear_engine, init_db  # noqa: E402
from app.infrastructure.repositorio_facturas_memoria import RepositorioFacturasMemoria  # noqa: E402
from app.infrastructure.repositorio_facturas_sql import RepositorioFacturasSQL  # noqa: E402


@pytest.fixture
def repo_memoria():
    return RepositorioFacturasMemoria()


@pytest.fixture
def repo_sql():
    engine = crear_engine("sqlite://")
    init_db(engine)
    yield RepositorioFacturasSQL(sessionmaker(bind=engine, autoflush=False))
    engine.dispose()


@pytest.fixture(params=["memoria", "sql"])
def repo(request):
    """Corre el test contra ambos backends."""
    return request.getfixturevalue(f"repo_{request.param}")


@pytest.fixture
def factura_base():
    return {
        "cliente": "2",
        "fecha": "2024-05-10",
        "dia": "Viernes",
        "conductorXp": "Juan Pérez",
        "camion": "AB-1234",
        "vueltas": "2",
        "guia": "A-1",
        "local": "Local Centro",
        "kg": "120,5",
        "carga": "refrigerado",
    }
