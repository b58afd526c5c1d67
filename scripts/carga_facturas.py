#!/usr/bin/env python3
"""Script CLI para cargar facturas de prueba (guías ST-) o limpiarlas."""

from __future__ import annotations

import argparse
import logging
import random
import sys
from datetime import date, timedelta
from pathlib import Path

from dotenv import load_dotenv


def _configure_paths() -> None:
    """Añade la raíz del backend al `sys.path` para importar `app.*`."""
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_configure_paths()

from app.config.database import get_engine  # noqa: E402
from app.config.settings import get_skip_db  # noqa: E402
from app.domain.constants import CLIENTES_NAMES, ESTADOS_FACTURA  # noqa: E402
from app.domain.exceptions import FacturaError  # noqa: E402
from app.domain.models.filtros import crear_filtros  # noqa: E402
from app.infrastructure.database_migrations import asegurar_esquema  # noqa: E402
from app.infrastructure.fabrica_repositorios import crear_repositorio_facturas  # noqa: E402

CONDUCTORES = ["Juan Pérez", "María Soto", "Pedro Rojas", "Ana Muñoz"]
CAMIONES = ["AB-1234", "CD-5678", "EF-9012"]
LOCALES = ["Local Centro", "Local Norte", "Local Sur", "Bodega Maipú"]
CARGAS = ["seco", "refrigerado", "congelado"]
DIAS = ["Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado", "Domingo"]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crea facturas sintéticas para pruebas de carga o elimina las creadas antes."
    )
    parser.add_argument(
        "cantidad",
        type=int,
        nargs="?",
        default=100,
        help="Cantidad de facturas a crear (por defecto 100).",
    )
    parser.add_argument(
        "--prefijo",
        dest="prefijo",
        default="ST-",
        help="Prefijo de las guías generadas; también se usa para limpiar.",
    )
    parser.add_argument(
        "--limpiar",
        action="store_true",
        help="Eliminar las facturas cuya guía u otro texto contenga el prefijo (no crea nada).",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default="INFO",
        help="Nivel de logging (DEBUG, INFO, WARNING, ERROR).",
    )
    return parser.parse_args()


def factura_sintetica(indice: int, prefijo: str, hoy: date) -> dict:
    fecha = hoy - timedelta(days=random.randint(0, 30))
    return {
        "cliente": random.choice(list(CLIENTES_NAMES)),
        "fecha": fecha.isoformat(),
        "dia": DIAS[fecha.weekday()],
        "conductor_xp": random.choice(CONDUCTORES),
        "camion": random.choice(CAMIONES),
        "vueltas": random.randint(1, 4),
        "guia": f"{prefijo}{indice:06d}",
        "local": random.choice(LOCALES),
        "kg": round(random.uniform(5, 1500), 3),
        "carga": random.choice(CARGAS),
        "estado": random.choice(ESTADOS_FACTURA + (None,)),
    }


def main() -> int:
    load_dotenv()
    args = parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    if get_skip_db():
        logging.warning("SKIP_DB_INIT activo: las facturas quedan en memoria y se pierden al terminar")
    else:
        asegurar_esquema(get_engine())
    repo = crear_repositorio_facturas()

    try:
        if args.limpiar:
            eliminadas, archivos = repo.eliminar_por_filtros(crear_filtros(q=args.prefijo))
            logging.info("Facturas eliminadas: %s (archivos asociados: %s)", eliminadas, len(archivos))
            return 0

        hoy = date.today()
        creadas = 0
        for indice in range(1, args.cantidad + 1):
            repo.crear(factura_sintetica(indice, args.prefijo, hoy))
            creadas += 1
            if creadas % 100 == 0:
                logging.info("Creadas %s/%s", creadas, args.cantidad)
        logging.info("Facturas creadas: %s", creadas)
        return 0
    except FacturaError:
        logging.exception("Error en la carga de facturas")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
