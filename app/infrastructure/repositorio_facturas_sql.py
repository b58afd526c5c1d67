from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple
import logging

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from app.application.auditoria_cambios import calcular_cambios, fusionar_cambios
from app.application.vinculador_archivos import validar_archivos, vincular_archivos
from app.domain.exceptions import FacturaError, NotFoundError, StoreError, ValidationError
from app.domain.models.factura import Factura, FacturaArchivo
from app.domain.models.filtros import FiltrosFactura
from app.domain.ports.repositorio_facturas import RepositorioFacturas
from app.infrastructure.filtros_facturas import (
    build_condiciones_sql,
    build_orden_sql,
    normalizar_paginacion,
)
from app.infrastructure.repositorio_historial import RepositorioHistorial
from app.utils.factura_helpers import extraer_numero_guia, normalizar_alta, normalizar_cambios

logger = logging.getLogger("facturas")


class RepositorioFacturasSQL(RepositorioFacturas):
    """Repositorio durable sobre SQLAlchemy (PostgreSQL en producción, SQLite en desarrollo).

    Abre una sesión por operación. Cada escritura de varias sentencias
    (factura + archivos, factura + historial, borrados) es una transacción.
    """

    def __init__(self, session_factory: sessionmaker):
        self._sesiones = session_factory

    @contextmanager
    def _transaccion(self, operacion: str) -> Iterator[Session]:
        db = self._sesiones()
        try:
            yield db
            db.commit()
        except FacturaError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error de BD al {operacion}: {e}", exc_info=True)
            raise StoreError(f"No se pudo {operacion}") from e
        except Exception as e:
            # errores del driver fuera de SQLAlchemy (p.ej. OverflowError de sqlite3)
            db.rollback()
            logger.error(f"Error del driver al {operacion}: {e}", exc_info=True)
            raise StoreError(f"No se pudo {operacion}") from e
        finally:
            db.close()

    # Alta
    def crear(self, campos: Mapping[str, Any], archivos: Optional[Iterable[Any]] = None) -> int:
        valores = normalizar_alta(campos)
        adjuntos = validar_archivos(archivos)
        with self._transaccion("crear factura") as db:
            factura = Factura(**self._a_columnas(valores))
            db.add(factura)
            db.flush()
            db.add_all([FacturaArchivo(**fila) for fila in vincular_archivos(factura.id, adjuntos)])
            db.flush()
            factura_id = factura.id
        logger.info("Factura %s creada con %s archivo(s)", factura_id, len(adjuntos))
        return factura_id

    # Consultas
    def obtener(self, factura_id: int) -> Dict[str, Any]:
        with self._transaccion("obtener factura") as db:
            return self._to_dict(self._buscar(db, factura_id))

    def listar(
        self,
        filtros: Optional[FiltrosFactura] = None,
        limit: Any = None,
        offset: Any = None,
    ) -> List[Dict[str, Any]]:
        limite, desplazamiento = normalizar_paginacion(limit, offset)
        return self._consultar(filtros or FiltrosFactura(), limite, desplazamiento)

    def exportar(self, filtros: Optional[FiltrosFactura] = None) -> List[Dict[str, Any]]:
        return self._consultar(filtros or FiltrosFactura(), None, 0)

    def _consultar(self, filtros: FiltrosFactura, limite: Optional[int], desplazamiento: int) -> List[Dict[str, Any]]:
        stmt = select(Factura).options(selectinload(Factura.archivos))
        conds = build_condiciones_sql(filtros)
        if conds:
            stmt = stmt.where(and_(*conds))
        stmt = stmt.order_by(*build_orden_sql(filtros.sort))
        if limite is not None:
            stmt = stmt.limit(limite)
        if desplazamiento:
            stmt = stmt.offset(desplazamiento)
        with self._transaccion("listar facturas") as db:
            return [self._to_dict(f) for f in db.execute(stmt).scalars().all()]

    def listar_historial(self, factura_id: int) -> List[Dict[str, Any]]:
        with self._transaccion("obtener historial") as db:
            self._buscar(db, factura_id)
            return RepositorioHistorial(db).listar(factura_id=factura_id)

    def contar_por_estado(self, filtros: Optional[FiltrosFactura] = None) -> Dict[str, int]:
        estado = func.coalesce(Factura.estado, "")
        stmt = select(estado, func.count(Factura.id)).group_by(estado)
        conds = build_condiciones_sql(filtros or FiltrosFactura())
        if conds:
            stmt = stmt.where(and_(*conds))
        with self._transaccion("contar facturas por estado") as db:
            return {valor: cantidad for valor, cantidad in db.execute(stmt).all()}

    # Modificación
    def actualizar(self, factura_id: int, campos: Mapping[str, Any]) -> Dict[str, Any]:
        cambios = normalizar_cambios(campos)
        with self._transaccion("actualizar factura") as db:
            factura = self._buscar(db, factura_id, bloquear=True)
            previo = self._to_dict(factura)
            diff = calcular_cambios(previo, fusionar_cambios(previo, cambios))
            if diff:
                nuevos = self._a_columnas({campo: cambio["to"] for campo, cambio in diff.items()})
                for campo, valor in nuevos.items():
                    setattr(factura, campo, valor)
                RepositorioHistorial(db).registrar_cambios(factura_id=factura_id, changes=diff)
                db.flush()
                logger.info("Factura %s actualizada: %s", factura_id, ", ".join(diff))
            else:
                logger.info("Factura %s sin cambios", factura_id)
            return self._to_dict(factura)

    def eliminar(self, factura_id: int) -> List[str]:
        with self._transaccion("eliminar factura") as db:
            factura = self._buscar(db, factura_id)
            nombres = [a.filename for a in factura.archivos]
            db.delete(factura)
        logger.info("Factura %s eliminada", factura_id)
        return nombres

    def eliminar_por_filtros(self, filtros: FiltrosFactura) -> Tuple[int, List[str]]:
        if not filtros.tiene_seleccion():
            raise ValidationError(
                "Debes especificar al menos un filtro para eliminar (cliente, fecha, rango, guía o búsqueda)."
            )
        with self._transaccion("eliminar facturas") as db:
            ids = db.execute(
                select(Factura.id).where(and_(*build_condiciones_sql(filtros)))
            ).scalars().all()
            if not ids:
                return 0, []
            nombres = db.execute(
                select(FacturaArchivo.filename).where(FacturaArchivo.factura_id.in_(ids))
            ).scalars().all()
            # archivos e historial se borran por ON DELETE CASCADE
            db.execute(
                delete(Factura).where(Factura.id.in_(ids)).execution_options(synchronize_session=False)
            )
        logger.info("Eliminación masiva: %s factura(s)", len(ids))
        return len(ids), list(nombres)

    # Helpers
    @staticmethod
    def _buscar(db: Session, factura_id: int, bloquear: bool = False) -> Factura:
        factura = db.get(Factura, factura_id, with_for_update=bloquear)
        if factura is None:
            raise NotFoundError(factura_id)
        return factura

    @staticmethod
    def _a_columnas(valores: Mapping[str, Any]) -> Dict[str, Any]:
        """Convierte valores normalizados (JSON) a tipos de columna."""
        columnas = dict(valores)
        if columnas.get("fecha") is not None:
            columnas["fecha"] = date.fromisoformat(columnas["fecha"])
        if columnas.get("kg") is not None:
            columnas["kg"] = Decimal(str(columnas["kg"]))
        if "guia" in columnas:
            columnas["guia_num"] = extraer_numero_guia(columnas["guia"])
        return columnas

    @staticmethod
    def _to_dict(f: Factura) -> Dict[str, Any]:
        return {
            "id": f.id,
            "cliente": f.cliente,
            "dia": f.dia,
            "fecha": f.fecha.isoformat(),
            "conductor_xp": f.conductor_xp,
            "camion": f.camion,
            "vueltas": f.vueltas,
            "guia": f.guia,
            "local": f.local,
            "kg": float(f.kg) if f.kg is not None else None,
            "carga": f.carga,
            "observaciones": f.observaciones,
            "estado": f.estado,
            "created_at": f.created_at.isoformat(),
            "archivos": [
                {"filename": a.filename, "mimetype": a.mimetype, "size": a.size}
                for a in f.archivos
            ],
        }
