import copy
import threading
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import logging

from app.application.auditoria_cambios import aplicar_cambios, calcular_cambios, fusionar_cambios
from app.application.vinculador_archivos import validar_archivos, vincular_archivos
from app.domain.exceptions import NotFoundError, ValidationError
from app.domain.models.filtros import FiltrosFactura
from app.domain.ports.repositorio_facturas import RepositorioFacturas
from app.infrastructure.filtros_facturas import (
    build_predicado,
    normalizar_paginacion,
    ordenar_registros,
)
from app.utils.factura_helpers import normalizar_alta, normalizar_cambios

logger = logging.getLogger("facturas")


class RepositorioFacturasMemoria(RepositorioFacturas):
    """Repositorio transitorio para correr sin base de datos (SKIP_DB_INIT=1).

    Guarda las mismas tres colecciones que las tablas (facturas, archivos,
    historial). Los datos se pierden al reiniciar el proceso. Cada instancia
    es independiente, lo que permite usar una por test.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._facturas: Dict[int, Dict[str, Any]] = {}
        self._archivos: List[Dict[str, Any]] = []
        self._historial: List[Dict[str, Any]] = []
        self._siguiente_id = 1
        self._siguiente_archivo_id = 1
        self._siguiente_historial_id = 1

    # Alta
    def crear(self, campos: Mapping[str, Any], archivos: Optional[Iterable[Any]] = None) -> int:
        valores = normalizar_alta(campos)
        adjuntos = validar_archivos(archivos)
        with self._lock:
            factura_id = self._siguiente_id
            self._siguiente_id += 1
            ahora = datetime.utcnow().isoformat()
            self._facturas[factura_id] = {"id": factura_id, **valores, "created_at": ahora}
            for fila in vincular_archivos(factura_id, adjuntos):
                self._archivos.append({"id": self._siguiente_archivo_id, **fila, "created_at": ahora})
                self._siguiente_archivo_id += 1
        logger.info("Factura %s creada en memoria con %s archivo(s)", factura_id, len(adjuntos))
        return factura_id

    # Consultas
    def obtener(self, factura_id: int) -> Dict[str, Any]:
        with self._lock:
            return self._con_archivos(self._buscar(factura_id))

    def listar(
        self,
        filtros: Optional[FiltrosFactura] = None,
        limit: Any = None,
        offset: Any = None,
    ) -> List[Dict[str, Any]]:
        limite, desplazamiento = normalizar_paginacion(limit, offset)
        filas = self._consultar(filtros or FiltrosFactura())
        return filas[desplazamiento:desplazamiento + limite]

    def exportar(self, filtros: Optional[FiltrosFactura] = None) -> List[Dict[str, Any]]:
        return self._consultar(filtros or FiltrosFactura())

    def _consultar(self, filtros: FiltrosFactura) -> List[Dict[str, Any]]:
        cumple = build_predicado(filtros)
        with self._lock:
            seleccion = [f for f in self._facturas.values() if cumple(f)]
            return [self._con_archivos(f) for f in ordenar_registros(seleccion, filtros.sort)]

    def listar_historial(self, factura_id: int) -> List[Dict[str, Any]]:
        with self._lock:
            self._buscar(factura_id)
            entradas = [h for h in self._historial if h["factura_id"] == factura_id]
        entradas.sort(key=lambda h: (h["changed_at"], h["id"]), reverse=True)
        return copy.deepcopy(entradas)

    def contar_por_estado(self, filtros: Optional[FiltrosFactura] = None) -> Dict[str, int]:
        cumple = build_predicado(filtros or FiltrosFactura())
        with self._lock:
            return dict(Counter(f["estado"] or "" for f in self._facturas.values() if cumple(f)))

    # Modificación
    def actualizar(self, factura_id: int, campos: Mapping[str, Any]) -> Dict[str, Any]:
        cambios = normalizar_cambios(campos)
        with self._lock:
            previo = self._buscar(factura_id)
            diff = calcular_cambios(previo, fusionar_cambios(previo, cambios))
            if diff:
                self._facturas[factura_id] = aplicar_cambios(previo, diff)
                self._historial.append({
                    "id": self._siguiente_historial_id,
                    "factura_id": factura_id,
                    "changes": copy.deepcopy(diff),
                    "changed_at": datetime.utcnow().isoformat(),
                })
                self._siguiente_historial_id += 1
                logger.info("Factura %s actualizada en memoria: %s", factura_id, ", ".join(diff))
            return self._con_archivos(self._facturas[factura_id])

    def eliminar(self, factura_id: int) -> List[str]:
        with self._lock:
            self._buscar(factura_id)
            nombres = self._borrar({factura_id})
        logger.info("Factura %s eliminada de memoria", factura_id)
        return nombres

    def eliminar_por_filtros(self, filtros: FiltrosFactura) -> Tuple[int, List[str]]:
        if not filtros.tiene_seleccion():
            raise ValidationError(
                "Debes especificar al menos un filtro para eliminar (cliente, fecha, rango, guía o búsqueda)."
            )
        cumple = build_predicado(filtros)
        with self._lock:
            ids = {f["id"] for f in self._facturas.values() if cumple(f)}
            nombres = self._borrar(ids)
        return len(ids), nombres

    def reiniciar(self) -> None:
        """Vacía las colecciones. Los ids siguen creciendo."""
        with self._lock:
            self._facturas.clear()
            self._archivos.clear()
            self._historial.clear()
        logger.info("Datos en memoria reiniciados")

    # Helpers (llamar con el lock tomado)
    def _buscar(self, factura_id: int) -> Dict[str, Any]:
        factura = self._facturas.get(factura_id)
        if factura is None:
            raise NotFoundError(factura_id)
        return factura

    def _con_archivos(self, factura: Dict[str, Any]) -> Dict[str, Any]:
        archivos = [
            {"filename": a["filename"], "mimetype": a["mimetype"], "size": a["size"]}
            for a in self._archivos
            if a["factura_id"] == factura["id"]
        ]
        return {**factura, "archivos": archivos}

    def _borrar(self, ids: set) -> List[str]:
        nombres = [a["filename"] for a in self._archivos if a["factura_id"] in ids]
        for factura_id in ids:
            del self._facturas[factura_id]
        self._archivos = [a for a in self._archivos if a["factura_id"] not in ids]
        self._historial = [h for h in self._historial if h["factura_id"] not in ids]
        return nombres
