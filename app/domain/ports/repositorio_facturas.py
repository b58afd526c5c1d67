# app/domain/ports/repositorio_facturas.py
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from app.domain.models.filtros import FiltrosFactura


class RepositorioFacturas(ABC):
    """
    Contrato único de persistencia de facturas.

    Lo implementan el repositorio SQL (durable) y el repositorio en memoria
    (transitorio). Para un mismo input ambos devuelven lo mismo. Las
    facturas se devuelven como dict con sus archivos embebidos en `archivos`.
    Los errores se informan con ValidationError, NotFoundError o StoreError.
    """

    @abstractmethod
    def crear(self, campos: Mapping[str, Any], archivos: Optional[Iterable[Any]] = None) -> int:
        """Crea la factura y sus archivos como una sola unidad. Retorna el id asignado."""

    @abstractmethod
    def obtener(self, factura_id: int) -> Dict[str, Any]:
        """Factura por id. NotFoundError si no existe."""

    @abstractmethod
    def listar(
        self,
        filtros: Optional[FiltrosFactura] = None,
        limit: Any = None,
        offset: Any = None,
    ) -> List[Dict[str, Any]]:
        """Facturas que cumplen los filtros, paginadas (limit <= 200)."""

    @abstractmethod
    def exportar(self, filtros: Optional[FiltrosFactura] = None) -> List[Dict[str, Any]]:
        """Igual que listar pero sin paginar."""

    @abstractmethod
    def actualizar(self, factura_id: int, campos: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Actualización parcial. Registra en el historial el diff contra el
        estado previo solo si algo cambió. Retorna la factura actualizada.
        """

    @abstractmethod
    def listar_historial(self, factura_id: int) -> List[Dict[str, Any]]:
        """Historial de cambios de la factura, más reciente primero."""

    @abstractmethod
    def contar_por_estado(self, filtros: Optional[FiltrosFactura] = None) -> Dict[str, int]:
        """Cantidad de facturas por valor crudo de `estado` ('' para NULL)."""

    @abstractmethod
    def eliminar(self, factura_id: int) -> List[str]:
        """Elimina la factura (archivos e historial en cascada). Retorna los nombres de archivo."""

    @abstractmethod
    def eliminar_por_filtros(self, filtros: FiltrosFactura) -> Tuple[int, List[str]]:
        """Eliminación masiva. Exige al menos un filtro. Retorna (cantidad, nombres de archivo)."""
