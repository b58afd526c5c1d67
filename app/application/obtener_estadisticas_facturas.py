from typing import Any, Dict, Mapping, Optional
import logging
from app.domain.constants import PREFIJO_ESTADO_ENTREGADO
from app.domain.models.filtros import crear_filtros
from app.domain.ports.repositorio_facturas import RepositorioFacturas

logger = logging.getLogger(__name__)


def resumir_estados(conteos: Mapping[Optional[str], int]) -> Dict[str, int]:
    """Agrupa conteos por estado sin distinguir mayúsculas ni espacios."""
    resumen: Dict[str, int] = {}
    for estado, cantidad in conteos.items():
        clave = (estado or "").strip().lower()
        resumen[clave] = resumen.get(clave, 0) + cantidad
    return resumen


class ObtenerEstadisticasFacturas:
    def __init__(self, repo_facturas: RepositorioFacturas):
        self.repo_facturas = repo_facturas

    def execute(
        self,
        cliente: Any = None,
        fecha: Any = None,
        estado: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Cuenta facturas por estado para un cliente y/o fecha:
        - total: cantidad de facturas
        - entregada: facturas en el estado pedido o, si no se pide, en
          cualquier estado que empiece por 'entregado'
        - by_estado: conteo por estado normalizado ('' para sin estado)
        """
        filtros = crear_filtros(cliente=cliente, fecha=fecha)
        by_estado = resumir_estados(self.repo_facturas.contar_por_estado(filtros))
        total = sum(by_estado.values())
        if estado:
            entregada = by_estado.get(estado.strip().lower(), 0)
        else:
            entregada = sum(
                cantidad for clave, cantidad in by_estado.items()
                if clave.startswith(PREFIJO_ESTADO_ENTREGADO)
            )
        logger.debug("Estadísticas de facturas: total=%s entregada=%s", total, entregada)
        return {"total": total, "entregada": entregada, "by_estado": by_estado}
