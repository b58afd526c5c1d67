import csv
import io
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from app.domain.models.filtros import crear_filtros
from app.domain.ports.repositorio_facturas import RepositorioFacturas
from app.utils.cliente_helpers import nombre_cliente

COLUMNAS_EXPORTACION: List[str] = [
    "fecha", "guia", "conductor_xp", "local", "estado", "cliente",
    "kg", "vueltas", "camion", "carga", "observaciones", "archivos",
]


def _formatear_kg(kg: Any) -> str:
    if kg is None:
        return ""
    return format(Decimal(str(kg)).normalize(), "f")


def _fila(factura: Dict[str, Any]) -> List[Any]:
    return [
        factura["fecha"],
        factura.get("guia") or "",
        factura.get("conductor_xp") or "",
        factura.get("local") or "",
        factura.get("estado") or "",
        nombre_cliente(factura.get("cliente")),
        _formatear_kg(factura.get("kg")),
        "" if factura.get("vueltas") is None else factura["vueltas"],
        factura.get("camion") or "",
        factura.get("carga") or "",
        factura.get("observaciones") or "",
        ";".join(a["filename"] for a in factura.get("archivos") or []),
    ]


def facturas_a_csv(facturas: Iterable[Dict[str, Any]]) -> str:
    """CSV con encabezado; el llamador agrega el BOM si lo necesita (Excel)."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(COLUMNAS_EXPORTACION)
    for factura in facturas:
        writer.writerow(_fila(factura))
    return buffer.getvalue()


class ExportarFacturasCSV:
    def __init__(self, repo: RepositorioFacturas):
        self.repo = repo

    def execute(self, **parametros: Any) -> str:
        """Exporta todas las facturas que cumplen los filtros, en el mismo orden del listado."""
        return facturas_a_csv(self.repo.exportar(crear_filtros(**parametros)))
