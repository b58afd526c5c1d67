from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, Response, UploadFile, status
from fastapi.responses import FileResponse
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional, Union
from datetime import datetime
from app.application.exportar_facturas import ExportarFacturasCSV
from app.application.obtener_estadisticas_facturas import ObtenerEstadisticasFacturas
from app.application.obtener_facturas_filtradas import ObtenerFacturasFiltradas
from app.domain.constants import DEFAULT_PAGINATION_LIMIT, MAX_ARCHIVOS_POR_FACTURA
from app.domain.exceptions import FacturaError
from app.domain.models.filtros import crear_filtros
from app.domain.ports.repositorio_facturas import RepositorioFacturas
from app.infrastructure.repositorio_facturas_memoria import RepositorioFacturasMemoria
from app.services.almacen_archivos import AlmacenArchivos
from app.utils.error_handlers import handle_validation_error, traducir_error
from app.utils.factura_helpers import normalizar_alta
import logging

router = APIRouter()

# Configuración de logging
logger = logging.getLogger("facturas")


class ArchivoOut(BaseModel):
    filename: str
    mimetype: str
    size: int


class FacturaOut(BaseModel):
    id: int
    cliente: int
    dia: Optional[str]
    fecha: str
    conductor_xp: Optional[str]
    camion: Optional[str]
    vueltas: Optional[int]
    guia: Optional[str]
    local: Optional[str]
    kg: Optional[float]
    carga: Optional[str]
    observaciones: Optional[str]
    estado: Optional[str]
    created_at: str
    archivos: List[ArchivoOut] = []


class FacturaCreadaOut(BaseModel):
    ok: bool = True
    message: str
    id: int


class FacturaCambiosIn(BaseModel):
    """Actualización parcial: los campos ausentes o null conservan su valor;
    una cadena vacía limpia el campo."""

    model_config = ConfigDict(populate_by_name=True)

    cliente: Optional[Union[int, str]] = None
    dia: Optional[str] = None
    fecha: Optional[str] = None
    conductor_xp: Optional[str] = Field(None, alias="conductorXp")
    camion: Optional[str] = None
    vueltas: Optional[Union[int, str]] = None
    guia: Optional[str] = None
    local: Optional[str] = None
    kg: Optional[Union[float, str]] = None
    carga: Optional[str] = None
    observaciones: Optional[str] = None
    estado: Optional[str] = Field(None, description="entregado sin novedad | entregado con detalle | rechazado | reprogramado")


class HistorialOut(BaseModel):
    id: int
    factura_id: int
    changes: Dict[str, Dict[str, Any]]
    changed_at: str


class EliminacionMasivaIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cliente: Optional[Union[int, str]] = None
    desde: Optional[str] = Field(None, alias="from")
    hasta: Optional[str] = Field(None, alias="to")
    fecha: Optional[str] = None
    guia: Optional[str] = None
    q: Optional[str] = None


class EstadisticasOut(BaseModel):
    total: int
    entregada: int
    by_estado: Dict[str, int]


# Dependencias: el backend se elige una vez al arrancar (ver main.py)
def get_repo_facturas(request: Request) -> RepositorioFacturas:
    return request.app.state.repo_facturas


def get_almacen_archivos(request: Request) -> AlmacenArchivos:
    return request.app.state.almacen_archivos


@router.post("/api/facturas", response_model=FacturaCreadaOut, status_code=status.HTTP_201_CREATED, tags=["Facturas"])
def crear_factura(
    cliente: Optional[str] = Form(None),
    fecha: Optional[str] = Form(None, description="YYYY-MM-DD"),
    dia: Optional[str] = Form(None),
    conductorXp: Optional[str] = Form(None),
    conductor_xp: Optional[str] = Form(None),
    camion: Optional[str] = Form(None),
    vueltas: Optional[str] = Form(None),
    guia: Optional[str] = Form(None),
    local: Optional[str] = Form(None),
    kg: Optional[str] = Form(None),
    carga: Optional[str] = Form(None),
    observaciones: Optional[str] = Form(None),
    estado: Optional[str] = Form(None),
    archivos: Optional[List[UploadFile]] = File(None),
    repo: RepositorioFacturas = Depends(get_repo_facturas),
    almacen: AlmacenArchivos = Depends(get_almacen_archivos),
):
    archivos = archivos or []
    if len(archivos) > MAX_ARCHIVOS_POR_FACTURA:
        raise handle_validation_error(f"Máximo {MAX_ARCHIVOS_POR_FACTURA} archivos por factura", "archivos")
    campos = {
        "cliente": cliente,
        "fecha": fecha,
        "dia": dia,
        "conductor_xp": conductor_xp if conductor_xp is not None else conductorXp,
        "camion": camion,
        "vueltas": vueltas,
        "guia": guia,
        "local": local,
        "kg": kg,
        "carga": carga,
        "observaciones": observaciones,
        "estado": estado,
    }
    try:
        # Validar antes de escribir archivos en disco
        normalizar_alta(campos)
        guardados = almacen.guardar_todos(archivos)
    except FacturaError as e:
        raise traducir_error(e, "crear factura")
    try:
        factura_id = repo.crear(campos, guardados)
    except FacturaError as e:
        # La factura no se creó: los archivos quedarían huérfanos
        almacen.eliminar(g["filename"] for g in guardados)
        raise traducir_error(e, "crear factura")
    return {"ok": True, "message": "Factura creada", "id": factura_id}


@router.get("/api/facturas", response_model=List[FacturaOut], tags=["Facturas"])
def listar_facturas(
    cliente: Optional[str] = Query(None),
    desde: Optional[str] = Query(None, alias="from", description="Fecha desde (YYYY-MM-DD)"),
    hasta: Optional[str] = Query(None, alias="to", description="Fecha hasta (YYYY-MM-DD)"),
    fecha: Optional[str] = Query(None, description="Fecha exacta (YYYY-MM-DD)"),
    guia: Optional[str] = Query(None, description="Guía exacta, sin distinguir mayúsculas"),
    q: Optional[str] = Query(None, description="Búsqueda en guía, conductor, camión, local, carga y observaciones"),
    sort: Optional[str] = Query(None, description="guia_asc | guia_desc | kg_asc | kg_desc | vueltas_asc | vueltas_desc | fecha_asc | fecha_desc"),
    limit: int = Query(DEFAULT_PAGINATION_LIMIT, ge=1, description="Máximo 200"),
    offset: int = Query(0, ge=0),
    repo: RepositorioFacturas = Depends(get_repo_facturas),
):
    try:
        return ObtenerFacturasFiltradas(repo).execute(
            limit=limit,
            offset=offset,
            cliente=cliente,
            desde=desde,
            hasta=hasta,
            fecha=fecha,
            guia=guia,
            q=q,
            sort=sort,
        )
    except FacturaError as e:
        raise traducir_error(e, "listar facturas")


@router.get("/api/facturas/export", tags=["Facturas"])
def exportar_facturas(
    cliente: Optional[str] = Query(None),
    desde: Optional[str] = Query(None, alias="from"),
    hasta: Optional[str] = Query(None, alias="to"),
    fecha: Optional[str] = Query(None),
    guia: Optional[str] = Query(None),
    q: Optional[str] = Query(None),
    sort: Optional[str] = Query(None),
    repo: RepositorioFacturas = Depends(get_repo_facturas),
):
    """Exporta en CSV las facturas que cumplen los mismos filtros del listado."""
    try:
        contenido = ExportarFacturasCSV(repo).execute(
            cliente=cliente, desde=desde, hasta=hasta, fecha=fecha, guia=guia, q=q, sort=sort
        )
    except FacturaError as e:
        raise traducir_error(e, "exportar facturas")
    nombre = f"facturas-export-{int(datetime.now().timestamp() * 1000)}.csv"
    # BOM para que Excel detecte UTF-8
    return Response(
        content="\ufeff" + contenido,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{nombre}"'},
    )


@router.get("/api/facturas/stats", response_model=EstadisticasOut, tags=["Facturas"])
def estadisticas_facturas(
    cliente: Optional[str] = Query(None),
    fecha: Optional[str] = Query(None),
    estado: Optional[str] = Query(None, description="Contar solo este estado como entregado"),
    repo: RepositorioFacturas = Depends(get_repo_facturas),
):
    try:
        return ObtenerEstadisticasFacturas(repo).execute(cliente=cliente, fecha=fecha, estado=estado)
    except FacturaError as e:
        raise traducir_error(e, "obtener estadísticas")


@router.post("/api/facturas/bulk-delete", tags=["Facturas"])
def eliminar_facturas_por_filtros(
    payload: EliminacionMasivaIn,
    repo: RepositorioFacturas = Depends(get_repo_facturas),
    almacen: AlmacenArchivos = Depends(get_almacen_archivos),
):
    try:
        filtros = crear_filtros(**payload.model_dump())
        eliminadas, nombres = repo.eliminar_por_filtros(filtros)
    except FacturaError as e:
        raise traducir_error(e, "eliminar facturas")
    almacen.eliminar(nombres)
    return {"ok": True, "deleted": eliminadas}


@router.get("/api/facturas/{factura_id}", response_model=FacturaOut, tags=["Facturas"])
def obtener_factura(factura_id: int, repo: RepositorioFacturas = Depends(get_repo_facturas)):
    try:
        return repo.obtener(factura_id)
    except FacturaError as e:
        raise traducir_error(e, f"obtener factura {factura_id}")


@router.put("/api/facturas/{factura_id}", response_model=FacturaOut, tags=["Facturas"])
def actualizar_factura(
    factura_id: int,
    payload: FacturaCambiosIn,
    repo: RepositorioFacturas = Depends(get_repo_facturas),
):
    try:
        return repo.actualizar(factura_id, payload.model_dump(exclude_none=True))
    except FacturaError as e:
        raise traducir_error(e, f"actualizar factura {factura_id}")


@router.get("/api/facturas/{factura_id}/historial", response_model=List[HistorialOut], tags=["Facturas"])
def historial_factura(factura_id: int, repo: RepositorioFacturas = Depends(get_repo_facturas)):
    try:
        return repo.listar_historial(factura_id)
    except FacturaError as e:
        raise traducir_error(e, "obtener historial")


@router.delete("/api/facturas/{factura_id}", tags=["Facturas"])
def eliminar_factura(
    factura_id: int,
    repo: RepositorioFacturas = Depends(get_repo_facturas),
    almacen: AlmacenArchivos = Depends(get_almacen_archivos),
):
    try:
        nombres = repo.eliminar(factura_id)
    except FacturaError as e:
        raise traducir_error(e, f"eliminar factura {factura_id}")
    almacen.eliminar(nombres)
    return {"ok": True}


@router.get("/files/{filename}", tags=["Archivos"])
def descargar_archivo(filename: str, almacen: AlmacenArchivos = Depends(get_almacen_archivos)):
    ruta = almacen.ruta(filename)
    if ruta is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Archivo no encontrado")
    return FileResponse(ruta, filename=ruta.name)


@router.delete("/api/__dev/reset", tags=["Desarrollo"])
def reset_desarrollo(
    repo: RepositorioFacturas = Depends(get_repo_facturas),
    almacen: AlmacenArchivos = Depends(get_almacen_archivos),
):
    """Solo en modo sin DB: vacía los datos en memoria y los archivos subidos."""
    if not isinstance(repo, RepositorioFacturasMemoria):
        raise handle_validation_error("Disponible solo en modo sin DB (SKIP_DB_INIT=1)")
    repo.reiniciar()
    borrados = almacen.limpiar()
    logger.info("Reset de desarrollo: %s archivo(s) borrados", borrados)
    return {"ok": True, "message": "Datos de memoria y archivos limpiados"}
