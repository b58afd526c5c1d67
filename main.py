from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from app.config.database import get_engine
from app.config.settings import (
    get_cors_origins,
    get_log_level,
    get_max_upload_bytes,
    get_port,
    get_skip_db,
    get_uploads_dir,
)
from app.infrastructure.database_migrations import asegurar_esquema
from app.infrastructure.fabrica_repositorios import crear_repositorio_facturas
from app.interfaces.facturas_controller import router as facturas_router
from app.services.almacen_archivos import AlmacenArchivos

TITULO = "API Facturas Logística"
VERSION = "1.0.0"

app = FastAPI(
    title=TITULO,
    version=VERSION,
    description="API para registro de facturas de despacho, sus adjuntos e historial de cambios"
)

# Middleware de CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Configuración de logging
logging.basicConfig(
    level=getattr(logging, get_log_level(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
)
logger = logging.getLogger("facturas")

# Backend y almacén de archivos: se eligen una vez al arrancar
app.state.repo_facturas = crear_repositorio_facturas()
app.state.almacen_archivos = AlmacenArchivos(get_uploads_dir(), get_max_upload_bytes())

# Registro de routers
app.include_router(facturas_router)


# Health check
@app.get("/health", tags=["Status"])
@app.get("/api/health", tags=["Status"])
def health_check():
    return {
        "status": "ok",
        "title": TITULO,
        "version": VERSION,
        "db": not get_skip_db(),
    }


# Tablas y columnas de facturas en la BD configurada
@app.on_event("startup")
def startup_event():
    if get_skip_db():
        return
    try:
        asegurar_esquema(get_engine())
    except Exception:
        logger.exception("No se pudo verificar el esquema de facturas")
        raise


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_port())
