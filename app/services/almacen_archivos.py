"""
Almacén en disco de los archivos subidos con las facturas.

Valida tipo y tamaño, guarda con un nombre único y entrega el descriptor
(filename, mimetype, size) que luego se vincula a la factura.
"""
import logging
import re
import time
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from fastapi import UploadFile

from app.domain.constants import TIPOS_ARCHIVO_PERMITIDOS
from app.domain.exceptions import ValidationError

logger = logging.getLogger(__name__)

_CHUNK = 1024 * 1024


class AlmacenArchivos:
    def __init__(
        self,
        directorio: str,
        tamano_maximo: int,
        tipos_permitidos: Sequence[str] = TIPOS_ARCHIVO_PERMITIDOS,
    ):
        self.directorio = Path(directorio)
        self.tamano_maximo = tamano_maximo
        self.tipos_permitidos = tuple(tipos_permitidos)

    def _nombre_unico(self, original: Optional[str]) -> str:
        nombre = Path(original or "archivo").name
        base, ext = Path(nombre).stem, Path(nombre).suffix
        base = re.sub(r"\s+", "_", base) or "archivo"
        return f"{base}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}{ext}"

    def guardar(self, archivo: UploadFile) -> Dict[str, Any]:
        if archivo.content_type not in self.tipos_permitidos:
            raise ValidationError(f"Tipo de archivo no permitido: {archivo.content_type}", field="archivos")
        self.directorio.mkdir(parents=True, exist_ok=True)
        nombre = self._nombre_unico(archivo.filename)
        destino = self.directorio / nombre
        size = 0
        with destino.open("wb") as salida:
            while True:
                chunk = archivo.file.read(_CHUNK)
                if not chunk:
                    break
                size += len(chunk)
                if size > self.tamano_maximo:
                    break
                salida.write(chunk)
        if size > self.tamano_maximo:
            destino.unlink(missing_ok=True)
            raise ValidationError(
                f"El archivo {archivo.filename} supera el máximo de {self.tamano_maximo} bytes",
                field="archivos",
            )
        return {"filename": nombre, "mimetype": archivo.content_type, "size": size}

    def guardar_todos(self, archivos: Iterable[UploadFile]) -> List[Dict[str, Any]]:
        """Guarda todos o ninguno: si uno falla se borran los ya guardados."""
        guardados: List[Dict[str, Any]] = []
        try:
            for archivo in archivos:
                guardados.append(self.guardar(archivo))
        except Exception:
            self.eliminar(g["filename"] for g in guardados)
            raise
        return guardados

    def eliminar(self, nombres: Iterable[str]) -> None:
        for nombre in nombres:
            ruta = self.directorio / Path(nombre).name
            try:
                ruta.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"No se pudo borrar el archivo {ruta}: {e}")

    def ruta(self, nombre: str) -> Optional[Path]:
        """Ruta del archivo si existe; solo nombres planos, sin directorios."""
        ruta = self.directorio / Path(nombre).name
        return ruta if ruta.is_file() else None

    def limpiar(self) -> int:
        if not self.directorio.is_dir():
            return 0
        archivos = [p for p in self.directorio.iterdir() if p.is_file()]
        self.eliminar(p.name for p in archivos)
        return len(archivos)
