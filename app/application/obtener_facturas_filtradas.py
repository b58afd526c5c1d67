from typing import Any, Dict, List
from app.domain.models.filtros import crear_filtros
from app.domain.ports.repositorio_facturas import RepositorioFacturas


class ObtenerFacturasFiltradas:
    def __init__(self, repo: RepositorioFacturas):
        self.repo = repo

    def execute(self, limit: Any = None, offset: Any = None, **parametros: Any) -> List[Dict[str, Any]]:
        """Listado paginado. `parametros` son los filtros crudos (cliente, from, to, fecha, guia, q, sort)."""
        filtros = crear_filtros(**parametros)
        return self.repo.listar(filtros, limit=limit, offset=offset)
