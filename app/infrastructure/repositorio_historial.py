from typing import List, Optional, Dict, Any
from sqlalchemy.orm import Session
from sqlalchemy import desc, select
from app.domain.models.historial import FacturaHistorial


class RepositorioHistorial:
    """Historial de cambios de facturas sobre la sesión del llamador.

    No hace commit: el repositorio de facturas decide la transacción, de
    modo que la actualización y su entrada de historial se confirman juntas.
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    def registrar_cambios(
        self,
        *,
        factura_id: int,
        changes: Dict[str, Dict[str, Any]],
    ) -> Optional[Dict[str, Any]]:
        if not changes:
            return None
        evento = FacturaHistorial(factura_id=factura_id, changes=changes)
        self.db.add(evento)
        self.db.flush()
        return self._to_dict(evento)

    def listar(
        self,
        *,
        factura_id: int,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        stmt = (
            select(FacturaHistorial)
            .where(FacturaHistorial.factura_id == factura_id)
            .order_by(desc(FacturaHistorial.changed_at), desc(FacturaHistorial.id))
        )
        if limit:
            stmt = stmt.limit(limit)
        return [self._to_dict(item) for item in self.db.execute(stmt).scalars().all()]

    @staticmethod
    def _to_dict(item: FacturaHistorial) -> Dict[str, Any]:
        return {
            "id": item.id,
            "factura_id": item.factura_id,
            "changes": item.changes,
            "changed_at": item.changed_at.isoformat(),
        }
