import pytest
from app.domain.exceptions import NotFoundError, StoreError, ValidationError
from app.domain.models.filtros import crear_filtros
from app.infrastructure.repositorio_historial import RepositorioHistorial


def _archivos(cantidad):
    return [
        {"filename": f"foto-{n}.png", "mimetype": "image/png", "size": 100 * (n + 1)}
        for n in range(cantidad)
    ]


def test_crear_y_obtener(repo, factura_base):
    factura_id = repo.crear(factura_base, _archivos(2))
    factura = repo.obtener(factura_id)
    assert factura["id"] == factura_id
    assert factura["cliente"] == 2
    assert factura["fecha"] == "2024-05-10"
    assert factura["conductor_xp"] == "Juan Pérez"
    assert factura["kg"] == 120.5
    assert factura["vueltas"] == 2
    assert factura["observaciones"] is None
    assert factura["created_at"]
    assert [a["filename"] for a in factura["archivos"]] == ["foto-0.png", "foto-1.png"]
    assert repo.listar_historial(factura_id) == []


def test_actualizar_registra_historial(repo, factura_base):
    factura_id = repo.crear(factura_base)

    actualizada = repo.actualizar(factura_id, {"guia": "A-2"})
    assert actualizada["guia"] == "A-2"
    historial = repo.listar_historial(factura_id)
    assert len(historial) == 1
    assert historial[0]["factura_id"] == factura_id
    assert historial[0]["changes"] == {"guia": {"from": "A-1", "to": "A-2"}}
    assert historial[0]["changed_at"]

    # repetir la misma actualización no agrega entradas
    repo.actualizar(factura_id, {"guia": "A-2"})
    assert len(repo.listar_historial(factura_id)) == 1

    encontradas = repo.listar(crear_filtros(guia="a-2"))
    assert [f["id"] for f in encontradas] == [factura_id]


def test_actualizar_varios_campos_en_una_entrada(repo, factura_base):
    factura_id = repo.crear(factura_base)
    repo.actualizar(factura_id, {"kg": "120.500", "conductorXp": "Ana", "observaciones": "x", "estado": None})
    repo.actualizar(factura_id, {"observaciones": ""})
    historial = repo.listar_historial(factura_id)
    assert len(historial) == 2
    # más reciente primero
    assert historial[0]["changes"] == {"observaciones": {"from": "x", "to": None}}
    assert historial[1]["changes"] == {
        "conductor_xp": {"from": "Juan Pérez", "to": "Ana"},
        "observaciones": {"from": None, "to": "x"},
    }
    assert repo.obtener(factura_id)["observaciones"] is None


def test_actualizar_sin_cambios_no_toca_historial(repo, factura_base):
    factura_id = repo.crear(factura_base)
    factura = repo.actualizar(factura_id, {})
    assert factura["guia"] == "A-1"
    assert repo.listar_historial(factura_id) == []


def test_actualizar_invalido_no_escribe(repo, factura_base):
    factura_id = repo.crear(factura_base)
    with pytest.raises(ValidationError):
        repo.actualizar(factura_id, {"guia": "A-9", "vueltas": "muchas"})
    assert repo.obtener(factura_id)["guia"] == "A-1"
    assert repo.listar_historial(factura_id) == []


def test_seis_archivos_no_crea_nada(repo, factura_base):
    with pytest.raises(ValidationError):
        repo.crear(factura_base, _archivos(6))
    assert repo.listar() == []


@pytest.mark.parametrize("cliente", [None, "", "abc"])
def test_cliente_invalido_no_persiste(repo, factura_base, cliente):
    factura_base["cliente"] = cliente
    with pytest.raises(ValidationError):
        repo.crear(factura_base)
    assert repo.listar() == []


def test_no_encontrada(repo):
    with pytest.raises(NotFoundError):
        repo.obtener(999)
    with pytest.raises(NotFoundError):
        repo.actualizar(999, {"guia": "X"})
    with pytest.raises(NotFoundError):
        repo.listar_historial(999)
    with pytest.raises(NotFoundError):
        repo.eliminar(999)


def test_limit_acotado(repo, factura_base):
    for n in range(205):
        factura_base["guia"] = f"G-{n}"
        repo.crear(factura_base)
    assert len(repo.listar(limit=1000)) == 200
    assert len(repo.listar()) == 50
    assert len(repo.listar(limit=10, offset=200)) == 5
    assert len(repo.exportar()) == 205


def test_listar_mas_reciente_primero(repo, factura_base):
    ids = [repo.crear(factura_base) for _ in range(3)]
    assert [f["id"] for f in repo.listar()] == list(reversed(ids))


def test_orden_por_kg(repo, factura_base):
    pesos = ["10", None, "5", "30"]
    ids = []
    for kg in pesos:
        factura_base["kg"] = kg
        ids.append(repo.crear(factura_base))
    orden = [f["id"] for f in repo.listar(crear_filtros(sort="kg_desc"))]
    assert orden == [ids[3], ids[0], ids[2], ids[1]]


def test_filtros_combinados(repo, factura_base):
    repo.crear({**factura_base, "cliente": 1, "fecha": "2024-05-01", "local": "Local Norte"})
    esperado = repo.crear({**factura_base, "cliente": 1, "fecha": "2024-05-05", "local": "Local Centro"})
    repo.crear({**factura_base, "cliente": 2, "fecha": "2024-05-05", "local": "Local Centro"})
    filtros = crear_filtros(cliente=1, q="CENTRO", **{"from": "2024-05-02", "to": "2024-05-31"})
    assert [f["id"] for f in repo.listar(filtros)] == [esperado]


def test_contar_por_estado(repo, factura_base):
    for estado in ["entregado sin novedad", "entregado sin novedad", "rechazado", None]:
        repo.crear({**factura_base, "estado": estado})
    repo.crear({**factura_base, "cliente": 3, "estado": "rechazado"})
    conteos = repo.contar_por_estado(crear_filtros(cliente=2))
    assert conteos == {"entregado sin novedad": 2, "rechazado": 1, "": 1}


def test_eliminar(repo, factura_base):
    factura_id = repo.crear(factura_base, _archivos(2))
    repo.actualizar(factura_id, {"guia": "A-2"})
    assert repo.eliminar(factura_id) == ["foto-0.png", "foto-1.png"]
    with pytest.raises(NotFoundError):
        repo.obtener(factura_id)


def test_eliminar_por_filtros(repo, factura_base):
    repo.crear({**factura_base, "guia": "ST-000001"}, _archivos(1))
    repo.crear({**factura_base, "guia": "ST-000002"})
    conservada = repo.crear({**factura_base, "guia": "A-1"})
    eliminadas, nombres = repo.eliminar_por_filtros(crear_filtros(q="st-"))
    assert eliminadas == 2
    assert nombres == ["foto-0.png"]
    assert [f["id"] for f in repo.listar()] == [conservada]
    assert repo.eliminar_por_filtros(crear_filtros(q="st-")) == (0, [])


def test_eliminar_por_filtros_exige_filtro(repo, factura_base):
    repo.crear(factura_base)
    with pytest.raises(ValidationError):
        repo.eliminar_por_filtros(crear_filtros(sort="kg_asc"))
    assert len(repo.listar()) == 1


def test_reiniciar_memoria(repo_memoria, factura_base):
    primero = repo_memoria.crear(factura_base)
    repo_memoria.reiniciar()
    assert repo_memoria.listar() == []
    assert repo_memoria.crear(factura_base) > primero


def test_escenario_guia(repo):
    factura_id = repo.crear({"cliente": 1, "fecha": "2024-01-01", "guia": "A-1"})
    assert factura_id == 1
    assert repo.actualizar(1, {"guia": "A-2"})["guia"] == "A-2"
    repo.actualizar(1, {"guia": "A-2"})
    historial = repo.listar_historial(1)
    assert [h["changes"] for h in historial] == [{"guia": {"from": "A-1", "to": "A-2"}}]
    assert [f["id"] for f in repo.listar(crear_filtros(guia="a-2"))] == [1]


@pytest.mark.parametrize("campos", [{"kg": "1e30"}, {"vueltas": str(10 ** 20)}])
def test_numeros_fuera_de_rango_no_persisten(repo, campos):
    with pytest.raises(ValidationError):
        repo.crear({"cliente": 1, "fecha": "2024-01-01", **campos})
    assert repo.listar() == []
    factura_id = repo.crear({"cliente": 1, "fecha": "2024-01-01"})
    with pytest.raises(ValidationError):
        repo.actualizar(factura_id, campos)
    assert repo.listar_historial(factura_id) == []


def test_falla_de_bd_en_archivos_revierte_la_factura(repo_sql, factura_base, monkeypatch):
    # la fila de archivo viola NOT NULL después de insertar la factura
    def filas_sin_nombre(factura_id, archivos):
        return [{**a, "factura_id": factura_id, "filename": None} for a in archivos]

    monkeypatch.setattr("app.infrastructure.repositorio_facturas_sql.vincular_archivos", filas_sin_nombre)
    with pytest.raises(StoreError):
        repo_sql.crear(factura_base, _archivos(1))
    assert repo_sql.listar() == []


def test_falla_de_bd_en_historial_revierte_la_actualizacion(repo_sql, factura_base, monkeypatch):
    factura_id = repo_sql.crear(factura_base)

    class HistorialSinFactura(RepositorioHistorial):
        def registrar_cambios(self, *, factura_id, changes):
            return super().registrar_cambios(factura_id=None, changes=changes)

    monkeypatch.setattr("app.infrastructure.repositorio_facturas_sql.RepositorioHistorial", HistorialSinFactura)
    with pytest.raises(StoreError):
        repo_sql.actualizar(factura_id, {"guia": "A-2", "kg": "1"})
    monkeypatch.undo()

    factura = repo_sql.obtener(factura_id)
    assert factura["guia"] == "A-1"
    assert factura["kg"] == 120.5
    assert repo_sql.listar_historial(factura_id) == []


def test_error_del_driver_es_store_error(repo_sql, monkeypatch):
    def desborde(valores):
        raise OverflowError("Python int too large to convert to SQLite INTEGER")

    monkeypatch.setattr(repo_sql, "_a_columnas", desborde)
    with pytest.raises(StoreError):
        repo_sql.crear({"cliente": 1, "fecha": "2024-01-01"})
    monkeypatch.undo()
    assert repo_sql.listar() == []
