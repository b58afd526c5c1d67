import pytest
from fastapi.testclient import TestClient
from main import app
from app.domain.exceptions import StoreError
from app.infrastructure.fabrica_repositorios import crear_repositorio_facturas
from app.infrastructure.repositorio_facturas_memoria import RepositorioFacturasMemoria
from app.interfaces.facturas_controller import get_almacen_archivos, get_repo_facturas
from app.services.almacen_archivos import AlmacenArchivos

FORMULARIO = {
    "cliente": "1",
    "fecha": "2024-05-10",
    "conductorXp": "Juan Pérez",
    "guia": "A-1",
    "kg": "120.5",
    "vueltas": "2",
}


@pytest.fixture
def repo():
    return RepositorioFacturasMemoria()


@pytest.fixture
def almacen(tmp_path):
    return AlmacenArchivos(str(tmp_path / "uploads"), 1024)


@pytest.fixture
def client(repo, almacen):
    app.dependency_overrides[get_repo_facturas] = lambda: repo
    app.dependency_overrides[get_almacen_archivos] = lambda: almacen
    yield TestClient(app)
    app.dependency_overrides.clear()


def _pdf(nombre="guia.pdf"):
    return ("archivos", (nombre, b"%PDF-1.4 prueba", "application/pdf"))


def test_health(client):
    for ruta in ("/health", "/api/health"):
        response = client.get(ruta)
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


def test_crear_factura_con_archivos(client, repo, almacen):
    response = client.post("/api/facturas", data=FORMULARIO, files=[_pdf("a.pdf"), _pdf("b.pdf")])
    assert response.status_code == 201
    body = response.json()
    assert body["ok"] is True
    assert body["message"] == "Factura creada"

    factura = repo.obtener(body["id"])
    assert factura["conductor_xp"] == "Juan Pérez"
    assert [a["mimetype"] for a in factura["archivos"]] == ["application/pdf", "application/pdf"]
    nombre = factura["archivos"][0]["filename"]
    assert nombre.startswith("a-") and nombre.endswith(".pdf")
    assert almacen.ruta(nombre) is not None

    descarga = client.get(f"/files/{nombre}")
    assert descarga.status_code == 200
    assert descarga.content == b"%PDF-1.4 prueba"


def test_crear_factura_sin_archivos(client):
    response = client.post("/api/facturas", data=FORMULARIO)
    assert response.status_code == 201
    factura = client.get(f"/api/facturas/{response.json()['id']}").json()
    assert factura["kg"] == 120.5
    assert factura["archivos"] == []


def test_crear_factura_seis_archivos(client, repo, almacen):
    archivos = [_pdf(f"{n}.pdf") for n in range(6)]
    response = client.post("/api/facturas", data=FORMULARIO, files=archivos)
    assert response.status_code == 400
    assert repo.listar() == []
    assert almacen.limpiar() == 0


@pytest.mark.parametrize("cambio", [{"cliente": ""}, {"cliente": "abc"}, {"fecha": "10/05/2024"}])
def test_crear_factura_invalida(client, repo, almacen, cambio):
    response = client.post("/api/facturas", data={**FORMULARIO, **cambio}, files=[_pdf()])
    assert response.status_code == 400
    assert repo.listar() == []
    # no quedan archivos huérfanos
    assert almacen.limpiar() == 0


def test_crear_factura_tipo_no_permitido(client, repo):
    archivo = ("archivos", ("nota.txt", b"hola", "text/plain"))
    response = client.post("/api/facturas", data=FORMULARIO, files=[archivo])
    assert response.status_code == 400
    assert repo.listar() == []


def test_crear_factura_archivo_muy_grande(client, repo, almacen):
    archivo = ("archivos", ("grande.pdf", b"x" * 2048, "application/pdf"))
    response = client.post("/api/facturas", data=FORMULARIO, files=[_pdf(), archivo])
    assert response.status_code == 400
    assert repo.listar() == []
    assert almacen.limpiar() == 0


def test_listar_facturas(client, repo):
    for guia in ["ST-3", "ST-1", "B-2"]:
        repo.crear({**FORMULARIO, "guia": guia})
    response = client.get("/api/facturas", params={"q": "st-", "sort": "guia_asc"})
    assert response.status_code == 200
    assert [f["guia"] for f in response.json()] == ["ST-1", "ST-3"]

    response = client.get("/api/facturas", params={"limit": 1, "offset": 1})
    assert len(response.json()) == 1


@pytest.mark.parametrize("params", [{"cliente": "abc"}, {"from": "ayer"}, {"sort": "precio"}, {"offset": -1}])
def test_listar_facturas_filtro_invalido(client, params):
    response = client.get("/api/facturas", params=params)
    assert response.status_code in (400, 422)


def test_actualizar_e_historial(client, repo):
    factura_id = repo.crear(FORMULARIO)
    response = client.put(f"/api/facturas/{factura_id}", json={"guia": "A-2", "conductorXp": "Ana", "kg": None})
    assert response.status_code == 200
    body = response.json()
    assert body["guia"] == "A-2"
    assert body["conductor_xp"] == "Ana"
    assert body["kg"] == 120.5

    # la misma actualización no genera otra entrada
    client.put(f"/api/facturas/{factura_id}", json={"guia": "A-2"})
    historial = client.get(f"/api/facturas/{factura_id}/historial").json()
    assert len(historial) == 1
    assert historial[0]["changes"]["guia"] == {"from": "A-1", "to": "A-2"}


def test_actualizar_invalida(client, repo):
    factura_id = repo.crear(FORMULARIO)
    response = client.put(f"/api/facturas/{factura_id}", json={"vueltas": "muchas"})
    assert response.status_code == 400
    assert repo.listar_historial(factura_id) == []


def test_factura_no_encontrada(client):
    assert client.get("/api/facturas/999").status_code == 404
    assert client.put("/api/facturas/999", json={"guia": "X"}).status_code == 404
    assert client.get("/api/facturas/999/historial").status_code == 404
    assert client.delete("/api/facturas/999").status_code == 404
    assert client.get("/files/no-existe.pdf").status_code == 404


def test_eliminar_factura_borra_archivos(client, almacen):
    creada = client.post("/api/facturas", data=FORMULARIO, files=[_pdf()]).json()
    nombre = client.get(f"/api/facturas/{creada['id']}").json()["archivos"][0]["filename"]
    response = client.delete(f"/api/facturas/{creada['id']}")
    assert response.status_code == 200
    assert almacen.ruta(nombre) is None


def test_eliminacion_masiva(client, repo):
    repo.crear({**FORMULARIO, "guia": "ST-1"})
    repo.crear({**FORMULARIO, "guia": "ST-2"})
    repo.crear({**FORMULARIO, "guia": "A-1"})
    assert client.post("/api/facturas/bulk-delete", json={}).status_code == 400
    response = client.post("/api/facturas/bulk-delete", json={"q": "ST-"})
    assert response.json() == {"ok": True, "deleted": 2}
    assert len(repo.listar()) == 1


def test_exportar_csv(client, repo):
    repo.crear({**FORMULARIO, "cliente": 2, "guia": "A-1", "kg": "10.500"})
    response = client.get("/api/facturas/export")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "facturas-export-" in response.headers["content-disposition"]
    assert response.content.startswith(b"\xef\xbb\xbf")
    lineas = response.content.decode("utf-8-sig").splitlines()
    assert lineas[0].startswith("fecha,guia,conductor_xp")
    assert lineas[1] == "2024-05-10,A-1,Juan Pérez,,,Nutrisco,10.5,2,,,,"


def test_estadisticas(client, repo):
    for estado in ["entregado sin novedad", "Entregado con detalle ", "rechazado", None]:
        repo.crear({**FORMULARIO, "estado": estado})
    response = client.get("/api/facturas/stats", params={"cliente": 1})
    assert response.json() == {
        "total": 4,
        "entregada": 2,
        "by_estado": {"entregado sin novedad": 1, "entregado con detalle": 1, "rechazado": 1, "": 1},
    }
    response = client.get("/api/facturas/stats", params={"estado": "rechazado"})
    assert response.json()["entregada"] == 1


def test_reset_desarrollo(client, repo):
    repo.crear(FORMULARIO)
    response = client.delete("/api/__dev/reset")
    assert response.status_code == 200
    assert repo.listar() == []


def test_error_de_validacion_indica_el_campo(client, repo):
    factura_id = repo.crear(FORMULARIO)
    response = client.put(f"/api/facturas/{factura_id}", json={"kg": "1e30"})
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Error de validación en kg:")


def test_error_de_bd_responde_500(client):
    class RepoCaido(RepositorioFacturasMemoria):
        def listar(self, filtros=None, limit=None, offset=None):
            raise StoreError("No se pudo listar facturas")

    app.dependency_overrides[get_repo_facturas] = lambda: RepoCaido()
    response = client.get("/api/facturas")
    assert response.status_code == 500
    assert response.json()["detail"] == "No se pudo listar facturas"


def test_fabrica_sin_bd_usa_memoria():
    assert isinstance(crear_repositorio_facturas(skip_db=True), RepositorioFacturasMemoria)
