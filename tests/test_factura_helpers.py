import pytest
from datetime import date
from app.domain.exceptions import ValidationError
from app.utils.factura_helpers import (
    a_entero,
    a_fecha_iso,
    a_kg,
    extraer_numero_guia,
    normalizar_alta,
    normalizar_cambios,
    normalizar_nombres,
)


def test_alias_conductor_xp():
    assert normalizar_nombres({"conductorXp": "Ana"}) == {"conductor_xp": "Ana"}
    # si llegan ambos gana el nombre de columna
    assert normalizar_nombres({"conductorXp": "Ana", "conductor_xp": "Luis"}) == {"conductor_xp": "Luis"}


def test_conversiones_numericas():
    assert a_entero(" 3 ", "vueltas") == 3
    assert a_entero("3.0", "vueltas") == 3
    assert a_entero("", "vueltas") is None
    assert a_kg("120,5") == 120.5
    assert a_kg("1.23456") == 1.235
    with pytest.raises(ValidationError):
        a_entero("abc", "cliente")
    with pytest.raises(ValidationError):
        a_entero("2.5", "vueltas")
    with pytest.raises(ValidationError):
        a_kg("-1")


def test_fechas():
    assert a_fecha_iso("2024-05-10") == "2024-05-10"
    assert a_fecha_iso("2024-05-10T08:30:00") == "2024-05-10"
    assert a_fecha_iso(date(2024, 5, 10)) == "2024-05-10"
    with pytest.raises(ValidationError):
        a_fecha_iso("10/05/2024")


def test_normalizar_alta(factura_base):
    valores = normalizar_alta(factura_base)
    assert valores["cliente"] == 2
    assert valores["vueltas"] == 2
    assert valores["kg"] == 120.5
    assert valores["conductor_xp"] == "Juan Pérez"
    assert valores["observaciones"] is None
    assert "conductorXp" not in valores


@pytest.mark.parametrize("faltante", ["cliente", "fecha"])
def test_normalizar_alta_exige_obligatorios(factura_base, faltante):
    factura_base.pop(faltante)
    with pytest.raises(ValidationError, match="cliente y fecha son obligatorios"):
        normalizar_alta(factura_base)


def test_normalizar_alta_cliente_fuera_de_rango(factura_base):
    factura_base["cliente"] = "40000"
    with pytest.raises(ValidationError):
        normalizar_alta(factura_base)


def test_normalizar_cambios_parcial():
    cambios = normalizar_cambios({"guia": " A-2 ", "kg": None, "observaciones": "", "otro": "x"})
    # null se ignora, vacío limpia, desconocidos se descartan
    assert cambios == {"guia": "A-2", "observaciones": None}


def test_normalizar_cambios_no_limpia_obligatorios():
    with pytest.raises(ValidationError):
        normalizar_cambios({"fecha": ""})


def test_extraer_numero_guia():
    assert extraer_numero_guia("ST-2024-15") == 202415
    assert extraer_numero_guia("sin numero") is None
    assert extraer_numero_guia(None) is None
    assert extraer_numero_guia("9" * 30) is None


@pytest.mark.parametrize("kg", ["1e30", "1000000000", "999999999.9995", "1E+100000"])
def test_kg_fuera_de_rango(kg):
    with pytest.raises(ValidationError) as exc:
        a_kg(kg)
    assert exc.value.field == "kg"


def test_kg_limite_de_columna():
    assert a_kg("999999999.999") == 999999999.999


def test_vueltas_fuera_de_rango():
    with pytest.raises(ValidationError) as exc:
        normalizar_cambios({"vueltas": str(10 ** 20)})
    assert exc.value.field == "vueltas"
    assert normalizar_cambios({"vueltas": str(2 ** 31 - 1)}) == {"vueltas": 2 ** 31 - 1}
