import math

import pytest

from sevdash.csv_parser import parse_csv
from sevdash.errors import NoValidRowsError
from sevdash.loader import is_valid, load_file, normalize, parse_dataset, resolve_schema
from sevdash.models import FieldSchema


def test_example_single_valid_record():
    text = 'Fecha,Departamento_corr,Tipo\n20230115,Central,GRA\n,,""'
    headers, records = parse_dataset(text)
    assert len(records) == 1
    r = records[0]
    assert r.date == "2023-01-15"
    assert r.fields["Fecha"] == "2023-01-15"
    assert r.timestamp == 1673740800000
    assert r.latitude is None and r.longitude is None


def test_all_valid_rows_become_records(sample_csv):
    headers, records = parse_dataset(sample_csv)
    assert len(records) == 5
    assert [r.category for r in records] == ["Central", "Central", "Itapúa", "Itapúa", "Alto Paraná"]


@pytest.mark.parametrize("bad_date", ["2023011", "202301150", "2023-01-15", "15/01/2023", ""])
def test_date_must_be_eight_digits(bad_date):
    text = f"Fecha,Departamento_corr,Tipo\n{bad_date},Central,GRA\n20230116,Central,RAF\n"
    _, records = parse_dataset(text)
    assert [r.date for r in records] == ["2023-01-16"]


def test_missing_category_or_type_is_dropped():
    text = "Fecha,Departamento_corr,Tipo\n20230115,,GRA\n20230115,Central, \n20230115,Central,GRA\n"
    _, records = parse_dataset(text)
    assert len(records) == 1


def test_unparseable_date_keeps_record_with_zero_timestamp():
    _, records = parse_dataset("Fecha,Departamento_corr,Tipo\n20231399,Central,GRA\n")
    assert records[0].date == "2023-13-99"
    assert records[0].timestamp == 0


def test_no_valid_rows():
    with pytest.raises(NoValidRowsError):
        parse_dataset("Fecha,Departamento_corr,Tipo\nxx,Central,GRA\n20230101,,GRA\n")


def test_coordinates_comma_decimal(sample_csv):
    _, records = parse_dataset(sample_csv)
    assert records[0].latitude == pytest.approx(-25.30)
    assert records[0].longitude == pytest.approx(-57.60)


def test_coordinates_all_or_nothing(sample_csv):
    _, records = parse_dataset(sample_csv)
    for r in records:
        if r.latitude is None or r.longitude is None:
            assert r.latitude is None and r.longitude is None
        else:
            assert math.isfinite(r.latitude) and -90 <= r.latitude <= 90
            assert math.isfinite(r.longitude) and -180 <= r.longitude <= 180
    # missing coordinates, and latitude 95 out of range
    assert not records[3].has_coordinates()
    assert not records[4].has_coordinates()


@pytest.mark.parametrize("lat,lon", [("-25.1", ""), ("abc", "-57"), ("-25", "181"), ("nan", "1"), ("inf", "2")])
def test_partial_or_invalid_pairs_are_cleared(lat, lon):
    text = f"Fecha,Departamento_corr,Tipo,Latitud,Longitud\n20230115,Central,GRA,{lat},{lon}\n"
    _, records = parse_dataset(text)
    assert records[0].latitude is None and records[0].longitude is None


@pytest.mark.parametrize("coord,expected", [
    ('"-25.3,-57.6"', (-25.3, -57.6)),
    ('"-25.3, -57.6"', (-25.3, -57.6)),
    ('"-25,3; -57,6"', (-25.3, -57.6)),
    ("-25.3 -57.6 120", (-25.3, -57.6)),
])
def test_combined_coordinates_column(coord, expected):
    text = f"Fecha,Departamento_corr,Tipo,Coordenadas\n20230115,Central,GRA,{coord}\n"
    _, records = parse_dataset(text)
    assert (records[0].latitude, records[0].longitude) == pytest.approx(expected)
    assert records[0].fields["Coordenadas"] == coord.strip('"')


@pytest.mark.parametrize("coord", ['"95,-57"', '"-25.3,abc"', "-25.3", "n/a"])
def test_combined_coordinates_all_or_nothing(coord):
    text = f"Fecha,Departamento_corr,Tipo,Coord\n20230115,Central,GRA,{coord}\n"
    _, records = parse_dataset(text)
    assert records[0].latitude is None and records[0].longitude is None


def test_separate_pair_wins_over_combined_column():
    text = "Fecha,Departamento_corr,Tipo,Latitud,Longitud,Coordenadas\n20230115,Central,GRA,-25,-57,\"-20,-50\"\n"
    _, records = parse_dataset(text)
    assert (records[0].latitude, records[0].longitude) == (-25.0, -57.0)
    text = "Fecha,Departamento_corr,Tipo,Latitud,Longitud,Coordenadas\n20230115,Central,GRA,,,\"-20,-50\"\n"
    _, records = parse_dataset(text)
    assert (records[0].latitude, records[0].longitude) == (-20.0, -50.0)


def test_string_fields_trimmed():
    _, records = parse_dataset("Fecha , Departamento_corr ,Tipo,Extra\n 20230115 ,  Central , GRA ,  x  \n")
    r = records[0]
    assert r.category == "Central"
    assert r.fields == {"Fecha": "2023-01-15", "Departamento_corr": "Central", "Tipo": "GRA", "Extra": "x"}


def test_schema_aliases_and_loose_matching():
    headers = ["fecha", "DEPARTAMENTO", "Tipo de fenómeno", "lat", "LONGITUD", "Descripción"]
    schema = FieldSchema(phenomenon=("Tipo de fenómeno",))
    resolved = resolve_schema(headers, schema)
    assert resolved["date"] == "fecha"
    assert resolved["category"] == "DEPARTAMENTO"
    assert resolved["phenomenon"] == "Tipo de fenómeno"
    assert resolved["latitude"] == "lat"
    assert resolved["longitude"] == "LONGITUD"
    assert resolved["description"] == "Descripción"
    assert resolved["source_url"] is None
    assert resolved["coordinates"] is None
    assert resolve_schema(["Fecha", "COORDENADAS"], FieldSchema())["coordinates"] == "COORDENADAS"


def test_is_valid_and_normalize_directly():
    headers, rows = parse_csv("Fecha,Departamento_corr,Tipo,Fuente\n20240229,Central,TOR,http://x\n")
    resolved = resolve_schema(headers, FieldSchema())
    assert is_valid(rows[0], resolved)
    r = normalize(rows[0], resolved)
    assert r.date == "2024-02-29"
    assert r.source_url == "http://x"


def test_load_file_csv(tmp_path, sample_csv):
    p = tmp_path / "export.csv"
    p.write_text("\ufeff" + sample_csv, encoding="utf-8")
    headers, records = load_file(str(p))
    assert headers[0] == "Fecha"
    assert len(records) == 5


def test_load_file_xlsx(tmp_path):
    pd = pytest.importorskip("pandas")
    pytest.importorskip("openpyxl")
    p = tmp_path / "export.xlsx"
    pd.DataFrame({
        "Fecha": ["20230115", "bad"],
        "Departamento_corr": ["Central", "Itapúa"],
        "Tipo": ["GRA", "RAF"],
        "Latitud": ["-25.3", "-27.0"],
        "Longitud": ["-57.6", "-55.0"],
    }).to_excel(p, index=False)
    headers, records = load_file(str(p))
    assert len(records) == 1
    assert records[0].latitude == pytest.approx(-25.3)
