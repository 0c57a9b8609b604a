import pytest

from sevdash.config import DashboardConfig
from sevdash.models import CanonicalRecord

SAMPLE_CSV = (
    'Fecha,Departamento_corr,Tipo,Latitud,Longitud,Descripcion\r\n'
    '20230115,Central,GRA,"-25,30","-57,60",Granizo fuerte\r\n'
    '20230116,Central,RAF,-25.1,-57.5,"dijo ""fuerte"", ayer"\r\n'
    '\r\n'
    '20230201,Itapúa,GRA,-27.3,-55.9,\r\n'
    '20230202,Itapúa,TOR,,,Sin coordenadas\r\n'
    '20230301,Alto Paraná,GRA,95,-54.6,Latitud fuera de rango\r\n'
)


class FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text


class FakeSession:
    """Stands in for requests.Session; `script` maps url -> outcome or list of outcomes."""

    def __init__(self, script):
        self.script = script
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        outcome = self.script[url]
        if isinstance(outcome, list):
            outcome = outcome.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class Clock:
    def __init__(self, t=1_700_000_000.0):
        self.t = t

    def __call__(self):
        return self.t


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV


@pytest.fixture
def config(tmp_path):
    return DashboardConfig(sheet_id="SHEET", gid="7", timeout=5.0, max_retries=3,
                           retry_delay=2.0, cache_dir=tmp_path / "cache")


@pytest.fixture
def make_record():
    def _make(category="Central", phenomenon="GRA", date="2023-01-15", timestamp=1673740800000,
              latitude=-25.0, longitude=-57.0, **fields):
        row = {"Fecha": date, "Departamento_corr": category, "Tipo": phenomenon}
        row.update(fields)
        if latitude is None or longitude is None:
            latitude = longitude = None
        return CanonicalRecord(fields=row, date=date, timestamp=timestamp, category=category,
                               phenomenon=phenomenon, latitude=latitude, longitude=longitude)
    return _make


@pytest.fixture
def session_factory():
    return FakeSession


@pytest.fixture
def response():
    return FakeResponse


@pytest.fixture
def clock():
    return Clock()
