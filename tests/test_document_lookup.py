import pytest
import requests

from osdesk.config import LookupConfig
from osdesk.domain import ValidationError
from osdesk.services import document_lookup
from osdesk.services.document_lookup import DocumentLookup, DocumentLookupError


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


CNPJ_PAYLOAD = {
    "razao_social": "EMPRESA EXEMPLO LTDA",
    "nome_fantasia": "",
    "municipio": "SAO PAULO",
    "uf": "SP",
}


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    sleeps = []
    monkeypatch.setattr(document_lookup.time, "sleep", sleeps.append)
    return sleeps


def _lookup(*responses, **cfg):
    session = FakeSession(*responses)
    return DocumentLookup(LookupConfig(base_url="https://api.test/cnpj", **cfg), session=session), session


def test_cnpj_lookup_maps_registry_fields():
    lookup, session = _lookup(FakeResponse(payload=CNPJ_PAYLOAD))
    info = lookup.lookup("11.222.333/0001-81", "J")
    assert info.to_dict() == {
        "document": "11.222.333/0001-81",
        "legal_name": "EMPRESA EXEMPLO LTDA",
        "trade_name": None,
        "city": "SAO PAULO",
        "state": "SP",
    }
    assert session.calls == [("https://api.test/cnpj/11222333000181", 10.0)]


def test_cpf_has_no_remote_source():
    lookup, session = _lookup()
    info = lookup.lookup("52998224725", "F")
    assert info.document == "529.982.247-25"
    assert info.legal_name is None
    assert session.calls == []


@pytest.mark.parametrize(
    "document, kind",
    [(None, "J"), ("11222333000181", "X"), ("1122233300018", "J"), ("11222333000181", "F"), ("11222333000182", "J")],
)
def test_rejects_bad_documents(document, kind):
    lookup, _ = _lookup()
    with pytest.raises(ValidationError):
        lookup.lookup(document, kind)


def test_retries_with_backoff(no_sleep):
    lookup, session = _lookup(
        requests.ConnectionError("reset"),
        FakeResponse(status_code=503),
        FakeResponse(payload=CNPJ_PAYLOAD),
        max_retries=2,
        retry_backoff=0.5,
    )
    assert lookup.lookup("11222333000181", "J").state == "SP"
    assert len(session.calls) == 3
    assert no_sleep == [0.5, 1.0]


def test_gives_up_after_retries():
    lookup, session = _lookup(
        requests.Timeout("slow"),
        requests.Timeout("slow"),
        max_retries=1,
    )
    with pytest.raises(DocumentLookupError):
        lookup.lookup("11222333000181", "J")
    assert len(session.calls) == 2


def test_not_found_is_not_retried():
    lookup, session = _lookup(FakeResponse(status_code=404), FakeResponse(payload=CNPJ_PAYLOAD))
    with pytest.raises(DocumentLookupError, match="not found"):
        lookup.lookup("11222333000181", "J")
    assert len(session.calls) == 1
