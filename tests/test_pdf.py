import os
import time

import pytest

from osdesk.pdf import PdfError
from osdesk.statistics import summarize


@pytest.fixture
def order():
    return {
        "id": 7,
        "order_date": "2024-03-15",
        "client_name": "ACME Ltda",
        "client_document": "11222333000181",
        "client_kind": "J",
        "on_site_contact": "Carlos",
        "modality_description": "Remoto",
        "service_description": "Suporte & manutenção",
        "consultant_name": "Maria",
        "start_time": "08:00",
        "end_time": "17:00",
        "discount_time": "01:00",
        "transfer_time": "00:30",
        "total_time": "08:30",
        "detail": "Migração <servidor>\nsegunda linha",
        "sent": "N",
    }


def _is_pdf(path):
    return path.read_bytes()[:4] == b"%PDF"


def test_order_pdf(pdf_renderer, order):
    path = pdf_renderer.render_order(order)
    assert path.name == "os_7.pdf"
    assert _is_pdf(path)


def test_order_without_id(pdf_renderer, order):
    with pytest.raises(PdfError):
        pdf_renderer.render_order({**order, "id": None})


def test_relation_pdf(pdf_renderer):
    rows = [
        {
            "order_id": i,
            "order_date": "2024-03-15",
            "client_id": 1,
            "client_name": "ACME",
            "service_description": "Suporte",
            "consultant_name": "Maria",
            "total_time": "01:30",
            "invoiced": "S" if i % 2 else "N",
            "collected": "N",
        }
        for i in range(1, 40)
    ]
    summary = summarize(rows).to_dict()
    path = pdf_renderer.render_relation(rows, summary, {"client_name": "ACME", "invoiced": "S"})
    assert path.name.startswith("relacao_os_")
    assert _is_pdf(path)


def test_relation_pdf_empty(pdf_renderer):
    path = pdf_renderer.render_relation([], summarize([]).to_dict(), {})
    assert _is_pdf(path)


def test_cleanup_removes_old_files(pdf_renderer, order):
    old = pdf_renderer.render_order(order)
    fresh = pdf_renderer.render_order({**order, "id": 8})
    past = time.time() - 3600
    os.utime(old, (past, past))

    assert pdf_renderer.cleanup(max_age=60) == 1
    assert not old.exists()
    assert fresh.exists()
