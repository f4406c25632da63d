"""
Shared fixtures: an in-memory store with fake repositories and a fake Db,
so services and the Flask API run without PostgreSQL.
"""
from contextlib import contextmanager
from pathlib import Path

import pytest

from osdesk.config import LookupConfig, PdfConfig
from osdesk.context import AppContext
from osdesk.domain import OrderState
from osdesk.pdf import PdfRenderer
from osdesk.services.catalog_service import ConsultantService, ModalityService, ServiceTypeService
from osdesk.services.client_service import ClientService
from osdesk.services.document_lookup import DocumentLookup
from osdesk.services.order_service import OrderService
from osdesk.services.relation_service import RelationService


VALID_CPF = "52998224725"
VALID_CNPJ = "11222333000181"


# =============================================================================
# Fake store and repositories
# =============================================================================

class Store:
    def __init__(self):
        self.modalities = {}
        self.clients = {}
        self.consultants = {}
        self.services = {}
        self.orders = {}
        self.relation = {}
        self._next = 0

    def next_id(self) -> int:
        self._next += 1
        return self._next


def _page(rows, limit, offset):
    rows = list(rows)
    if limit is None:
        return rows[offset:]
    return rows[offset:offset + limit]


class FakeCatalogRepo:
    table = ""

    def __init__(self, store: Store):
        self.store = store

    @property
    def rows(self) -> dict:
        return getattr(self.store, self.table)

    def _match(self, filters):
        out = list(self.rows.values())
        if filters.get("id"):
            out = [r for r in out if r["id"] == int(filters["id"])]
        return out

    def count(self, conn, filters):
        return len(self._match(filters))

    def list(self, conn, filters, limit=50, offset=0):
        return _page(self._match(filters), limit, offset)

    def get(self, conn, row_id):
        row = self.rows.get(row_id)
        return dict(row) if row else None

    def create(self, conn, **values):
        row_id = self.store.next_id()
        self.rows[row_id] = {"id": row_id, **values}
        return row_id

    def update(self, conn, row_id, **values):
        self.rows[row_id].update(values)

    def delete(self, conn, row_id):
        self.rows.pop(row_id, None)

    def _orders_with(self, key, value):
        return sum(1 for o in self.store.orders.values() if o.get(key) == value)


class FakeConsultantRepo(FakeCatalogRepo):
    table = "consultants"

    def count_orders(self, conn, consultant_id):
        return self._orders_with("consultant_id", consultant_id)


class FakeServiceRepo(FakeCatalogRepo):
    table = "services"

    def get_by_description(self, conn, description):
        for row in self.rows.values():
            if row["description"].lower() == description.lower():
                return dict(row)
        return None

    def count_orders(self, conn, service_id):
        return self._orders_with("service_id", service_id)


class FakeModalityRepo(FakeCatalogRepo):
    table = "modalities"

    def count_clients(self, conn, modality_id):
        return sum(1 for c in self.store.clients.values() if c.get("modality_id") == modality_id)

    def count_orders(self, conn, modality_id):
        return self._orders_with("modality_id", modality_id)


class FakeClientRepo(FakeCatalogRepo):
    table = "clients"

    def _match(self, filters):
        out = super()._match(filters)
        if filters.get("name"):
            needle = filters["name"].lower()
            out = [r for r in out if needle in r["legal_name"].lower()]
        return out

    def get_name(self, conn, client_id):
        row = self.rows.get(client_id)
        return row["legal_name"] if row else None

    def document_taken(self, conn, document, exclude_id=None):
        return any(r["document"] == document and r["id"] != exclude_id for r in self.rows.values())

    def create(self, conn, values):
        return super().create(conn, **values)

    def update(self, conn, client_id, values):
        super().update(conn, client_id, **values)

    def count_orders(self, conn, client_id):
        return self._orders_with("client_id", client_id)


class FakeOrderRepo:
    def __init__(self, store: Store):
        self.store = store

    def _joined(self, order):
        client = self.store.clients.get(order["client_id"], {})
        service = self.store.services.get(order["service_id"], {})
        consultant = self.store.consultants.get(order["consultant_id"], {})
        return {
            **order,
            "client_name": client.get("legal_name"),
            "client_document": client.get("document"),
            "client_kind": client.get("kind"),
            "client_order_email": client.get("order_email"),
            "modality_description": None,
            "service_description": service.get("description"),
            "consultant_name": consultant.get("name"),
        }

    def _match(self, filters):
        out = sorted(self.store.orders.values(), key=lambda o: o["id"], reverse=True)
        if filters.client_id:
            out = [o for o in out if o["client_id"] == filters.client_id]
        if filters.sent:
            out = [o for o in out if o["sent"] == filters.sent.value]
        return out

    def count(self, conn, filters):
        return len(self._match(filters))

    def list(self, conn, filters, limit=10, offset=0):
        return [self._joined(o) for o in _page(self._match(filters), limit, offset)]

    def get(self, conn, order_id):
        order = self.store.orders.get(order_id)
        return self._joined(order) if order else None

    def get_state(self, conn, order_id):
        order = self.store.orders.get(order_id)
        return OrderState.parse(order["sent"]) if order else None

    def _sync_relation(self, order):
        row = self.store.relation.setdefault(
            order["id"], {"order_id": order["id"], "invoiced": "N", "collected": "N"}
        )
        row.update(
            order_date=order["order_date"],
            client_id=order["client_id"],
            total_time=order["total_time"],
        )

    def create(self, conn, values):
        order_id = self.store.next_id()
        order = {"id": order_id, **values, "sent": "N"}
        self.store.orders[order_id] = order
        self._sync_relation(order)
        return order_id

    def update(self, conn, order_id, values):
        order = self.store.orders[order_id]
        if order["sent"] == "N":
            order.update(values)
            self._sync_relation(order)

    def mark_sent(self, conn, order_id):
        self.store.orders[order_id]["sent"] = "S"

    def delete(self, conn, order_id):
        if self.store.orders.get(order_id, {}).get("sent") == "N":
            del self.store.orders[order_id]


class FakeRelationRepo:
    def __init__(self, store: Store):
        self.store = store

    def _match(self, filters, invoiced_only=False, collected_only=False):
        out = sorted(self.store.relation.values(), key=lambda r: r["order_id"], reverse=True)
        if filters.client_id:
            out = [r for r in out if r["client_id"] == filters.client_id]
        if filters.invoiced:
            out = [r for r in out if r["invoiced"] == filters.invoiced.value]
        if filters.collected:
            out = [r for r in out if r["collected"] == filters.collected.value]
        if invoiced_only:
            out = [r for r in out if r["invoiced"] == "S"]
        if collected_only:
            out = [r for r in out if r["collected"] == "S"]
        return out

    def _joined(self, row):
        client = self.store.clients.get(row["client_id"], {})
        return {**row, "client_name": client.get("legal_name")}

    def count(self, conn, filters, *, invoiced_only=False, collected_only=False):
        return len(self._match(filters, invoiced_only, collected_only))

    def list(self, conn, filters, limit=10, offset=0):
        return [self._joined(r) for r in _page(self._match(filters), limit, offset)]

    def statistic_rows(self, conn, filters):
        return [self._joined(r) for r in self._match(filters)]

    def exists(self, conn, order_id):
        return order_id in self.store.relation

    def set_invoiced(self, conn, order_id, flag):
        self.store.relation[order_id]["invoiced"] = flag.value

    def set_collected(self, conn, order_id, flag):
        self.store.relation[order_id]["collected"] = flag.value

    def delete(self, conn, order_id):
        self.store.relation.pop(order_id, None)


# =============================================================================
# Fake Db and renderer
# =============================================================================

class FakeDb:
    def __init__(self):
        self.conn = object()
        self.commits = 0
        self.rollbacks = 0

    @contextmanager
    def session(self):
        yield self.conn

    @contextmanager
    def transaction(self):
        try:
            yield self.conn
            self.commits += 1
        except Exception:
            self.rollbacks += 1
            raise


class FakeRenderer:
    def __init__(self, output_dir: Path):
        self.output_dir = output_dir
        self.rendered = []

    def _write(self, name):
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / name
        path.write_bytes(b"%PDF-1.4 fake")
        return path

    def render_order(self, order):
        self.rendered.append(("order", order["id"]))
        return self._write(f"os_{order['id']}.pdf")

    def render_relation(self, rows, summary, filters):
        self.rendered.append(("relation", len(rows), summary, filters))
        return self._write("relacao_os_test.pdf")

    def cleanup(self, max_age=None):
        return 0


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def store():
    return Store()


@pytest.fixture
def conn():
    return object()


@pytest.fixture
def repos(store):
    return {
        "client": FakeClientRepo(store),
        "consultant": FakeConsultantRepo(store),
        "service": FakeServiceRepo(store),
        "modality": FakeModalityRepo(store),
        "order": FakeOrderRepo(store),
        "relation": FakeRelationRepo(store),
    }


@pytest.fixture
def renderer(tmp_path):
    return FakeRenderer(tmp_path / "pdf")


@pytest.fixture
def client_service(repos):
    return ClientService(client_repo=repos["client"])


@pytest.fixture
def order_service(repos):
    return OrderService(order_repo=repos["order"], relation_repo=repos["relation"])


@pytest.fixture
def relation_service(repos):
    return RelationService(relation_repo=repos["relation"], client_repo=repos["client"])


@pytest.fixture
def seeded(store, repos, conn):
    """One client, one consultant, one service and one modality."""
    modality_id = repos["modality"].create(conn, description="Remoto")
    client_id = repos["client"].create(
        conn,
        {
            "kind": "J",
            "document": VALID_CNPJ,
            "legal_name": "ACME Ltda",
            "order_email": "os@acme.com.br",
            "modality_id": modality_id,
        },
    )
    consultant_id = repos["consultant"].create(conn, name="Maria", phone=None, email=None, field=None, hourly_rate=None)
    service_id = repos["service"].create(conn, description="Suporte")
    return {
        "client_id": client_id,
        "consultant_id": consultant_id,
        "service_id": service_id,
        "modality_id": modality_id,
    }


@pytest.fixture
def order_payload(seeded):
    return {
        "client_id": seeded["client_id"],
        "order_date": "15/03/2024",
        "service_id": seeded["service_id"],
        "consultant_id": seeded["consultant_id"],
        "modality_id": seeded["modality_id"],
        "start_time": "08:00",
        "end_time": "17:00",
        "discount_time": "01:00",
        "transfer_time": "00:30",
        "detail": "Server migration",
    }


@pytest.fixture
def app_ctx(repos, renderer):
    return AppContext(
        db=FakeDb(),
        renderer=renderer,
        lookup=DocumentLookup(LookupConfig(retry_backoff=0)),
        service_repo=repos["service"],
        clients=ClientService(client_repo=repos["client"]),
        consultants=ConsultantService(consultant_repo=repos["consultant"]),
        services=ServiceTypeService(service_repo=repos["service"]),
        modalities=ModalityService(modality_repo=repos["modality"]),
        orders=OrderService(order_repo=repos["order"], relation_repo=repos["relation"]),
        relation=RelationService(relation_repo=repos["relation"], client_repo=repos["client"]),
    )


@pytest.fixture
def pdf_renderer(tmp_path):
    return PdfRenderer(PdfConfig(output_dir=tmp_path / "out", company_name="Teste Consultoria"))
