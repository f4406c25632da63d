from __future__ import annotations

import logging
from pathlib import Path

from psycopg import Connection

from ..domain import Flag, NotFoundError, RelationFilters, ValidationError
from ..pagination import Page
from ..pdf import PdfRenderer
from ..repositories.client_repo import ClientRepository
from ..repositories.relation_repo import RelationRepository
from ..statistics import RelationStatistics, StatisticsSummary
from ..validation import date_from_db

logger = logging.getLogger(__name__)


def _display(row: dict) -> dict:
    out = dict(row)
    out["order_date"] = date_from_db(row.get("order_date"))
    return out


class RelationService:
    """Invoicing/collection tracking over the order relation."""

    def __init__(self, *, relation_repo: RelationRepository, client_repo: ClientRepository) -> None:
        self.relation_repo = relation_repo
        self.client_repo = client_repo
        self.stats = RelationStatistics(relation_repo)

    def _echo_filters(self, conn: Connection, params: dict, filters: RelationFilters) -> dict:
        echoed = {
            k: params.get(k)
            for k in ("number", "date_from", "date_to", "client", "invoiced", "collected")
            if params.get(k) not in (None, "")
        }
        if filters.client_id:
            name = self.client_repo.get_name(conn, filters.client_id)
            if name:
                echoed["client_name"] = name
        return echoed

    def statistics(self, conn: Connection, params: dict) -> StatisticsSummary:
        return self.stats.compute(conn, RelationFilters.from_params(params))

    def list_relation(self, conn: Connection, params: dict) -> dict:
        filters = RelationFilters.from_params(params)
        total = self.relation_repo.count(conn, filters)
        page = Page.build(params.get("page"), params.get("per_page"), total)
        rows = self.relation_repo.list(conn, filters, limit=page.per_page, offset=page.offset)
        return {
            "relation": [_display(r) for r in rows],
            **page.to_dict(),
            "statistics": self.stats.compute(conn, filters).to_dict(),
            "filters": self._echo_filters(conn, params, filters),
        }

    def _set_flag(self, conn: Connection, order_id: int, value, what: str, setter) -> Flag:
        flag = Flag.parse(value)
        if flag is None:
            raise ValidationError(f"Invalid {what} status: {value!r} (expected S or N).")
        if not self.relation_repo.exists(conn, order_id):
            raise NotFoundError(f"Service order {order_id} not found.")
        setter(conn, order_id, flag)
        logger.info("Order %s %s status set to %s", order_id, what, flag.value)
        return flag

    def set_invoiced(self, conn: Connection, order_id: int, value) -> Flag:
        return self._set_flag(conn, order_id, value, "invoicing", self.relation_repo.set_invoiced)

    def set_collected(self, conn: Connection, order_id: int, value) -> Flag:
        return self._set_flag(conn, order_id, value, "collection", self.relation_repo.set_collected)

    def relation_pdf(self, conn: Connection, params: dict, renderer: PdfRenderer) -> Path:
        filters = RelationFilters.from_params(params)
        rows = self.relation_repo.list(conn, filters, limit=None)
        summary = self.stats.compute(conn, filters)
        return renderer.render_relation(rows, summary.to_dict(), self._echo_filters(conn, params, filters))
