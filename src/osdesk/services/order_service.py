from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

from psycopg import Connection

from ..domain import (
    Flag,
    NotFoundError,
    OrderFilters,
    OrderInput,
    OrderLockedError,
    OrderState,
    ValidationError,
    ensure_mutable,
)
from ..durations import compute_total_duration
from ..pagination import Page
from ..pdf import PdfRenderer
from ..repositories.order_repo import OrderRepository
from ..repositories.relation_repo import RelationRepository
from ..validation import date_from_db, date_to_db, is_db_date, validate_duration, validate_time

logger = logging.getLogger(__name__)

_TIME_FIELDS = (
    ("start_time", "Start time"),
    ("end_time", "End time"),
    ("discount_time", "Discount time"),
    ("transfer_time", "Transfer time"),
)


def _display(order: dict) -> dict:
    out = dict(order)
    out["order_date"] = date_from_db(order.get("order_date"))
    return out


class OrderService:
    def __init__(self, *, order_repo: OrderRepository, relation_repo: RelationRepository) -> None:
        self.order_repo = order_repo
        self.relation_repo = relation_repo

    def _prepare(self, inp: OrderInput) -> dict:
        if not (inp.client_id and inp.order_date and inp.service_id and inp.consultant_id):
            raise ValidationError("Client, date, service and consultant are required.")

        order_date = date_to_db(inp.order_date)
        if not is_db_date(order_date):
            raise ValidationError(f"Invalid date: {inp.order_date} (expected DD/MM/YYYY).")

        for attr, label in _TIME_FIELDS:
            value = getattr(inp, attr)
            if value is not None and not validate_time(value):
                raise ValidationError(f"{label} must be HH:MM, got {value!r}.")
        if inp.total_time is not None and not validate_duration(inp.total_time):
            raise ValidationError(f"Total time must be HH:MM, got {inp.total_time!r}.")

        if inp.total_time is None and inp.start_time and inp.end_time:
            inp = replace(
                inp,
                total_time=compute_total_duration(
                    inp.start_time, inp.end_time, inp.discount_time, inp.transfer_time
                ),
            )

        return {
            "client_id": inp.client_id,
            "modality_id": inp.modality_id,
            "on_site_contact": inp.on_site_contact,
            "order_date": order_date,
            "start_time": inp.start_time,
            "end_time": inp.end_time,
            "discount_time": inp.discount_time,
            "transfer_time": inp.transfer_time,
            "total_time": inp.total_time,
            "service_id": inp.service_id,
            "consultant_id": inp.consultant_id,
            "detail": inp.detail,
        }

    def _state(self, conn: Connection, order_id: int) -> OrderState:
        state = self.order_repo.get_state(conn, order_id)
        if state is None:
            raise NotFoundError(f"Service order {order_id} not found.")
        return state

    def list_orders(self, conn: Connection, params: dict) -> dict:
        filters = OrderFilters.from_params(params)
        total = self.order_repo.count(conn, filters)
        page = Page.build(params.get("page"), params.get("per_page"), total)
        rows = self.order_repo.list(conn, filters, limit=page.per_page, offset=page.offset)
        return {"orders": [_display(r) for r in rows], **page.to_dict()}

    def get_order(self, conn: Connection, order_id: int) -> dict:
        order = self.order_repo.get(conn, order_id)
        if order is None:
            raise NotFoundError(f"Service order {order_id} not found.")
        return _display(order)

    def can_modify(self, conn: Connection, order_id: int) -> tuple[bool, str]:
        try:
            ensure_mutable(self._state(conn, order_id), "modified")
        except OrderLockedError as e:
            return False, str(e)
        return True, ""

    def create_order(self, conn: Connection, data: dict) -> int:
        values = self._prepare(OrderInput.from_payload(data))
        order_id = self.order_repo.create(conn, values)
        logger.info("Created service order %s (total %s)", order_id, values["total_time"])
        return order_id

    def update_order(self, conn: Connection, order_id: int, data: dict) -> None:
        inp = OrderInput.from_payload(data)
        ensure_mutable(self._state(conn, order_id), "changed")
        if inp.sent is Flag.YES:
            raise ValidationError("Orders are marked as sent only through the send operation.")
        values = self._prepare(inp)
        self.order_repo.update(conn, order_id, values)
        logger.info("Updated service order %s", order_id)

    def delete_order(self, conn: Connection, order_id: int) -> None:
        ensure_mutable(self._state(conn, order_id), "deleted")
        self.relation_repo.delete(conn, order_id)
        self.order_repo.delete(conn, order_id)
        logger.info("Deleted service order %s", order_id)

    def order_pdf(self, conn: Connection, order_id: int, renderer: PdfRenderer) -> Path:
        order = self.order_repo.get(conn, order_id)
        if order is None:
            raise NotFoundError(f"Service order {order_id} not found.")
        return renderer.render_order(order)

    def send_order(self, conn: Connection, order_id: int, renderer: PdfRenderer) -> Path:
        """Render the order PDF, record the dispatch to the client's order e-mail and lock the order.

        No mail is transmitted; the dispatch is only logged.
        """
        order = self.order_repo.get(conn, order_id)
        if order is None:
            raise NotFoundError(f"Service order {order_id} not found.")
        ensure_mutable(OrderState.parse(order.get("sent")), "sent again")

        email = order.get("client_order_email")
        if not email:
            raise ValidationError("The client has no e-mail address for service orders.")

        path = renderer.render_order(order)
        logger.info("Service order %s dispatched to %s with %s", order_id, email, path.name)
        self.order_repo.mark_sent(conn, order_id)
        return path
