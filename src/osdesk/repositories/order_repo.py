from __future__ import annotations

from psycopg import Connection

from ..db import row_as_dict, rows_as_dicts
from ..domain import OrderFilters, OrderState

FIELDS = (
    "client_id",
    "modality_id",
    "on_site_contact",
    "order_date",
    "start_time",
    "end_time",
    "discount_time",
    "transfer_time",
    "total_time",
    "service_id",
    "consultant_id",
    "detail",
)

_JOINED = """
    FROM service_order o
    LEFT JOIN client c ON c.id = o.client_id
    LEFT JOIN modality m ON m.id = o.modality_id
    LEFT JOIN service s ON s.id = o.service_id
    LEFT JOIN consultant co ON co.id = o.consultant_id
"""

_JOINED_COLUMNS = """
    o.*, c.legal_name AS client_name, c.document AS client_document, c.kind AS client_kind,
    c.order_email AS client_order_email, m.description AS modality_description,
    s.description AS service_description, co.name AS consultant_name
"""


def _where(f: OrderFilters) -> tuple[str, list]:
    clauses: list[str] = []
    params: list = []
    if f.number:
        clauses.append("o.id = %s")
        params.append(f.number)
    if f.date_from:
        clauses.append("o.order_date >= %s")
        params.append(f.date_from)
    if f.date_to:
        clauses.append("o.order_date <= %s")
        params.append(f.date_to)
    if f.client_id:
        clauses.append("o.client_id = %s")
        params.append(f.client_id)
    if f.modality_id:
        clauses.append("o.modality_id = %s")
        params.append(f.modality_id)
    if f.service_id:
        clauses.append("o.service_id = %s")
        params.append(f.service_id)
    if f.consultant_id:
        clauses.append("o.consultant_id = %s")
        params.append(f.consultant_id)
    if f.sent is not None:
        clauses.append("o.sent = %s")
        params.append(f.sent.value)
    return (" AND ".join(clauses) or "TRUE"), params


class OrderRepository:
    def count(self, conn: Connection, filters: OrderFilters) -> int:
        where, params = _where(filters)
        cur = conn.execute(f"SELECT COUNT(*) FROM service_order o WHERE {where};", params)
        return int(cur.fetchone()[0])

    def list(self, conn: Connection, filters: OrderFilters, limit: int = 10, offset: int = 0) -> list[dict]:
        where, params = _where(filters)
        cur = conn.execute(
            f"SELECT {_JOINED_COLUMNS} {_JOINED} WHERE {where} ORDER BY o.id DESC LIMIT %s OFFSET %s;",
            (*params, limit, offset),
        )
        return rows_as_dicts(cur)

    def get(self, conn: Connection, order_id: int) -> dict | None:
        cur = conn.execute(f"SELECT {_JOINED_COLUMNS} {_JOINED} WHERE o.id = %s;", (order_id,))
        return row_as_dict(cur)

    def get_state(self, conn: Connection, order_id: int) -> OrderState | None:
        cur = conn.execute("SELECT sent FROM service_order WHERE id = %s;", (order_id,))
        row = cur.fetchone()
        if not row:
            return None
        return OrderState.parse(row[0])

    def create(self, conn: Connection, values: dict) -> int:
        cur = conn.execute(
            f"""
            INSERT INTO service_order({", ".join(FIELDS)}, sent)
            VALUES ({", ".join(["%s"] * len(FIELDS))}, %s)
            RETURNING id;
            """,
            (*(values.get(f) for f in FIELDS), OrderState.OPEN.value),
        )
        return int(cur.fetchone()[0])

    def update(self, conn: Connection, order_id: int, values: dict) -> None:
        # the sent flag is only written by mark_sent
        assignments = ", ".join(f"{f} = %s" for f in FIELDS)
        conn.execute(
            f"UPDATE service_order SET {assignments} WHERE id = %s AND sent = %s;",
            (*(values.get(f) for f in FIELDS), order_id, OrderState.OPEN.value),
        )

    def mark_sent(self, conn: Connection, order_id: int) -> None:
        conn.execute(
            "UPDATE service_order SET sent = %s WHERE id = %s;",
            (OrderState.SENT.value, order_id),
        )

    def delete(self, conn: Connection, order_id: int) -> None:
        conn.execute(
            "DELETE FROM service_order WHERE id = %s AND sent = %s;",
            (order_id, OrderState.OPEN.value),
        )
