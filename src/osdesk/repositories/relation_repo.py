from __future__ import annotations

from psycopg import Connection

from ..db import rows_as_dicts
from ..domain import Flag, RelationFilters

_JOINED = """
    FROM order_relation r
    LEFT JOIN service_order o ON o.id = r.order_id
    LEFT JOIN client c ON c.id = r.client_id
    LEFT JOIN modality m ON m.id = o.modality_id
    LEFT JOIN service s ON s.id = o.service_id
    LEFT JOIN consultant co ON co.id = o.consultant_id
"""


def _where(f: RelationFilters) -> tuple[str, list]:
    clauses: list[str] = []
    params: list = []
    if f.number:
        clauses.append("r.order_id = %s")
        params.append(f.number)
    if f.date_from:
        clauses.append("r.order_date >= %s")
        params.append(f.date_from)
    if f.date_to:
        clauses.append("r.order_date <= %s")
        params.append(f.date_to)
    if f.client_id:
        clauses.append("r.client_id = %s")
        params.append(f.client_id)
    if f.invoiced is not None:
        clauses.append("r.invoiced = %s")
        params.append(f.invoiced.value)
    if f.collected is not None:
        clauses.append("r.collected = %s")
        params.append(f.collected.value)
    return (" AND ".join(clauses) or "TRUE"), params


class RelationRepository:
    """Reporting rows mirroring service orders, one per order."""

    def count(
        self,
        conn: Connection,
        filters: RelationFilters,
        *,
        invoiced_only: bool = False,
        collected_only: bool = False,
    ) -> int:
        where, params = _where(filters)
        if invoiced_only:
            where += " AND r.invoiced = 'S'"
        if collected_only:
            where += " AND r.collected = 'S'"
        cur = conn.execute(f"SELECT COUNT(*) FROM order_relation r WHERE {where};", params)
        return int(cur.fetchone()[0])

    def list(
        self,
        conn: Connection,
        filters: RelationFilters,
        limit: int | None = 10,
        offset: int = 0,
    ) -> list[dict]:
        where, params = _where(filters)
        sql = f"""
            SELECT r.*, o.on_site_contact, o.start_time, o.end_time, o.discount_time,
                   o.transfer_time, o.detail, o.sent,
                   c.legal_name AS client_name, c.document AS client_document,
                   m.description AS modality_description, s.description AS service_description,
                   co.name AS consultant_name
            {_JOINED}
            WHERE {where}
            ORDER BY r.order_id DESC
        """
        if limit is not None:
            sql += " LIMIT %s OFFSET %s"
            params = [*params, limit, offset]
        cur = conn.execute(sql + ";", params)
        return rows_as_dicts(cur)

    def statistic_rows(self, conn: Connection, filters: RelationFilters) -> list[dict]:
        where, params = _where(filters)
        cur = conn.execute(
            f"""
            SELECT r.order_id, r.client_id, c.legal_name AS client_name,
                   r.total_time, r.invoiced, r.collected
            FROM order_relation r
            LEFT JOIN client c ON c.id = r.client_id
            WHERE {where}
            ORDER BY r.client_id, r.order_id;
            """,
            params,
        )
        return rows_as_dicts(cur)

    def exists(self, conn: Connection, order_id: int) -> bool:
        cur = conn.execute("SELECT COUNT(*) FROM order_relation WHERE order_id = %s;", (order_id,))
        return int(cur.fetchone()[0]) > 0

    def set_invoiced(self, conn: Connection, order_id: int, flag: Flag) -> None:
        conn.execute(
            "UPDATE order_relation SET invoiced = %s WHERE order_id = %s;",
            (flag.value, order_id),
        )

    def set_collected(self, conn: Connection, order_id: int, flag: Flag) -> None:
        conn.execute(
            "UPDATE order_relation SET collected = %s WHERE order_id = %s;",
            (flag.value, order_id),
        )

    def delete(self, conn: Connection, order_id: int) -> None:
        conn.execute("DELETE FROM order_relation WHERE order_id = %s;", (order_id,))
