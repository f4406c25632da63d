from __future__ import annotations

from psycopg import Connection

from ..db import row_as_dict, rows_as_dicts

FIELDS = (
    "kind",
    "document",
    "legal_name",
    "trade_name",
    "city",
    "state",
    "contact",
    "order_email",
    "invoice_email",
    "modality_id",
    "hourly_rate",
)


def _where(filters: dict) -> tuple[str, list]:
    clauses: list[str] = []
    params: list = []
    if filters.get("id"):
        clauses.append("c.id = %s")
        params.append(filters["id"])
    if filters.get("kind"):
        clauses.append("c.kind = %s")
        params.append(filters["kind"])
    if filters.get("name"):
        clauses.append("c.legal_name ILIKE %s")
        params.append(f"%{filters['name']}%")
    if filters.get("document"):
        clauses.append("c.document LIKE %s")
        params.append(f"%{filters['document']}%")
    if filters.get("city"):
        clauses.append("c.city ILIKE %s")
        params.append(f"%{filters['city']}%")
    if filters.get("state"):
        clauses.append("c.state = %s")
        params.append(filters["state"])
    if filters.get("modality"):
        clauses.append("c.modality_id = %s")
        params.append(filters["modality"])
    return (" AND ".join(clauses) or "TRUE"), params


class ClientRepository:
    def count(self, conn: Connection, filters: dict) -> int:
        where, params = _where(filters)
        cur = conn.execute(f"SELECT COUNT(*) FROM client c WHERE {where};", params)
        return int(cur.fetchone()[0])

    def list(self, conn: Connection, filters: dict, limit: int = 50, offset: int = 0) -> list[dict]:
        where, params = _where(filters)
        cur = conn.execute(
            f"""
            SELECT c.*, m.description AS modality_description
            FROM client c
            LEFT JOIN modality m ON m.id = c.modality_id
            WHERE {where}
            ORDER BY c.id
            LIMIT %s OFFSET %s;
            """,
            (*params, limit, offset),
        )
        return rows_as_dicts(cur)

    def get(self, conn: Connection, client_id: int) -> dict | None:
        cur = conn.execute(
            """
            SELECT c.*, m.description AS modality_description
            FROM client c
            LEFT JOIN modality m ON m.id = c.modality_id
            WHERE c.id = %s;
            """,
            (client_id,),
        )
        return row_as_dict(cur)

    def get_name(self, conn: Connection, client_id: int) -> str | None:
        cur = conn.execute("SELECT legal_name FROM client WHERE id = %s;", (client_id,))
        row = cur.fetchone()
        return row[0] if row else None

    def document_taken(self, conn: Connection, document: str, exclude_id: int | None = None) -> bool:
        cur = conn.execute(
            "SELECT COUNT(*) FROM client WHERE document = %s AND id <> %s;",
            (document, exclude_id or 0),
        )
        return int(cur.fetchone()[0]) > 0

    def create(self, conn: Connection, values: dict) -> int:
        cur = conn.execute(
            f"""
            INSERT INTO client({", ".join(FIELDS)})
            VALUES ({", ".join(["%s"] * len(FIELDS))})
            RETURNING id;
            """,
            tuple(values.get(f) for f in FIELDS),
        )
        return int(cur.fetchone()[0])

    def update(self, conn: Connection, client_id: int, values: dict) -> None:
        assignments = ", ".join(f"{f} = %s" for f in FIELDS)
        conn.execute(
            f"UPDATE client SET {assignments} WHERE id = %s;",
            (*(values.get(f) for f in FIELDS), client_id),
        )

    def delete(self, conn: Connection, client_id: int) -> None:
        conn.execute("DELETE FROM client WHERE id = %s;", (client_id,))

    def count_orders(self, conn: Connection, client_id: int) -> int:
        cur = conn.execute("SELECT COUNT(*) FROM service_order WHERE client_id = %s;", (client_id,))
        return int(cur.fetchone()[0])
