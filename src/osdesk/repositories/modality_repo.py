from __future__ import annotations

from psycopg import Connection

from ..db import row_as_dict, rows_as_dicts


def _where(filters: dict) -> tuple[str, list]:
    clauses: list[str] = []
    params: list = []
    if filters.get("id"):
        clauses.append("id = %s")
        params.append(filters["id"])
    if filters.get("description"):
        clauses.append("description ILIKE %s")
        params.append(f"%{filters['description']}%")
    return (" AND ".join(clauses) or "TRUE"), params


class ModalityRepository:
    def count(self, conn: Connection, filters: dict) -> int:
        where, params = _where(filters)
        cur = conn.execute(f"SELECT COUNT(*) FROM modality WHERE {where};", params)
        return int(cur.fetchone()[0])

    def list(self, conn: Connection, filters: dict, limit: int = 50, offset: int = 0) -> list[dict]:
        where, params = _where(filters)
        cur = conn.execute(
            f"""
            SELECT id, description
            FROM modality
            WHERE {where}
            ORDER BY description
            LIMIT %s OFFSET %s;
            """,
            (*params, limit, offset),
        )
        return rows_as_dicts(cur)

    def get(self, conn: Connection, modality_id: int) -> dict | None:
        cur = conn.execute("SELECT id, description FROM modality WHERE id = %s;", (modality_id,))
        return row_as_dict(cur)

    def create(self, conn: Connection, *, description: str) -> int:
        cur = conn.execute(
            "INSERT INTO modality(description) VALUES (%s) RETURNING id;",
            (description,),
        )
        return int(cur.fetchone()[0])

    def update(self, conn: Connection, modality_id: int, *, description: str) -> None:
        conn.execute("UPDATE modality SET description = %s WHERE id = %s;", (description, modality_id))

    def delete(self, conn: Connection, modality_id: int) -> None:
        conn.execute("DELETE FROM modality WHERE id = %s;", (modality_id,))

    def count_clients(self, conn: Connection, modality_id: int) -> int:
        cur = conn.execute("SELECT COUNT(*) FROM client WHERE modality_id = %s;", (modality_id,))
        return int(cur.fetchone()[0])

    def count_orders(self, conn: Connection, modality_id: int) -> int:
        cur = conn.execute("SELECT COUNT(*) FROM service_order WHERE modality_id = %s;", (modality_id,))
        return int(cur.fetchone()[0])
