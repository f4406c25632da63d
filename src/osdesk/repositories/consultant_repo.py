from __future__ import annotations

from psycopg import Connection

from ..db import row_as_dict, rows_as_dicts


def _where(filters: dict) -> tuple[str, list]:
    clauses: list[str] = []
    params: list = []
    if filters.get("id"):
        clauses.append("id = %s")
        params.append(filters["id"])
    for key, column in (("name", "name"), ("email", "email"), ("field", "field")):
        if filters.get(key):
            clauses.append(f"{column} ILIKE %s")
            params.append(f"%{filters[key]}%")
    return (" AND ".join(clauses) or "TRUE"), params


class ConsultantRepository:
    def count(self, conn: Connection, filters: dict) -> int:
        where, params = _where(filters)
        cur = conn.execute(f"SELECT COUNT(*) FROM consultant WHERE {where};", params)
        return int(cur.fetchone()[0])

    def list(self, conn: Connection, filters: dict, limit: int = 50, offset: int = 0) -> list[dict]:
        where, params = _where(filters)
        cur = conn.execute(
            f"""
            SELECT id, name, phone, email, field, hourly_rate
            FROM consultant
            WHERE {where}
            ORDER BY name
            LIMIT %s OFFSET %s;
            """,
            (*params, limit, offset),
        )
        return rows_as_dicts(cur)

    def get(self, conn: Connection, consultant_id: int) -> dict | None:
        cur = conn.execute(
            "SELECT id, name, phone, email, field, hourly_rate FROM consultant WHERE id = %s;",
            (consultant_id,),
        )
        return row_as_dict(cur)

    def create(self, conn: Connection, *, name: str, phone: str | None, email: str | None,
               field: str | None, hourly_rate: float | None) -> int:
        cur = conn.execute(
            """
            INSERT INTO consultant(name, phone, email, field, hourly_rate)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (name, phone, email, field, hourly_rate),
        )
        return int(cur.fetchone()[0])

    def update(self, conn: Connection, consultant_id: int, *, name: str, phone: str | None,
               email: str | None, field: str | None, hourly_rate: float | None) -> None:
        conn.execute(
            """
            UPDATE consultant
            SET name = %s, phone = %s, email = %s, field = %s, hourly_rate = %s
            WHERE id = %s;
            """,
            (name, phone, email, field, hourly_rate, consultant_id),
        )

    def delete(self, conn: Connection, consultant_id: int) -> None:
        conn.execute("DELETE FROM consultant WHERE id = %s;", (consultant_id,))

    def count_orders(self, conn: Connection, consultant_id: int) -> int:
        cur = conn.execute(
            "SELECT COUNT(*) FROM service_order WHERE consultant_id = %s;", (consultant_id,)
        )
        return int(cur.fetchone()[0])
