from __future__ import annotations

from datetime import date

from psycopg import Connection

MONTH_NAMES = (
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
)


def _month_start(d: date, back: int = 0) -> date:
    index = d.year * 12 + (d.month - 1) - back
    return date(index // 12, index % 12 + 1, 1)


def last_months(today: date, count: int = 6) -> list[date]:
    """First day of each of the last ``count`` months, oldest first, current month included."""
    return [_month_start(today, back) for back in range(count - 1, -1, -1)]


def _scalar(conn: Connection, sql: str, params: tuple = ()) -> int:
    cur = conn.execute(sql, params)
    return int(cur.fetchone()[0])


def dashboard_stats(conn: Connection, today: date) -> dict:
    month_start = _month_start(today)
    next_month = _month_start(today, -1)
    months = last_months(today)

    cur = conn.execute(
        """
        SELECT date_trunc('month', order_date)::date AS month, COUNT(*) AS total
        FROM service_order
        WHERE order_date >= %s AND order_date < %s
        GROUP BY 1;
        """,
        (months[0], next_month),
    )
    per_month = {row[0]: int(row[1]) for row in cur.fetchall()}

    cur = conn.execute(
        """
        SELECT COALESCE(m.description, 'Sem modalidade') AS modality, COUNT(*) AS total
        FROM service_order o
        LEFT JOIN modality m ON m.id = o.modality_id
        GROUP BY 1
        ORDER BY total DESC, modality;
        """
    )
    per_modality = [{"modality": row[0], "total": int(row[1])} for row in cur.fetchall()]

    return {
        "total_clients": _scalar(conn, "SELECT COUNT(*) FROM client;"),
        "orders_this_month": _scalar(
            conn,
            "SELECT COUNT(*) FROM service_order WHERE order_date >= %s AND order_date < %s;",
            (month_start, next_month),
        ),
        "open_orders": _scalar(conn, "SELECT COUNT(*) FROM service_order WHERE sent = 'N';"),
        "not_invoiced": _scalar(conn, "SELECT COUNT(*) FROM order_relation WHERE invoiced <> 'S';"),
        "orders_by_month": [
            {"label": MONTH_NAMES[m.month - 1], "month": m.strftime("%Y-%m"), "total": per_month.get(m, 0)}
            for m in months
        ],
        "orders_by_modality": per_modality,
    }
