"""Invoicing/collection statistics over order-relation rows.

Counts and times are split by the two binary flags. "Not invoiced" and "not
collected" figures are derived by subtracting from the grand total, so any
flag value other than ``S`` counts as "not".
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

import psycopg
from psycopg import Connection

from .domain import Flag, RelationFilters
from .durations import duration_seconds, minutes_to_time
from .repositories.relation_repo import RelationRepository

logger = logging.getLogger(__name__)


@dataclass
class ClientTotal:
    client_id: Optional[int]
    client_name: Optional[str]
    total_time: str


@dataclass
class StatisticsSummary:
    total_count: int = 0
    invoiced_count: int = 0
    not_invoiced_count: int = 0
    collected_count: int = 0
    not_collected_count: int = 0
    total_time: str = "00:00"
    invoiced_time: str = "00:00"
    not_invoiced_time: str = "00:00"
    collected_time: str = "00:00"
    not_collected_time: str = "00:00"
    invoiced_pct: int = 0
    not_invoiced_pct: int = 0
    collected_pct: int = 0
    not_collected_pct: int = 0
    clients: list[ClientTotal] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def percent(part: int, total: int) -> int:
    """Share of ``total`` rounded half away from zero; 0 when total is 0."""
    if total == 0:
        return 0
    ratio = Decimal(part) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _clock(seconds: int) -> str:
    return minutes_to_time(seconds // 60)


def _is_yes(value) -> bool:
    return Flag.parse(value) is Flag.YES


def summarize(
    rows: Iterable[dict],
    *,
    total_count: Optional[int] = None,
    invoiced_count: Optional[int] = None,
    collected_count: Optional[int] = None,
) -> StatisticsSummary:
    """Reduce relation rows in one pass.

    Rows need ``total_time``, ``invoiced``, ``collected`` and optionally
    ``client_id``/``client_name``. Counts that are not given are taken from
    the rows themselves.
    """
    rows_seen = invoiced_seen = collected_seen = 0
    total_sec = invoiced_sec = collected_sec = 0
    per_client: dict = {}

    for row in rows:
        seconds = duration_seconds(row.get("total_time"))
        rows_seen += 1
        total_sec += seconds
        if _is_yes(row.get("invoiced")):
            invoiced_seen += 1
            invoiced_sec += seconds
        if _is_yes(row.get("collected")):
            collected_seen += 1
            collected_sec += seconds

        client_id = row.get("client_id")
        if client_id not in per_client:
            per_client[client_id] = [row.get("client_name"), 0]
        per_client[client_id][1] += seconds

    summary = StatisticsSummary()
    summary.total_count = rows_seen if total_count is None else total_count
    summary.invoiced_count = invoiced_seen if invoiced_count is None else invoiced_count
    summary.collected_count = collected_seen if collected_count is None else collected_count
    summary.not_invoiced_count = summary.total_count - summary.invoiced_count
    summary.not_collected_count = summary.total_count - summary.collected_count

    not_invoiced_sec = total_sec - invoiced_sec
    not_collected_sec = total_sec - collected_sec
    summary.total_time = _clock(total_sec)
    summary.invoiced_time = _clock(invoiced_sec)
    summary.not_invoiced_time = _clock(not_invoiced_sec)
    summary.collected_time = _clock(collected_sec)
    summary.not_collected_time = _clock(not_collected_sec)

    summary.invoiced_pct = percent(invoiced_sec, total_sec)
    summary.not_invoiced_pct = percent(not_invoiced_sec, total_sec)
    summary.collected_pct = percent(collected_sec, total_sec)
    summary.not_collected_pct = percent(not_collected_sec, total_sec)

    summary.clients = [
        ClientTotal(client_id=cid, client_name=name, total_time=_clock(seconds))
        for cid, (name, seconds) in per_client.items()
    ]
    return summary


class RelationStatistics:
    """Runs the statistics sub-queries for a filter set.

    A failing sub-query leaves its figures at zero; the summary is always
    returned.
    """

    def __init__(self, relation_repo: RelationRepository) -> None:
        self.relation_repo = relation_repo

    def _attempt(self, what: str, fn, default):
        try:
            return fn()
        except psycopg.Error as e:
            logger.warning("Statistics sub-query '%s' failed, using default: %s", what, e)
            return default

    def compute(self, conn: Connection, filters: RelationFilters) -> StatisticsSummary:
        total = self._attempt("count", lambda: self.relation_repo.count(conn, filters), 0)
        invoiced = self._attempt(
            "count invoiced",
            lambda: self.relation_repo.count(conn, filters, invoiced_only=True),
            0,
        )
        collected = self._attempt(
            "count collected",
            lambda: self.relation_repo.count(conn, filters, collected_only=True),
            0,
        )
        rows = self._attempt(
            "duration rows", lambda: self.relation_repo.statistic_rows(conn, filters), []
        )
        return summarize(
            rows,
            total_count=total,
            invoiced_count=invoiced,
            collected_count=collected,
        )
