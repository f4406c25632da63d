from __future__ import annotations

import csv
import json
import logging
from pathlib import Path

from psycopg import Connection

from .domain import ConflictError, ValidationError
from .repositories.service_repo import ServiceRepository
from .services.client_service import ClientService

logger = logging.getLogger(__name__)


class ImportError(Exception):
    pass


def import_clients_csv(conn: Connection, path: str | Path, client_service: ClientService) -> int:
    """Rows with a bad or duplicate document are skipped and logged."""
    p = Path(path)
    if not p.exists():
        raise ImportError(f"File not found: {p}")

    count = 0
    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        required = {"kind", "document", "legal_name"}
        if not required.issubset(set(reader.fieldnames or [])):
            raise ImportError(f"CSV must contain columns: {sorted(required)}")

        for line, row in enumerate(reader, start=2):
            if not (row.get("legal_name") or "").strip():
                continue
            try:
                client_service.create_client(conn, row)
            except (ValidationError, ConflictError) as e:
                logger.warning("Skipping CSV line %d: %s", line, e)
                continue
            count += 1
    logger.info("Imported %d clients from %s", count, p.name)
    return count


def import_services_json(conn: Connection, path: str | Path, service_repo: ServiceRepository) -> int:
    """Accepts a list of strings or of ``{"description": ...}`` objects; existing descriptions are kept."""
    p = Path(path)
    if not p.exists():
        raise ImportError(f"File not found: {p}")

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except Exception as e:
        raise ImportError(f"Invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise ImportError("JSON must be a list")

    count = 0
    for obj in data:
        if isinstance(obj, dict):
            description = str(obj.get("description", "")).strip()
        elif isinstance(obj, str):
            description = obj.strip()
        else:
            continue
        if not description or service_repo.get_by_description(conn, description):
            continue
        service_repo.create(conn, description=description)
        count += 1
    logger.info("Imported %d services from %s", count, p.name)
    return count
