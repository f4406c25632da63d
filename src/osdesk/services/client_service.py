from __future__ import annotations

import logging

from psycopg import Connection

from ..domain import ConflictError, NotFoundError, ValidationError
from ..pagination import Page
from ..repositories.client_repo import ClientRepository
from ..validation import (
    only_digits,
    parse_money,
    validate_cnpj,
    validate_cpf,
    validate_email,
    validate_money,
    validate_uf,
)

logger = logging.getLogger(__name__)

_FILTER_KEYS = ("id", "kind", "name", "document", "city", "state", "modality")


def _clean(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class ClientService:
    def __init__(self, *, client_repo: ClientRepository) -> None:
        self.client_repo = client_repo

    def _values(self, data: dict) -> dict:
        kind = (_clean(data.get("kind")) or "").upper()
        document = only_digits(_clean(data.get("document")))
        legal_name = _clean(data.get("legal_name"))
        if not (kind and document and legal_name):
            raise ValidationError("Type, document and legal name are required.")
        if kind not in ("F", "J"):
            raise ValidationError("Client type must be F (person) or J (company).")
        if kind == "F" and not validate_cpf(document):
            raise ValidationError("Invalid CPF.")
        if kind == "J" and not validate_cnpj(document):
            raise ValidationError("Invalid CNPJ.")

        state = _clean(data.get("state"))
        if state is not None:
            if not validate_uf(state):
                raise ValidationError(f"Invalid state: {state}.")
            state = state.upper()

        for key in ("order_email", "invoice_email"):
            email = _clean(data.get(key))
            if email is not None and not validate_email(email):
                raise ValidationError(f"Invalid e-mail: {email}.")

        rate = _clean(data.get("hourly_rate"))
        if rate is not None and not validate_money(rate):
            raise ValidationError(f"Invalid hourly rate: {rate}.")

        modality = _clean(data.get("modality_id"))
        try:
            modality_id = int(modality) if modality else None
        except ValueError:
            raise ValidationError(f"Invalid modality: {modality}.") from None

        return {
            "kind": kind,
            "document": document,
            "legal_name": legal_name,
            "trade_name": _clean(data.get("trade_name")),
            "city": _clean(data.get("city")),
            "state": state,
            "contact": _clean(data.get("contact")),
            "order_email": _clean(data.get("order_email")),
            "invoice_email": _clean(data.get("invoice_email")),
            "modality_id": modality_id,
            "hourly_rate": parse_money(rate) if rate is not None else None,
        }

    def _require(self, conn: Connection, client_id: int) -> dict:
        client = self.client_repo.get(conn, client_id)
        if client is None:
            raise NotFoundError(f"Client {client_id} not found.")
        return client

    def list_clients(self, conn: Connection, params: dict) -> dict:
        filters = {k: params.get(k) for k in _FILTER_KEYS if params.get(k) not in (None, "")}
        if "document" in filters:
            filters["document"] = only_digits(filters["document"]) or None
        if "state" in filters:
            filters["state"] = str(filters["state"]).upper()
        total = self.client_repo.count(conn, filters)
        page = Page.build(params.get("page"), params.get("per_page"), total)
        rows = self.client_repo.list(conn, filters, limit=page.per_page, offset=page.offset)
        return {"clients": rows, **page.to_dict()}

    def get_client(self, conn: Connection, client_id: int) -> dict:
        return self._require(conn, client_id)

    def create_client(self, conn: Connection, data: dict) -> int:
        values = self._values(data)
        if self.client_repo.document_taken(conn, values["document"]):
            raise ConflictError("A client with this document already exists.")
        client_id = self.client_repo.create(conn, values)
        logger.info("Created client %s (%s)", client_id, values["legal_name"])
        return client_id

    def update_client(self, conn: Connection, client_id: int, data: dict) -> None:
        values = self._values(data)
        self._require(conn, client_id)
        if self.client_repo.document_taken(conn, values["document"], exclude_id=client_id):
            raise ConflictError("Another client already uses this document.")
        self.client_repo.update(conn, client_id, values)
        logger.info("Updated client %s", client_id)

    def can_delete(self, conn: Connection, client_id: int) -> tuple[bool, str]:
        if self.client_repo.count_orders(conn, client_id) > 0:
            return False, "This client is linked to one or more service orders and cannot be deleted."
        return True, ""

    def delete_client(self, conn: Connection, client_id: int) -> None:
        self._require(conn, client_id)
        ok, message = self.can_delete(conn, client_id)
        if not ok:
            raise ConflictError(message)
        self.client_repo.delete(conn, client_id)
        logger.info("Deleted client %s", client_id)
