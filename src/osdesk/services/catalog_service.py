from __future__ import annotations

import logging

from psycopg import Connection

from ..domain import ConflictError, NotFoundError, ValidationError
from ..pagination import Page
from ..repositories.consultant_repo import ConsultantRepository
from ..repositories.modality_repo import ModalityRepository
from ..repositories.service_repo import ServiceRepository
from ..validation import parse_money, validate_email, validate_money

logger = logging.getLogger(__name__)


def _clean(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _filters(params: dict, keys: tuple[str, ...]) -> dict:
    return {k: params.get(k) for k in keys if params.get(k) not in (None, "")}


def _listing(repo, conn: Connection, params: dict, keys: tuple[str, ...], name: str) -> dict:
    filters = _filters(params, keys)
    total = repo.count(conn, filters)
    page = Page.build(params.get("page"), params.get("per_page"), total)
    rows = repo.list(conn, filters, limit=page.per_page, offset=page.offset)
    return {name: rows, **page.to_dict()}


class ConsultantService:
    def __init__(self, *, consultant_repo: ConsultantRepository) -> None:
        self.consultant_repo = consultant_repo

    def _values(self, data: dict) -> dict:
        name = _clean(data.get("name"))
        if not name:
            raise ValidationError("Consultant name is required.")
        email = _clean(data.get("email"))
        if email is not None and not validate_email(email):
            raise ValidationError(f"Invalid e-mail: {email}.")
        rate = _clean(data.get("hourly_rate"))
        if rate is not None and not validate_money(rate):
            raise ValidationError(f"Invalid hourly rate: {rate}.")
        return {
            "name": name,
            "phone": _clean(data.get("phone")),
            "email": email,
            "field": _clean(data.get("field")),
            "hourly_rate": parse_money(rate) if rate is not None else None,
        }

    def _require(self, conn: Connection, consultant_id: int) -> dict:
        row = self.consultant_repo.get(conn, consultant_id)
        if row is None:
            raise NotFoundError(f"Consultant {consultant_id} not found.")
        return row

    def list_consultants(self, conn: Connection, params: dict) -> dict:
        return _listing(self.consultant_repo, conn, params, ("id", "name", "email", "field"), "consultants")

    def get_consultant(self, conn: Connection, consultant_id: int) -> dict:
        return self._require(conn, consultant_id)

    def create_consultant(self, conn: Connection, data: dict) -> int:
        values = self._values(data)
        consultant_id = self.consultant_repo.create(conn, **values)
        logger.info("Created consultant %s (%s)", consultant_id, values["name"])
        return consultant_id

    def update_consultant(self, conn: Connection, consultant_id: int, data: dict) -> None:
        values = self._values(data)
        self._require(conn, consultant_id)
        self.consultant_repo.update(conn, consultant_id, **values)
        logger.info("Updated consultant %s", consultant_id)

    def can_delete(self, conn: Connection, consultant_id: int) -> tuple[bool, str]:
        if self.consultant_repo.count_orders(conn, consultant_id) > 0:
            return False, "This consultant is linked to one or more service orders and cannot be deleted."
        return True, ""

    def delete_consultant(self, conn: Connection, consultant_id: int) -> None:
        self._require(conn, consultant_id)
        ok, message = self.can_delete(conn, consultant_id)
        if not ok:
            raise ConflictError(message)
        self.consultant_repo.delete(conn, consultant_id)
        logger.info("Deleted consultant %s", consultant_id)


class ServiceTypeService:
    """Service catalog (the kinds of work an order is booked against)."""

    def __init__(self, *, service_repo: ServiceRepository) -> None:
        self.service_repo = service_repo

    @staticmethod
    def _description(data: dict) -> str:
        description = _clean(data.get("description"))
        if not description:
            raise ValidationError("Service description is required.")
        return description

    def _require(self, conn: Connection, service_id: int) -> dict:
        row = self.service_repo.get(conn, service_id)
        if row is None:
            raise NotFoundError(f"Service {service_id} not found.")
        return row

    def list_services(self, conn: Connection, params: dict) -> dict:
        return _listing(self.service_repo, conn, params, ("id", "description"), "services")

    def get_service(self, conn: Connection, service_id: int) -> dict:
        return self._require(conn, service_id)

    def create_service(self, conn: Connection, data: dict) -> int:
        description = self._description(data)
        service_id = self.service_repo.create(conn, description=description)
        logger.info("Created service %s (%s)", service_id, description)
        return service_id

    def update_service(self, conn: Connection, service_id: int, data: dict) -> None:
        description = self._description(data)
        self._require(conn, service_id)
        self.service_repo.update(conn, service_id, description=description)
        logger.info("Updated service %s", service_id)

    def can_delete(self, conn: Connection, service_id: int) -> tuple[bool, str]:
        if self.service_repo.count_orders(conn, service_id) > 0:
            return False, "This service is linked to one or more service orders and cannot be deleted."
        return True, ""

    def delete_service(self, conn: Connection, service_id: int) -> None:
        self._require(conn, service_id)
        ok, message = self.can_delete(conn, service_id)
        if not ok:
            raise ConflictError(message)
        self.service_repo.delete(conn, service_id)
        logger.info("Deleted service %s", service_id)


class ModalityService:
    def __init__(self, *, modality_repo: ModalityRepository) -> None:
        self.modality_repo = modality_repo

    @staticmethod
    def _description(data: dict) -> str:
        description = _clean(data.get("description"))
        if not description:
            raise ValidationError("Modality description is required.")
        return description

    def _require(self, conn: Connection, modality_id: int) -> dict:
        row = self.modality_repo.get(conn, modality_id)
        if row is None:
            raise NotFoundError(f"Modality {modality_id} not found.")
        return row

    def list_modalities(self, conn: Connection, params: dict) -> dict:
        return _listing(self.modality_repo, conn, params, ("id", "description"), "modalities")

    def get_modality(self, conn: Connection, modality_id: int) -> dict:
        return self._require(conn, modality_id)

    def create_modality(self, conn: Connection, data: dict) -> int:
        description = self._description(data)
        modality_id = self.modality_repo.create(conn, description=description)
        logger.info("Created modality %s (%s)", modality_id, description)
        return modality_id

    def update_modality(self, conn: Connection, modality_id: int, data: dict) -> None:
        description = self._description(data)
        self._require(conn, modality_id)
        self.modality_repo.update(conn, modality_id, description=description)
        logger.info("Updated modality %s", modality_id)

    def can_delete(self, conn: Connection, modality_id: int) -> tuple[bool, str]:
        if self.modality_repo.count_clients(conn, modality_id) > 0:
            return False, "This modality is assigned to one or more clients and cannot be deleted."
        if self.modality_repo.count_orders(conn, modality_id) > 0:
            return False, "This modality is linked to one or more service orders and cannot be deleted."
        return True, ""

    def delete_modality(self, conn: Connection, modality_id: int) -> None:
        self._require(conn, modality_id)
        ok, message = self.can_delete(conn, modality_id)
        if not ok:
            raise ConflictError(message)
        self.modality_repo.delete(conn, modality_id)
        logger.info("Deleted modality %s", modality_id)
