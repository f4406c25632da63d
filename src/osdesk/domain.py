from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .validation import date_to_db


class ValidationError(Exception):
    pass


class NotFoundError(Exception):
    pass


class ConflictError(Exception):
    pass


class OrderLockedError(ConflictError):
    pass


class Flag(str, Enum):
    YES = "S"
    NO = "N"

    @classmethod
    def parse(cls, value) -> Optional[Flag]:
        """``"S"``/``"N"`` -> Flag, anything else -> None."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip().upper() in ("S", "N"):
            return cls(value.strip().upper())
        return None


class OrderState(str, Enum):
    """Lifecycle of a service order. SENT is terminal."""

    OPEN = "N"
    SENT = "S"

    @classmethod
    def parse(cls, value) -> OrderState:
        return cls.SENT if Flag.parse(value) is Flag.YES else cls.OPEN


def ensure_mutable(state: OrderState, action: str = "changed") -> None:
    if state is OrderState.SENT:
        raise OrderLockedError(f"This service order was already sent and cannot be {action}.")


def _opt_int(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid numeric id: {value!r}") from None


def _opt_str(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class OrderFilters:
    number: Optional[int] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    client_id: Optional[int] = None
    modality_id: Optional[int] = None
    service_id: Optional[int] = None
    consultant_id: Optional[int] = None
    sent: Optional[Flag] = None

    @classmethod
    def from_params(cls, params: dict) -> OrderFilters:
        return cls(
            number=_opt_int(params.get("number")),
            date_from=date_to_db(_opt_str(params.get("date_from"))),
            date_to=date_to_db(_opt_str(params.get("date_to"))),
            client_id=_opt_int(params.get("client")),
            modality_id=_opt_int(params.get("modality")),
            service_id=_opt_int(params.get("service")),
            consultant_id=_opt_int(params.get("consultant")),
            sent=Flag.parse(params.get("sent")),
        )


@dataclass(frozen=True)
class RelationFilters:
    number: Optional[int] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    client_id: Optional[int] = None
    invoiced: Optional[Flag] = None
    collected: Optional[Flag] = None

    @classmethod
    def from_params(cls, params: dict) -> RelationFilters:
        return cls(
            number=_opt_int(params.get("number")),
            date_from=date_to_db(_opt_str(params.get("date_from"))),
            date_to=date_to_db(_opt_str(params.get("date_to"))),
            client_id=_opt_int(params.get("client")),
            invoiced=Flag.parse(params.get("invoiced")),
            collected=Flag.parse(params.get("collected")),
        )


@dataclass(frozen=True)
class OrderInput:
    client_id: Optional[int]
    order_date: Optional[str]
    service_id: Optional[int]
    consultant_id: Optional[int]
    modality_id: Optional[int] = None
    on_site_contact: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    discount_time: Optional[str] = None
    transfer_time: Optional[str] = None
    total_time: Optional[str] = None
    detail: Optional[str] = None
    sent: Optional[Flag] = None

    @classmethod
    def from_payload(cls, data: dict) -> OrderInput:
        return cls(
            client_id=_opt_int(data.get("client_id")),
            order_date=_opt_str(data.get("order_date")),
            service_id=_opt_int(data.get("service_id")),
            consultant_id=_opt_int(data.get("consultant_id")),
            modality_id=_opt_int(data.get("modality_id")),
            on_site_contact=_opt_str(data.get("on_site_contact")),
            start_time=_opt_str(data.get("start_time")),
            end_time=_opt_str(data.get("end_time")),
            discount_time=_opt_str(data.get("discount_time")),
            transfer_time=_opt_str(data.get("transfer_time")),
            total_time=_opt_str(data.get("total_time")),
            detail=_opt_str(data.get("detail")),
            sent=Flag.parse(data.get("sent")),
        )
