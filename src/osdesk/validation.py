"""Format checks and formatting helpers for user-facing fields.

The ``validate_*`` helpers only answer yes/no. Callers decide whether a bad
value is rejected or passed through unchanged.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

UFS = frozenset(
    {
        "AC", "AL", "AM", "AP", "BA", "CE", "DF", "ES", "GO",
        "MA", "MG", "MS", "MT", "PA", "PB", "PE", "PI", "PR",
        "RJ", "RN", "RO", "RR", "RS", "SC", "SE", "SP", "TO",
    }
)

_DISPLAY_DATE = re.compile(r"^\d{2}/\d{2}/\d{4}$")
_DB_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME = re.compile(r"^\d{2}:\d{2}$")
_DURATION = re.compile(r"^\d{2,3}:\d{2}$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def only_digits(value: str | None) -> str:
    return re.sub(r"\D", "", value or "")


def _check_digit(digits: str, weights: list[int]) -> int:
    remainder = sum(int(d) * w for d, w in zip(digits, weights)) % 11
    return 0 if remainder < 2 else 11 - remainder


def validate_cpf(cpf: str | None) -> bool:
    digits = only_digits(cpf)
    if len(digits) != 11 or len(set(digits)) == 1:
        return False
    d1 = _check_digit(digits[:9], list(range(10, 1, -1)))
    d2 = _check_digit(digits[:10], list(range(11, 1, -1)))
    return digits[9:] == f"{d1}{d2}"


def validate_cnpj(cnpj: str | None) -> bool:
    digits = only_digits(cnpj)
    if len(digits) != 14 or len(set(digits)) == 1:
        return False
    d1 = _check_digit(digits[:12], [5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2])
    d2 = _check_digit(digits[:13], [6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2])
    return digits[12:] == f"{d1}{d2}"


def validate_email(email: str | None) -> bool:
    return bool(email) and _EMAIL.match(email) is not None


def validate_date(value: str | None) -> bool:
    """``DD/MM/YYYY`` that is also a real calendar day."""
    if not value or not _DISPLAY_DATE.match(value):
        return False
    try:
        datetime.strptime(value, "%d/%m/%Y")
    except ValueError:
        return False
    return True


def validate_time(value: str | None) -> bool:
    if not value or not _TIME.match(value):
        return False
    hour, minute = (int(p) for p in value.split(":"))
    return 0 <= hour <= 23 and 0 <= minute <= 59


def validate_duration(value: str | None) -> bool:
    """Like :func:`validate_time` but hours may exceed 23."""
    if not value or not _DURATION.match(value):
        return False
    return int(value.split(":")[1]) <= 59


def validate_phone(phone: str | None) -> bool:
    return 10 <= len(only_digits(phone)) <= 11


def validate_cep(cep: str | None) -> bool:
    return len(only_digits(cep)) == 8


def validate_uf(uf: str | None) -> bool:
    return bool(uf) and uf.upper() in UFS


def parse_money(value) -> Decimal | None:
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))
    text = str(value or "").replace("R$", "").strip()
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    try:
        return Decimal(text)
    except InvalidOperation:
        return None


def validate_money(value) -> bool:
    amount = parse_money(value)
    return amount is not None and amount.is_finite() and amount >= 0


def format_cpf(cpf: str | None) -> str:
    d = only_digits(cpf)
    if len(d) != 11:
        return d
    return f"{d[:3]}.{d[3:6]}.{d[6:9]}-{d[9:]}"


def format_cnpj(cnpj: str | None) -> str:
    d = only_digits(cnpj)
    if len(d) != 14:
        return d
    return f"{d[:2]}.{d[2:5]}.{d[5:8]}/{d[8:12]}-{d[12:]}"


def format_document(document: str | None, kind: str | None) -> str:
    return format_cnpj(document) if kind == "J" else format_cpf(document)


def format_phone(phone: str | None) -> str:
    d = only_digits(phone)
    if len(d) == 11:
        return f"({d[:2]}) {d[2:7]}-{d[7:]}"
    if len(d) == 10:
        return f"({d[:2]}) {d[2:6]}-{d[6:]}"
    return d


def format_cep(cep: str | None) -> str:
    d = only_digits(cep)
    if len(d) != 8:
        return d
    return f"{d[:5]}-{d[5:]}"


def format_money(value) -> str:
    amount = parse_money(value) or Decimal(0)
    text = f"{amount:,.2f}"
    return "R$ " + text.replace(",", "_").replace(".", ",").replace("_", ".")


def is_db_date(value: str | None) -> bool:
    if not value or not _DB_DATE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def date_to_db(value: str | None) -> str | None:
    """``DD/MM/YYYY`` -> ``YYYY-MM-DD``; other shapes pass through unchanged."""
    if not value:
        return None
    if not _DISPLAY_DATE.match(value):
        return value
    day, month, year = value.split("/")
    return f"{year}-{month}-{day}"


def date_from_db(value) -> str:
    """``YYYY-MM-DD`` (or a ``date``) -> ``DD/MM/YYYY``; other shapes pass through."""
    if not value:
        return ""
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    if not _DB_DATE.match(value):
        return value
    year, month, day = value.split("-")
    return f"{day}/{month}/{year}"
