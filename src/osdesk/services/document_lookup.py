from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import Optional

import requests

from ..config import LookupConfig
from ..domain import ValidationError
from ..validation import format_document, only_digits, validate_cnpj, validate_cpf

logger = logging.getLogger(__name__)


class DocumentLookupError(Exception):
    pass


@dataclass
class DocumentInfo:
    document: str
    legal_name: Optional[str] = None
    trade_name: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class DocumentLookup:
    """Registry data for a CPF/CNPJ. Only CNPJs have a public source."""

    def __init__(self, cfg: LookupConfig, session: requests.Session | None = None) -> None:
        self.cfg = cfg
        self.session = session or requests.Session()

    def _fetch(self, url: str) -> dict:
        attempts = self.cfg.max_retries + 1
        last_exc: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                response = self.session.get(url, timeout=self.cfg.timeout)
                if response.status_code == 404:
                    raise DocumentLookupError("Document not found in the public registry.")
                response.raise_for_status()
                return response.json()
            except DocumentLookupError:
                raise
            except (requests.RequestException, ValueError) as e:
                last_exc = e
                if attempt < attempts:
                    sleep_for = self.cfg.retry_backoff * (2 ** (attempt - 1))
                    logger.warning(
                        "Lookup retry %d/%d for %s in %.1fs due to: %s",
                        attempt, attempts - 1, url, sleep_for, e,
                    )
                    time.sleep(sleep_for)
        logger.error("Lookup failed for %s: %s", url, last_exc)
        raise DocumentLookupError(f"Registry lookup failed: {last_exc}") from last_exc

    def lookup(self, document: str | None, kind: str | None) -> DocumentInfo:
        if not document:
            raise ValidationError("Document not informed.")
        if kind not in ("F", "J"):
            raise ValidationError("Invalid document type (expected F or J).")

        digits = only_digits(document)
        if (kind == "F" and len(digits) != 11) or (kind == "J" and len(digits) != 14):
            raise ValidationError("Invalid document format.")
        valid = validate_cnpj(digits) if kind == "J" else validate_cpf(digits)
        if not valid:
            raise ValidationError("Invalid document check digits.")

        if kind == "F":
            return DocumentInfo(document=format_document(digits, kind))

        data = self._fetch(f"{self.cfg.base_url}/{digits}")
        return DocumentInfo(
            document=format_document(digits, kind),
            legal_name=data.get("razao_social"),
            trade_name=data.get("nome_fantasia") or None,
            city=data.get("municipio"),
            state=data.get("uf"),
        )
