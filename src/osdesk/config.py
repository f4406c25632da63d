from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    tomllib = None


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DbConfig:
    host: str
    port: int
    name: str
    user: str
    password: str
    sslmode: str = "disable"


@dataclass(frozen=True)
class WebConfig:
    host: str = "127.0.0.1"
    port: int = 5000
    debug: bool = False


@dataclass(frozen=True)
class PdfConfig:
    output_dir: Path = Path("tmp/pdf")
    max_age_seconds: int = 86400
    company_name: str = "Consultoria"


@dataclass(frozen=True)
class LookupConfig:
    base_url: str = "https://brasilapi.com.br/api/cnpj/v1"
    timeout: float = 10.0
    max_retries: int = 2
    retry_backoff: float = 0.5


@dataclass(frozen=True)
class AppConfig:
    name: str
    log_level: str
    db: DbConfig
    web: WebConfig = field(default_factory=WebConfig)
    pdf: PdfConfig = field(default_factory=PdfConfig)
    lookup: LookupConfig = field(default_factory=LookupConfig)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def load_config(path: str | Path) -> AppConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {p.resolve()}")

    if tomllib is None:
        raise ConfigError("tomllib not available. Use Python 3.11+.")

    try:
        data = tomllib.loads(p.read_text(encoding="utf-8"))
    except Exception as e:
        raise ConfigError(f"Failed to read config TOML: {e}") from e

    try:
        app = data.get("app", {})
        db = data["db"]
        web = data.get("web", {})
        pdf = data.get("pdf", {})
        lookup = data.get("lookup", {})
        return AppConfig(
            name=str(app.get("name", "osdesk")),
            log_level=str(app.get("log_level", "INFO")),
            db=DbConfig(
                host=str(db["host"]),
                port=int(db.get("port", 5432)),
                name=str(db["name"]),
                user=str(db["user"]),
                password=str(db["password"]),
                sslmode=str(db.get("sslmode", "disable")),
            ),
            web=WebConfig(
                host=str(web.get("host", "127.0.0.1")),
                port=int(web.get("port", 5000)),
                debug=bool(web.get("debug", False)),
            ),
            pdf=PdfConfig(
                output_dir=Path(pdf.get("output_dir", "tmp/pdf")),
                max_age_seconds=int(pdf.get("max_age_seconds", 86400)),
                company_name=str(pdf.get("company_name", "Consultoria")),
            ),
            lookup=LookupConfig(
                base_url=str(lookup.get("base_url", LookupConfig.base_url)).rstrip("/"),
                timeout=float(lookup.get("timeout", 10.0)),
                max_retries=int(lookup.get("max_retries", 2)),
                retry_backoff=float(lookup.get("retry_backoff", 0.5)),
            ),
        )
    except KeyError as e:
        raise ConfigError(f"Missing config key: {e}") from e
    except Exception as e:
        raise ConfigError(f"Invalid config values: {e}") from e
