from pathlib import Path

import pytest

from osdesk.config import ConfigError, load_config

FULL = """
[app]
name = "osdesk"
log_level = "DEBUG"

[db]
host = "db.local"
port = 5433
name = "osdesk"
user = "osdesk"
password = "secret"

[web]
port = 8080
debug = true

[pdf]
output_dir = "out/pdf"
max_age_seconds = 600
company_name = "Consultoria Exemplo"

[lookup]
base_url = "https://lookup.test/cnpj/"
max_retries = 4
"""


def _write(tmp_path, text):
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_full_config(tmp_path):
    cfg = load_config(_write(tmp_path, FULL))
    assert cfg.log_level == "DEBUG"
    assert (cfg.db.host, cfg.db.port, cfg.db.sslmode) == ("db.local", 5433, "disable")
    assert (cfg.web.host, cfg.web.port, cfg.web.debug) == ("127.0.0.1", 8080, True)
    assert cfg.pdf.output_dir == Path("out/pdf")
    assert cfg.pdf.max_age_seconds == 600
    assert cfg.lookup.base_url == "https://lookup.test/cnpj"
    assert cfg.lookup.max_retries == 4
    assert cfg.lookup.timeout == 10.0


def test_defaults_for_optional_sections(tmp_path):
    cfg = load_config(_write(tmp_path, '[db]\nhost="h"\nname="n"\nuser="u"\npassword="p"\n'))
    assert cfg.name == "osdesk"
    assert cfg.log_level == "INFO"
    assert cfg.db.port == 5432
    assert cfg.web.port == 5000
    assert cfg.lookup.base_url.startswith("https://brasilapi.com.br")


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "nope.toml")


def test_missing_db_key(tmp_path):
    with pytest.raises(ConfigError, match="Missing config key"):
        load_config(_write(tmp_path, '[db]\nhost="h"\n'))


def test_bad_value(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, '[db]\nhost="h"\nport="x"\nname="n"\nuser="u"\npassword="p"\n'))


def test_bad_toml(tmp_path):
    with pytest.raises(ConfigError, match="TOML"):
        load_config(_write(tmp_path, "[db\n"))
