import os
import pytest
import yaml
from pathlib import Path
from searchreplace.config import (
    PASSWORD_ENV_VAR,
    SearchReplaceConfig,
    get_searchreplace_home,
    load_config,
)
from searchreplace.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_password_env(monkeypatch):
    monkeypatch.delenv(PASSWORD_ENV_VAR, raising=False)
    yield
    # load_dotenv writes straight to os.environ
    os.environ.pop(PASSWORD_ENV_VAR, None)


def write_config(tmp_path, data):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.dump(data))
    return config_path


def test_get_searchreplace_home_default(monkeypatch):
    monkeypatch.delenv("SEARCHREPLACE_HOME", raising=False)
    home = get_searchreplace_home()
    assert home == Path("~/.config/searchreplace").expanduser()

def test_get_searchreplace_home_env_var(monkeypatch, tmp_path):
    custom_home = tmp_path / "custom_home"
    monkeypatch.setenv("SEARCHREPLACE_HOME", str(custom_home))
    assert get_searchreplace_home() == custom_home

def test_load_config_missing_file(monkeypatch, tmp_path):
    monkeypatch.setenv("SEARCHREPLACE_HOME", str(tmp_path))
    with pytest.raises(FileNotFoundError, match="searchreplace config.yaml not found"):
        load_config()

def test_load_config_valid(monkeypatch, tmp_path):
    monkeypatch.setenv("SEARCHREPLACE_HOME", str(tmp_path))
    write_config(tmp_path, {
        "backend": "mysql",
        "host": "db.internal",
        "port": 3307,
        "username": "app",
        "password": "from-yaml",
        "database": "wordpress",
        "batch_size": 500,
    })

    cfg = load_config()
    assert isinstance(cfg, SearchReplaceConfig)
    assert cfg.host == "db.internal"
    assert cfg.port == 3307
    assert cfg.password == "from-yaml"
    assert cfg.batch_size == 500
    assert cfg.log_format == "pretty"

def test_load_config_explicit_path(tmp_path):
    path = write_config(tmp_path, {"backend": "sqlite", "sqlite_path": "~/app.db"})
    cfg = load_config(path)
    assert cfg.backend == "sqlite"

    gateway_config = cfg.to_gateway_config()
    assert gateway_config.backend == "sqlite"
    assert gateway_config.sqlite_path == str(Path("~/app.db").expanduser())

def test_load_config_with_env_file(monkeypatch, tmp_path):
    monkeypatch.setenv("SEARCHREPLACE_HOME", str(tmp_path))
    env_file = tmp_path / ".env.test"
    env_file.write_text(f"{PASSWORD_ENV_VAR}=from-dotenv")

    write_config(tmp_path, {
        "host": "db",
        "username": "app",
        "password": "from-yaml",
        "database": "wp",
        "env_file": str(env_file),
    })

    cfg = load_config()
    assert os.environ.get(PASSWORD_ENV_VAR) == "from-dotenv"
    assert cfg.password == "from-dotenv"

def test_password_env_overrides_yaml(monkeypatch, tmp_path):
    monkeypatch.setenv(PASSWORD_ENV_VAR, "from-env")
    path = write_config(tmp_path, {"host": "db", "username": "app", "password": "x", "database": "wp"})
    assert load_config(path).password == "from-env"

def test_missing_env_file_is_ignored(tmp_path):
    path = write_config(tmp_path, {
        "host": "db", "username": "app", "database": "wp", "env_file": str(tmp_path / "nope.env"),
    })
    assert load_config(path).password == ""

def test_invalid_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("backend: [unclosed")
    with pytest.raises(ConfigurationError, match="Invalid YAML syntax"):
        load_config(path)

def test_empty_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    with pytest.raises(ConfigurationError, match="empty"):
        load_config(path)

def test_not_a_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ConfigurationError, match="mapping"):
        load_config(path)

def test_unknown_keys(tmp_path):
    path = write_config(tmp_path, {"host": "db", "username": "u", "database": "d", "hots": "typo"})
    with pytest.raises(ConfigurationError, match="hots"):
        load_config(path)

def test_unknown_backend(tmp_path):
    path = write_config(tmp_path, {"backend": "oracle"})
    with pytest.raises(ConfigurationError, match="Unknown backend 'oracle'"):
        load_config(path)

def test_mysql_requires_credentials(tmp_path):
    path = write_config(tmp_path, {"backend": "mysql", "host": "db"})
    with pytest.raises(ConfigurationError, match="username"):
        load_config(path)

def test_sqlite_requires_path(tmp_path):
    path = write_config(tmp_path, {"backend": "sqlite"})
    with pytest.raises(ConfigurationError, match="sqlite_path"):
        load_config(path)

@pytest.mark.parametrize("batch_size", [0, -5, "100", True])
def test_invalid_batch_size(tmp_path, batch_size):
    path = write_config(tmp_path, {"backend": "sqlite", "sqlite_path": "a.db", "batch_size": batch_size})
    with pytest.raises(ConfigurationError, match="batch_size"):
        load_config(path)

def test_invalid_log_format(tmp_path):
    path = write_config(tmp_path, {"backend": "sqlite", "sqlite_path": "a.db", "log_format": "xml"})
    with pytest.raises(ConfigurationError, match="log_format"):
        load_config(path)

def test_repr_hides_password():
    cfg = SearchReplaceConfig(host="db", username="app", password="hunter2", database="wp")
    assert "hunter2" not in repr(cfg)
