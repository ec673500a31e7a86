import pytest

from carbonstats.config import (
    DEFAULT_CARBON_PORT,
    CarbonConfig,
    Config,
    ConfigError,
    DBConfig,
    load_config,
)

_VARS = ("CARBON_HOST", "CARBON_PORT", "CARBON_PARENTS", "CARBON_DEBUG")


@pytest.fixture
def clean_env(monkeypatch):
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def _write_env(tmp_path, text):
    path = tmp_path / ".env"
    path.write_text(text, encoding="utf-8")
    return path


def test_loads_all_values(clean_env, tmp_path):
    path = _write_env(
        tmp_path,
        "CARBON_HOST=billing.example.com\n"
        "CARBON_PORT=8443\n"
        "CARBON_PARENTS=1,2,3\n"
        "CARBON_DEBUG=true\n",
    )
    config = load_config(path)
    assert config.carbon == CarbonConfig(
        host="billing.example.com", port=8443, parents=["1", "2", "3"]
    )
    assert config.log.debug is True
    assert config.db == DBConfig()


def test_missing_file_raises(clean_env, tmp_path):
    with pytest.raises(ConfigError, match="Error loading .env file"):
        load_config(tmp_path / "absent.env")


def test_default_file_is_dotenv_in_cwd(clean_env, tmp_path):
    _write_env(tmp_path, "CARBON_HOST=local.example.com\n")
    clean_env.chdir(tmp_path)
    config = load_config()
    assert config.carbon.host == "local.example.com"


def test_default_file_missing_raises(clean_env, tmp_path):
    clean_env.chdir(tmp_path)
    with pytest.raises(ConfigError):
        load_config()


@pytest.mark.parametrize("raw", ["abc", "", " 90", "9_0", "1.5", "99999999999999999999"])
def test_invalid_port_falls_back_to_default(clean_env, tmp_path, raw):
    path = _write_env(tmp_path, f"CARBON_PORT='{raw}'\n")
    assert load_config(path).carbon.port == DEFAULT_CARBON_PORT


def test_signed_port_accepted(clean_env, tmp_path):
    path = _write_env(tmp_path, "CARBON_PORT=+90\n")
    assert load_config(path).carbon.port == 90


def test_missing_port_uses_default(clean_env, tmp_path):
    path = _write_env(tmp_path, "CARBON_HOST=h.example.com\n")
    assert load_config(path).carbon.port == 8082


def test_missing_parents_gives_single_empty_entry(clean_env, tmp_path):
    path = _write_env(tmp_path, "CARBON_HOST=h.example.com\n")
    assert load_config(path).carbon.parents == [""]


@pytest.mark.parametrize("value", ["True", "1", "yes", "false"])
def test_debug_only_for_exact_true(clean_env, tmp_path, value):
    path = _write_env(tmp_path, f"CARBON_DEBUG={value}\n")
    assert load_config(path).log.debug is False


def test_environment_not_overridden(clean_env, tmp_path):
    clean_env.setenv("CARBON_HOST", "env.example.com")
    path = _write_env(tmp_path, "CARBON_HOST=file.example.com\n")
    assert load_config(path).carbon.host == "env.example.com"


def test_config_defaults():
    config = Config()
    assert config.carbon.port == 8082
    assert config.carbon.parents == []
    assert config.log.debug is False
    assert config.db.host == ""