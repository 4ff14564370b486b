"""Tests for YAML configuration loading."""

import copy
import logging

import pytest

from constants import Constants, apply_config, load_config
from registry.config import load_registries

_SAVED = (
    "LOG_LEVEL",
    "REQUEST_TIMEOUT",
    "HTTP_RETRY_MAX",
    "USER_AGENT",
    "ERROR_CHECK",
    "WORKSPACE_SEARCH_DEPTH",
    "MAX_ALIAS_HOPS",
)


@pytest.fixture(autouse=True)
def restore_constants():
    saved = {name: getattr(Constants, name) for name in _SAVED}
    registries = copy.deepcopy(Constants.REGISTRIES)
    yield
    for name, value in saved.items():
        setattr(Constants, name, value)
    Constants.REGISTRIES = registries


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """No config in the working directory, home or environment."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv(Constants.ENV_CONFIG, raising=False)
    return tmp_path


def test_explicit_config_file(isolated):
    path = isolated / "custom.yml"
    path.write_text(
        "http:\n"
        "  timeout: 5\n"
        "  retries: 2\n"
        "resolution:\n"
        "  error_check: false\n"
        "  max_alias_hops: 3\n"
        "registries:\n"
        "  jsr:\n"
        "    host: jsr.example\n",
        encoding="utf-8",
    )

    cfg = load_config(str(path))

    assert cfg["http"]["timeout"] == 5
    assert Constants.REQUEST_TIMEOUT == 5
    assert Constants.HTTP_RETRY_MAX == 2
    assert Constants.ERROR_CHECK is False
    assert Constants.MAX_ALIAS_HOPS == 3
    registries = load_registries()
    assert registries["jsr"].listing_url("@a/b") == "https://jsr.example/@a/b/meta.json"
    assert registries["jsr"].name_segments == 2


def test_environment_variable(isolated, monkeypatch):
    path = isolated / "env.yml"
    path.write_text("logging:\n  level: debug\n", encoding="utf-8")
    monkeypatch.setenv(Constants.ENV_CONFIG, str(path))

    load_config()

    assert Constants.LOG_LEVEL == "DEBUG"


def test_working_directory_default(isolated):
    (isolated / "aliasgate.yml").write_text("http:\n  user_agent: test-agent\n", encoding="utf-8")

    load_config()

    assert Constants.USER_AGENT == "test-agent"


def test_missing_explicit_file_warns(isolated, caplog):
    with caplog.at_level(logging.WARNING):
        assert load_config(str(isolated / "nope.yml")) == {}
    assert "Config file not found" in caplog.text


def test_non_mapping_is_ignored(isolated):
    path = isolated / "list.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    assert load_config(str(path)) == {}


def test_new_registry_scheme():
    apply_config(
        {
            "registries": {
                "deno": {
                    "host": "deno.land",
                    "listing": "https://apiland.{host}/v2/modules/{name}",
                    "manifest": "https://{host}/x/{name}@{version}/{filename}",
                    "manifest_files": ["deno.json"],
                    "name_segments": 1,
                }
            }
        }
    )

    registries = load_registries()

    assert registries["deno"].manifest_urls("oak", "12.0.0") == ["https://deno.land/x/oak@12.0.0/deno.json"]
