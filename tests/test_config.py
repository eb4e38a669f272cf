from datetime import date

import pytest

from flightmap_layout.core.config import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG,
    LayoutConfigError,
    load_layout_config,
    parse_layout_config,
)


def test_defaults():
    assert DEFAULT_CONFIG.content_width == 1300
    assert DEFAULT_CONFIG.content_height == 830
    assert DEFAULT_CONFIG.node_radius == 55
    assert DEFAULT_CONFIG.workstream_area_height == 600
    assert DEFAULT_CONFIG.workstream_area_padding == 15


def test_load_layout_config_from_file(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    cfg = load_layout_config("examples/layout-config.yaml")
    assert cfg.width == 1000
    assert cfg.content_width == 900
    assert cfg.margin.top == 40
    assert cfg.fan_spread == 30
    assert cfg.clamp_to_workstream is False
    assert cfg.today == date(2024, 1, 1)


def test_load_layout_config_env(monkeypatch):
    monkeypatch.setenv(CONFIG_ENV_VAR, "examples/layout-config.yaml")
    assert load_layout_config().width == 1000

    monkeypatch.setenv(CONFIG_ENV_VAR, "  ")
    assert load_layout_config() is DEFAULT_CONFIG


def test_load_layout_config_missing_file():
    with pytest.raises(FileNotFoundError):
        load_layout_config("examples/no-such-config.yaml")


@pytest.mark.parametrize(
    "raw,match",
    [
        ([1, 2], "must be a mapping"),
        ({"colour": "red"}, "unknown layout config key"),
        ({"width": "wide"}, "'width' must be a number"),
        ({"width": True}, "'width' must be a number"),
        ({"tick_count": 0}, "positive integer"),
        ({"clamp_to_workstream": "yes"}, "must be a boolean"),
        ({"today": "tomorrow"}, "ISO date"),
        ({"margin": {"middle": 3}}, "unknown margin side"),
        ({"margin": 3}, "'margin' must be a mapping"),
    ],
)
def test_parse_layout_config_rejects(raw, match):
    with pytest.raises(LayoutConfigError, match=match):
        parse_layout_config(raw)


def test_parse_layout_config_accepts_iso_today_string():
    assert parse_layout_config({"today": "2024-02-03"}) == {"today": date(2024, 2, 3)}
    assert parse_layout_config(None) == {}


def test_load_layout_config_malformed_yaml(tmp_path):
    p = tmp_path / "cfg.yaml"
    p.write_text("width: [1,\n", encoding="utf-8")
    with pytest.raises(LayoutConfigError, match="invalid YAML"):
        load_layout_config(p)
