from __future__ import annotations

import json

import pytest

from order_browser.cli import main
from order_browser.core.config import Settings


def test_settings_defaults():
    settings = Settings()
    assert settings.default_page_limit == 50
    assert settings.page_size_options == [10, 20, 30, 40, 50]
    assert settings.cache_staleness_seconds == 600
    assert settings.jump_debounce_seconds == 1.0


def test_settings_reject_inconsistent_page_sizes():
    with pytest.raises(ValueError):
        Settings(default_page_size=25)
    with pytest.raises(ValueError):
        Settings(page_size_options=[])


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("OB_TRANSPORT", "http")
    monkeypatch.setenv("OB_CACHE_STALENESS_SECONDS", "30")
    settings = Settings()
    assert settings.transport == "http"
    assert settings.cache_staleness_seconds == 30


def test_cli_seed_and_list(empty_store, capsys):
    assert main(["seed", "--count", "12", "--force"]) == 0
    seeded = json.loads(capsys.readouterr().out)
    assert seeded["seeded_now"] is True
    assert seeded["order_count"] == 12

    assert main(["orders", "list", "--limit", "5", "--page", "3"]) == 0
    listed = json.loads(capsys.readouterr().out)
    assert len(listed["orders"]) == 2
    assert listed["totalOrders"] == 12
    assert listed["totalPages"] == 3


def test_cli_list_rejects_bad_page(empty_store, capsys):
    assert main(["orders", "list", "--page", "0"]) == 2
    assert "page must be" in capsys.readouterr().err


def test_cli_browse_drives_the_controller(store_45, capsys):
    assert main(["orders", "browse", "--status", "SHIPPED", "--page-size", "10", "--next", "1"]) == 0
    view = json.loads(capsys.readouterr().out)
    assert view["status_filter"] == "SHIPPED"
    assert view["page"] == 2
    assert view["page_count"] == 2
    assert view["total_orders"] == 12
    assert len(view["rows"]) == 2
    assert {row["status"] for row in view["rows"]} == {"shipped"}


def test_cli_browse_jump_is_clamped(store_45, capsys):
    assert main(["orders", "browse", "--jump", "9"]) == 0
    view = json.loads(capsys.readouterr().out)
    assert view["page"] == 3
    assert len(view["rows"]) == 5
