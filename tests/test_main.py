"""Tests for the command line entry point."""

import json
from unittest.mock import patch

import pytest

from group_scheduler.__main__ import main, render_once
from group_scheduler.models import Granularity

from conftest import TODAY


@pytest.mark.asyncio
async def test_render_once_day_view(api_client):
    with patch("group_scheduler.session.SchedulerApiClient", return_value=api_client):
        rendered = await render_once(None, Granularity.DAY, TODAY)

    assert rendered["granularity"] is Granularity.DAY
    assert len(rendered["columns"]) == 1
    column = rendered["columns"][0]
    assert column["date"] == TODAY
    assert [item["key"] for item in column["items"]] == ["evt-1"]


def test_main_prints_json(monkeypatch, capsys):
    monkeypatch.setattr(
        "sys.argv", ["group-scheduler", "--view", "week", "--date", "2024-05-15"]
    )

    async def fake_render(config_path, granularity, anchor):
        assert config_path is None
        assert granularity is Granularity.WEEK
        assert anchor == TODAY
        return {"title": "May 12 - May 18, 2024", "anchor": anchor}

    with patch("group_scheduler.__main__.render_once", new=fake_render):
        main()

    output = json.loads(capsys.readouterr().out)
    assert output == {"title": "May 12 - May 18, 2024", "anchor": "2024-05-15"}


def test_main_rejects_unknown_view(monkeypatch):
    monkeypatch.setattr("sys.argv", ["group-scheduler", "--view", "year"])
    with pytest.raises(SystemExit):
        main()
