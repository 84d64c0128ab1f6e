"""
Tests for the command line dry run.
"""

import pytest

from report_embed import __main__ as cli
from report_embed.config import EmbedSettings


@pytest.mark.asyncio
async def test_run_reports_misconfiguration(monkeypatch, caplog):
    monkeypatch.setattr(cli, "create_settings_from_env", lambda: EmbedSettings())

    exit_code = await cli.run()

    assert exit_code == 1
    assert "Please assign values for workspace id and report id" in caplog.text
