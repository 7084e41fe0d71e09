from __future__ import annotations

import pytest

from client import build_client
from settings import load_settings


def test_build_client_lists_missing_credentials(tmp_path) -> None:
    settings = load_settings(str(tmp_path / "missing.json"), env={"API_ID": "42"})

    with pytest.raises(RuntimeError) as excinfo:
        build_client(settings)

    assert "API_HASH" in str(excinfo.value)
    assert "BOT_TOKEN" in str(excinfo.value)
    assert "API_ID" not in str(excinfo.value)
