import os

import pytest


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep HSR_* variables and a stray relay.ini out of every test."""
    for key in list(os.environ):
        if key.startswith("HSR_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
