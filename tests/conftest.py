"""Pytest fixtures for Dench tests."""

import tempfile
from pathlib import Path

import pytest

# Ensure src is on path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture
def temp_workspace():
    """创建临时工作区目录（已 resolve，避免 /tmp 软链接干扰比较）。"""
    with tempfile.TemporaryDirectory(prefix="dench-test-workspace-") as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def configured_workspace(temp_workspace, monkeypatch):
    """把 settings.workspace_root 指向临时工作区。"""
    from shared.config import settings

    monkeypatch.setattr(settings, "workspace_root", str(temp_workspace))
    return temp_workspace


@pytest.fixture
def api_client(configured_workspace):
    """FastAPI TestClient，工作区为临时目录。"""
    from fastapi.testclient import TestClient

    from dench_api.main import app

    with TestClient(app) as client:
        yield client
