"""
Pytest config.

Pin the repo root on sys.path so `import meshauthz` / `import main` work when pytest is
invoked from a global entrypoint without the project installed.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()


@pytest.fixture(autouse=True)
def _clear_k8s_config_cache():
    from meshauthz.config import load_k8s_config

    load_k8s_config.cache_clear()
    yield
    load_k8s_config.cache_clear()
