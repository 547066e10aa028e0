"""Shared fixtures and helpers for flowsync tests."""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from flowsync.core.config import AgentConfig

API_BASE = "http://test"


def make_token(payload: dict[str, object] | None = None, exp: int | None = None) -> str:
    """Build a three-segment bearer token with an unsigned payload."""
    if payload is None:
        payload = {"sub": "user-1"}
    if exp is not None:
        payload = {**payload, "exp": exp}

    def _segment(data: dict[str, object]) -> str:
        raw = json.dumps(data).encode()
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    return f"{_segment({'alg': 'HS256', 'typ': 'JWT'})}.{_segment(payload)}.signature"


@pytest.fixture
def token_factory() -> Callable[..., str]:
    """Provide the token builder to tests."""
    return make_token


@pytest.fixture
def sync_root(tmp_path: Path) -> Path:
    """Create a sync root directory."""
    root = tmp_path / "Flowen"
    root.mkdir()
    return root


@pytest.fixture
def agent_config(sync_root: Path) -> AgentConfig:
    """Create an agent configuration pointing at the test server."""
    return AgentConfig(
        api_base=API_BASE,
        sync_folder=sync_root,
        receiver_email="me@example.com",
        upload_delay=0.05,
    )


@pytest.fixture(autouse=True)
def reset_flowsync_logger() -> Iterator[None]:
    """Drop handlers installed by CLI invocations."""
    yield
    flowsync_logger = logging.getLogger("flowsync")
    for handler in flowsync_logger.handlers[:]:
        flowsync_logger.removeHandler(handler)
    flowsync_logger.setLevel(logging.NOTSET)
