import asyncio
import sys
from pathlib import Path

import pytest


# Ensure `backend/` is on sys.path so tests can import local modules
# like `reconcile.*`, `geo.*`, and `main`.
BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))

from session.session import MapSession, create  # noqa: E402
from session.style import blank_style  # noqa: E402


def open_session(style: dict | None = None) -> MapSession:
    async def _open() -> MapSession:
        s = create(style or blank_style())
        await s.await_ready()
        return s

    return asyncio.run(_open())


@pytest.fixture
def make_session():
    return open_session


@pytest.fixture
def session() -> MapSession:
    s = open_session()
    assert s.is_ready
    return s
