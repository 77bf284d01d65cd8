from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import Dict, List

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent
SRC_DIR = (BASE_DIR / "src").resolve()

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from phpwalk.evaluator import Evaluator  # noqa: E402


@pytest.fixture
def out() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def evaluator(out: io.StringIO) -> Evaluator:
    """A fresh evaluator whose echo output is captured in `out`."""
    return Evaluator(out=out)


def pytest_collection_modifyitems(
    session: pytest.Session,
    config: pytest.Config,
    items: List[pytest.Item],
) -> None:
    """Reject duplicate scenario ids; tables are keyed by them."""
    del session, config

    seen: Dict[str, int] = {}
    duplicates: List[str] = []

    for item in items:
        seen[item.nodeid] = seen.get(item.nodeid, 0) + 1
        if seen[item.nodeid] == 2:
            duplicates.append(item.nodeid)

    if duplicates:
        lines = "\n".join(f"- {nodeid}" for nodeid in sorted(duplicates))
        raise pytest.UsageError(f"Duplicate pytest nodeids detected during collection:\n{lines}")
