from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from paramdup.deadline_clock import CheckBudget
from paramdup.timeout_context import Deadline, deadline_clock_scope, deadline_scope

FIXTURES = ROOT / "tests" / "fixtures"


@pytest.fixture(autouse=True)
def _deadline_scope_fixture():
    with deadline_scope(Deadline.from_timeout_ms(120_000)):
        with deadline_clock_scope(CheckBudget(limit=100_000_000)):
            yield


@pytest.fixture
def sample_input_path() -> Path:
    return FIXTURES / "sample_input.py"


@pytest.fixture
def sample_output_path() -> Path:
    return FIXTURES / "sample_output.py"
