import sys
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import pytest

SRCS_DIR = Path(__file__).resolve().parent.parent / "srcs"
if str(SRCS_DIR) not in sys.path:
    sys.path.insert(0, str(SRCS_DIR))

from leaks_types import LeaksInvocationParams, LeaksRawResult  # noqa: E402

DATA_DIR = Path(__file__).resolve().parent / "data"
INVOCATION_TIME = datetime(2026, 10, 19, 8, 15, 2, tzinfo=timezone.utc)


@pytest.fixture
def sample_path() -> Path:
    return DATA_DIR / "sample_leaks.txt"


@pytest.fixture
def sample_output(sample_path: Path) -> str:
    return sample_path.read_text(encoding="utf-8")


@pytest.fixture
def make_raw_result() -> Callable[..., LeaksRawResult]:
    def _make_raw_result(output: str, **param_overrides: object) -> LeaksRawResult:
        params: dict[str, object] = {"pid": 35988}
        params.update(param_overrides)
        return LeaksRawResult(
            params=LeaksInvocationParams(**params),
            raw_output=output,
            exit_code=0,
            stderr="",
            invocation_time=INVOCATION_TIME,
        )

    return _make_raw_result
