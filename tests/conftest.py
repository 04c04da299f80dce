"""Pytest configuration and fixtures.

Provides environment isolation, config cache resets and small test doubles.
All fixtures here are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
from dataclasses import dataclass, field
import os
from typing import Any

import pytest

from optchain.config import reset_config_cache

# =============================================================================
# Test Doubles
# =============================================================================


@dataclass
class Recorder:
    """Callback double that records every call it receives.

    Use as a predicate/projection/action; ``result`` is returned from each call
    and ``raises`` (when set) is raised instead.
    """

    result: Any = None
    raises: BaseException | None = None
    calls: list[tuple[Any, ...]] = field(default_factory=list)

    def __call__(self, *args: Any) -> Any:
        self.calls.append(args)
        if self.raises is not None:
            raise self.raises
        return self.result

    @property
    def call_count(self) -> int:
        return len(self.calls)


def never_called(*args: Any) -> Any:
    """Callback that fails the test if it is ever invoked."""
    pytest.fail(f"callback should not have been invoked (args={args!r})")


@dataclass
class Dummy:
    """Nested record used to exercise ``a.b.c`` style chains."""

    name: str | None = None
    count: int = 0
    child: Dummy | None = None
    fields: dict[str, Any] | None = None


# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_optchain_env(monkeypatch, tmp_path):
    """Clear OPTCHAIN_* variables and point config at an empty pyproject."""
    for key in list(os.environ.keys()):
        if key.startswith("OPTCHAIN_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("OPTCHAIN_PYPROJECT_PATH", str(tmp_path / "pyproject.toml"))
    reset_config_cache()
    yield
    reset_config_cache()
