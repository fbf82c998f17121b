"""Shared test fixtures for CLI tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


@pytest.fixture(autouse=True)
def isolated_config_dir(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path, None, None]:
    """Isolate tests from the real user configuration directory.

    Sets XDG_CONFIG_HOME to a temporary directory so that tests don't
    read or overwrite ~/.config/installer-wizard/config.yaml.
    """
    config_home = tmp_path / "xdg_config"
    config_home.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))

    yield config_home
