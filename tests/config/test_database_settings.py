from __future__ import annotations

import os
from pathlib import Path  # noqa: TC003

import pytest

from censorflow.config import database


@pytest.fixture
def no_database_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ("DATABASE_URI", "CENSORFLOW_DATA_DIR", "CENSORFLOW_DATABASE_ECHO"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_database_uri_env_wins(no_database_env: pytest.MonkeyPatch) -> None:
    no_database_env.setenv("DATABASE_URI", "postgresql+psycopg://reviews@db/censor")
    no_database_env.setenv("CENSORFLOW_DATABASE_ECHO", "yes")

    config = database.DatabaseConfig.from_environment()

    assert config.uri == "postgresql+psycopg://reviews@db/censor"
    assert config.echo
    assert not config.is_sqlite


def test_reviews_default_to_sqlite_in_data_dir(
    no_database_env: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    no_database_env.setenv("CENSORFLOW_DATA_DIR", str(tmp_path / "data-dir"))

    config = database.get_database_config()

    expected = (tmp_path / "data-dir" / database.REVIEW_DB_FILENAME).resolve()
    assert config.uri == f"sqlite+pysqlite:///{expected}"
    assert config.is_sqlite
    assert not config.echo
    assert expected.parent.is_dir()
    assert database.get_database_uri() == config.uri


@pytest.mark.skipif(os.name == "nt", reason="XDG paths are POSIX only")
def test_data_dir_follows_xdg(no_database_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    no_database_env.setenv("XDG_DATA_HOME", str(tmp_path))

    assert database.review_data_dir() == (tmp_path / "censorflow").resolve()
    assert not (tmp_path / "censorflow").exists()
