from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine

from anitrack_backend.db.connection import create_db_engine
from anitrack_backend.db.schema import init_db


@pytest.fixture()
def engine(tmp_path: Path) -> Iterator[Engine]:
    db_engine = create_db_engine(f"sqlite:///{tmp_path / 'tracker.db'}")
    init_db(db_engine)
    yield db_engine
    db_engine.dispose()
