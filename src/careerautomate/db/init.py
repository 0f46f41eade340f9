from __future__ import annotations

from pathlib import Path

from sqlalchemy.engine import make_url

from careerautomate.config import get_settings
from careerautomate.db.base import Base
from careerautomate.db.session import engine
from careerautomate.db import models  # noqa: F401


def sqlite_parent(database_url: str) -> Path | None:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return None
    return Path(url.database).parent


def ensure_data_directories() -> None:
    settings = get_settings()
    paths = {settings.data_dir}
    db_dir = sqlite_parent(settings.database_url)
    if db_dir is not None:
        paths.add(db_dir)
    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, list[str]]:
    """Create the UI-session tables; remote records live in the backend."""
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)
    return {"tables": sorted(Base.metadata.tables)}
