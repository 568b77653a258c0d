from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import create_engine, SQLModel, Session

from .config import DATABASE_URL


def make_engine(url: str = DATABASE_URL) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # writers queue on the sqlite file lock instead of failing fast
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(url, echo=False, connect_args=connect_args)


engine = make_engine()


def init_db(bind: Optional[Engine] = None):
    from . import models  # noqa
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    with Session(engine) as s:
        yield s
