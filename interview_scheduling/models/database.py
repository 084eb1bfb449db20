from functools import lru_cache
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from interview_scheduling.base.config import settings

Base = declarative_base()


@lru_cache()
def get_engine() -> Engine:
    connect_args = {}
    if settings.DATABASE_URL.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(settings.DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)


@lru_cache()
def get_session_factory() -> sessionmaker:
    return sessionmaker(bind=get_engine(), autocommit=False, autoflush=False)


def get_db() -> Iterator[Session]:
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def init_db(engine: Engine = None) -> None:
    # table modules register themselves on Base.metadata when imported
    from interview_scheduling.models import availability_slot, interview, student_availability  # noqa: F401

    Base.metadata.create_all(bind=engine or get_engine())
