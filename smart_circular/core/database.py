from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    # SQLite connections are shared across the threadpool FastAPI runs sync endpoints in
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def create_tables(engine: Engine) -> None:
    # Import the models so their tables are registered on Base.metadata
    from smart_circular.models import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
