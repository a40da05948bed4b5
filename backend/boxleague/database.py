"""
Engine and session wiring for the box league API.

DATABASE_URL selects the database (a SQLite file beside the app by default);
SQL_ECHO=true logs every statement. Routes get one session per request and
wrap it in a Ledger.
"""
import os
from pathlib import Path
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./boxleague.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")


def make_engine(url: str, echo: bool = False) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # Sync routes run on FastAPI's threadpool
        connect_args["check_same_thread"] = False
        db_path = url.replace("sqlite:///", "", 1)
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, echo=echo, connect_args=connect_args)


engine: Engine = make_engine(DATABASE_URL, echo=SQL_ECHO)


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Create the league, player, match and week tables if they are missing."""
    from boxleague.models.league import League  # noqa: F401
    from boxleague.models.match import BoxMatch  # noqa: F401
    from boxleague.models.player import BoxPlayer  # noqa: F401
    from boxleague.models.week import BoxWeek  # noqa: F401

    SQLModel.metadata.create_all(engine)
