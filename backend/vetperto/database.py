from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from .config import settings


def create_db_engine(url: str, **kwargs):
    connect_args = {}
    if url.startswith("sqlite"):
        # SQLite connections are shared between FastAPI worker threads
        connect_args["check_same_thread"] = False

    engine = create_engine(url, connect_args=connect_args, **kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def enable_sqlite_fk(dbapi_connection, _):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = create_db_engine(settings.resolved_database_url)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
