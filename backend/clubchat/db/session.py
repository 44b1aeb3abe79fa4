from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from clubchat.core.config import settings

db_url_lower = settings.DATABASE_URL.lower()
is_postgres = "postgresql" in db_url_lower or "postgres" in db_url_lower
is_sqlite = db_url_lower.startswith("sqlite")

connect_args = {}
if is_postgres:
    # Emoji reactions and message text must survive the round trip
    connect_args["client_encoding"] = "UTF8"
elif is_sqlite:
    # Socket.IO handlers may open sessions from worker threads
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
    echo=settings.SQL_ECHO
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base=declarative_base()

def get_db():
    db=SessionLocal()
    try:
        yield db

    finally:
        db.close()
