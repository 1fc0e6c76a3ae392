from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from remie.core.config import get_settings

settings = get_settings()

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # SQLite connections are shared across the request threadpool
    connect_args["check_same_thread"] = False

# echo=True will log all SQL queries, useful for debugging
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,  # Verify connections before using them
    connect_args=connect_args,
)

# Each instance will be a database session
SessionLocal = sessionmaker(autoflush=False, autocommit=False, bind=engine)

# Base class for our ORM models
Base = declarative_base()


def get_db():
    """
    Dependency function that provides a database session.

    :return:
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
