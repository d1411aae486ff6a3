from sqlalchemy import create_engine, Enum
from sqlalchemy.orm import sessionmaker, declarative_base

from utils.config import DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def enum_column(enum_cls, name: str) -> Enum:
    """Enum column type that stores the lowercase values instead of member names."""
    return Enum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
