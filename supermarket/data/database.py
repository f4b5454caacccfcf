# supermarket/data/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from supermarket.utils.settings import DATABASE_URL

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    #sqlite + wiele watkow uvicorna, timeout na blokade zapisu
    connect_args = {"check_same_thread": False, "timeout": 15}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
