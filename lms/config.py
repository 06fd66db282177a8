from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

load_dotenv()


class Settings(BaseSettings):
    database_url: str = "sqlite:///./lms.db"
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    log_level: str = "INFO"
    log_dir: str = "logs"
    webhook_secret: Optional[str] = None
    payment_gateway: str = "sandbox"


settings = Settings()


def _engine_kwargs(url: str) -> dict:
    # FastAPI runs sync endpoints in a threadpool; sqlite connections must be shareable.
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def create_db():
    # Register every table on Base before create_all.
    import lms.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
