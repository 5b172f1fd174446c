from collections.abc import Generator

from sqlalchemy import JSON, create_engine, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Postgres connection for load_emails, hunt plans and lookup tables.

    DATABASE_URL wins when set; a ``sqlite://`` URL runs the service without
    Postgres (local replay of stored emails, tests).
    """

    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "load_hunter"
    db_host: str = "db"
    db_port: int = 5432
    db_pool_size: int = 5
    db_echo: bool = False
    database_url: str | None = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"postgresql+psycopg2://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"


def build_engine(url: str, *, pool_size: int = 5, echo: bool = False) -> Engine:
    if url.startswith("sqlite"):
        # One shared connection so an in-memory database survives across sessions.
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=echo, pool_pre_ping=True, pool_size=max(pool_size, 1))


db_settings = DatabaseSettings()
DATABASE_URL = db_settings.resolved_database_url

engine = build_engine(DATABASE_URL, pool_size=db_settings.db_pool_size, echo=db_settings.db_echo)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# parsed_data / hunt_coordinates: JSONB on Postgres, JSON on SQLite.
JSONType = JSON().with_variant(JSONB(), "postgresql")


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_database_connection() -> bool:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    return True
