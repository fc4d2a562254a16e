# miniapp_guide/db_connection_hlpr.py
import logging
import os
from typing import Callable

from google.auth import default as google_auth_default
from google.cloud import secretmanager
from google.oauth2 import service_account
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from miniapp_guide import app_config
from miniapp_guide.entities import Base

logger = logging.getLogger("miniapp_guide")

CLOUD_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


def _cloud_credentials():
    key_file = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if key_file and os.path.exists(key_file):
        return service_account.Credentials.from_service_account_file(key_file, scopes=CLOUD_SCOPES)
    creds, _ = google_auth_default(scopes=CLOUD_SCOPES)
    return creds


def fetch_db_password() -> str:
    """Plain DB_PASSWORD first, else the latest version of DB_SECRET_ID."""
    if app_config.DB_PASSWORD:
        return app_config.DB_PASSWORD
    if not app_config.DB_SECRET_ID:
        raise RuntimeError("Neither DB_PASSWORD nor DB_SECRET_ID is configured")
    client = secretmanager.SecretManagerServiceClient(credentials=_cloud_credentials())
    version = client.secret_version_path(app_config.PROJECT_ID, app_config.DB_SECRET_ID, "latest")
    payload = client.access_secret_version(request={"name": version}).payload
    return payload.data.decode("utf-8")


def resolve_database_url(explicit: str | None = None) -> str:
    """
    Explicit argument, then DATABASE_URL. Without either a localhost
    DB_HOST selects the local SQLite file and anything else Postgres.
    """
    url = explicit or app_config.DATABASE_URL
    if url:
        return url
    if app_config.IS_LOCAL_DB:
        return app_config.LOCAL_DB_URL
    return (
        f"postgresql+pg8000://{app_config.DB_USER}:{fetch_db_password()}"
        f"@{app_config.DB_HOST}:{app_config.DB_PORT}/{app_config.DB_NAME}"
    )


class DBConnection:
    """Lazily built engine and session factory for the guide index."""

    def __init__(self, database_url: str | None = None) -> None:
        self.url = resolve_database_url(database_url)
        self._engine: Engine | None = None
        self._sessionmaker: sessionmaker | None = None

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    def get_engine(self) -> Engine:
        if self._engine is not None:
            return self._engine
        if self.is_sqlite:
            logger.info(f"[DB] SQLite index at {self.url}")
            self._engine = create_engine(self.url, future=True, connect_args={"check_same_thread": False})
        else:
            logger.info(f"[DB] Postgres index at {app_config.DB_HOST}:{app_config.DB_PORT}/{app_config.DB_NAME}")
            # pg8000 connect timeout, seconds
            self._engine = create_engine(self.url, future=True, pool_pre_ping=True, connect_args={"timeout": 10})
        return self._engine

    def create_schema(self) -> None:
        Base.metadata.create_all(self.get_engine())

    def build_db_session_factory(self) -> Callable[[], Session]:
        if self._sessionmaker is None:
            self._sessionmaker = sessionmaker(
                bind=self.get_engine(),
                autoflush=False,
                expire_on_commit=False,
                future=True,
            )
        return self._sessionmaker
