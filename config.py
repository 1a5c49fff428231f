# config.py
"""
Runtime configuration for the owner portal backend.

Values come from the environment (a local `.env` file is loaded first).
Admin credentials for the auth server are only checked when an admin
client is actually built, so the app can start without them in dev.
"""
import os
from functools import lru_cache
from typing import List, Optional
from urllib.parse import quote_plus

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
     value = os.getenv(name)
     if value is None:
          return default
     return value.strip().lower() in ("1", "true", "yes", "on")


def _build_database_url() -> str:
     url = os.getenv("DATABASE_URL")
     if url:
          return url
     user = quote_plus(os.getenv("DB_USER") or "")
     password = quote_plus(os.getenv("DB_PASS") or "")
     host = os.getenv("DB_HOST", "localhost")
     port = os.getenv("DB_PORT", "5432")
     name = os.getenv("DB_NAME", "owner_portal")
     return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"


class Settings:
     """Snapshot of the environment taken when the settings are first requested."""

     def __init__(self) -> None:
          # Relational store
          self.DATABASE_URL: str = _build_database_url()
          self.SQL_ECHO: bool = _env_bool("SQL_ECHO")
          self.DB_STATEMENT_TIMEOUT_MS: int = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "30000"))

          # Session tokens issued by the auth server
          self.JWT_SECRET: Optional[str] = os.getenv("JWT_SECRET")
          self.JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
          self.JWT_AUDIENCE: Optional[str] = os.getenv("JWT_AUDIENCE", "authenticated")
          self.SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "access_token")
          self.SESSION_COOKIE_SECURE: bool = _env_bool("SESSION_COOKIE_SECURE", True)

          # Identity service (GoTrue-compatible REST API)
          self.AUTH_URL: Optional[str] = os.getenv("AUTH_URL")
          self.AUTH_ANON_KEY: Optional[str] = os.getenv("AUTH_ANON_KEY")
          self.AUTH_SERVICE_ROLE_KEY: Optional[str] = os.getenv("AUTH_SERVICE_ROLE_KEY")
          # Where password-reset links send the user back to
          self.SITE_URL: str = os.getenv("SITE_URL", "http://localhost:3000").rstrip("/")

          # Object storage
          self.AZURE_STORAGE_ACCOUNT: Optional[str] = os.getenv("AZURE_STORAGE_ACCOUNT")
          self.AZURE_STORAGE_KEY: Optional[str] = os.getenv("AZURE_STORAGE_KEY")
          self.INVOICE_CONTAINER: str = os.getenv("INVOICE_CONTAINER", "invoices")

          # HTTP
          self.CORS_ORIGINS: List[str] = [
               origin.strip()
               for origin in os.getenv("CORS_ORIGINS", "").split(",")
               if origin.strip()
          ]
          self.PORT: int = int(os.getenv("PORT", "10000"))

          self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
          self.RATE_LIMIT_BACKEND: str = os.getenv("RATE_LIMIT_BACKEND", "database").lower()

     @property
     def is_sqlite(self) -> bool:
          return self.DATABASE_URL.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
     return Settings()
