import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy.engine import URL


class Settings:
    def __init__(
        self,
        database_url: str,
        pool_size: int,
        port: int,
        api_url: str,
        csrf_secret: str,
    ) -> None:
        self.database_url = database_url
        self.pool_size = pool_size
        self.port = port
        self.api_url = api_url
        self.csrf_secret = csrf_secret


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINANCE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def build_database_url(
    host: Optional[str],
    user: str,
    password: str,
    name: str,
) -> str:
    if host:
        url = URL.create(
            "mysql+pymysql", username=user, password=password, host=host, database=name
        )
        return url.render_as_string(hide_password=False)
    default_db = _ensure_data_dir() / "finance.db"
    return f"sqlite:///{default_db}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv()
    database_url = os.getenv("FINANCE_DATABASE_URL") or build_database_url(
        os.getenv("FINANCE_DB_HOST"),
        os.getenv("FINANCE_DB_USER", "root"),
        os.getenv("FINANCE_DB_PASSWORD", ""),
        os.getenv("FINANCE_DB_NAME", "finance_db"),
    )
    pool_size = int(os.getenv("FINANCE_DB_POOL_SIZE", "10"))
    port = int(os.getenv("FINANCE_PORT", "3001"))
    api_url = os.getenv("FINANCE_API_URL", f"http://localhost:{port}/api")
    csrf_secret = os.getenv(
        "FINANCE_CSRF_SECRET",
        "5d1c7a0f6be24e0c93a1c0de8f1e2b7a94c3d86f0a5b17e2c9d4f6a8b0e3c1d7",
    )
    return Settings(
        database_url=database_url,
        pool_size=pool_size,
        port=port,
        api_url=api_url,
        csrf_secret=csrf_secret,
    )
