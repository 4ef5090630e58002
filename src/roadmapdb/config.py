import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from psycopg.conninfo import make_conninfo

# Load the appropriate .env file on module import
env = os.environ.get("ROADMAPDB_ENV", "development").lower()
env_file = f".env.{env}"
if os.path.exists(env_file):
    load_dotenv(env_file)
else:
    # Fall back to the default .env file
    load_dotenv()

DEFAULT_SETUP_SQL = Path(__file__).parent / "sql" / "setup.sql"


def _flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    environment: str
    db_host: str
    db_port: int
    db_user: str
    db_password: str
    db_name: str
    pool_min_size: int
    pool_max_size: int
    pool_timeout: float
    setup_sql_path: Path
    strict_bootstrap: bool = False
    strict_columns: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            environment=env,
            db_host=os.environ.get("DATABASE_HOST", "localhost"),
            db_port=int(os.environ.get("DATABASE_PORT", "5432")),
            db_user=os.environ.get("DATABASE_USER", "postgres"),
            db_password=os.environ.get("DATABASE_PASSWORD", ""),
            db_name=os.environ.get("DATABASE_NAME", "roadmaps"),
            pool_min_size=int(os.environ.get("DATABASE_POOL_MIN_SIZE", "1")),
            pool_max_size=int(os.environ.get("DATABASE_POOL_MAX_SIZE", "10")),
            pool_timeout=float(os.environ.get("DATABASE_POOL_TIMEOUT", "30.0")),
            setup_sql_path=Path(os.environ.get("ROADMAPDB_SETUP_SQL", DEFAULT_SETUP_SQL)),
            strict_bootstrap=_flag("ROADMAPDB_STRICT_BOOTSTRAP"),
            strict_columns=_flag("ROADMAPDB_STRICT_COLUMNS"),
        )

    @property
    def conninfo(self) -> str:
        """libpq connection string for the configured server."""
        return make_conninfo(
            host=self.db_host,
            port=self.db_port,
            user=self.db_user,
            password=self.db_password or None,
            dbname=self.db_name,
        )


config = Config.from_env()
