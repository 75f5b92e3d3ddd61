import os

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class DatabaseConfig(BaseModel):
    """Database configuration supporting both PostgreSQL and SQLite."""

    type: str = "sqlite"  # Either 'postgresql' or 'sqlite'
    database: str  # Database name for PostgreSQL or file path for SQLite
    host: str = ""  # Only used for PostgreSQL
    port: int = 5432  # Only used for PostgreSQL
    user: str = ""  # Only used for PostgreSQL
    password: str = ""  # Only used for PostgreSQL
    max_connections: int = 5
    group_table_prefix: str = "message"
    log_table_name: str = "bot_log"

    @property
    def url(self) -> str:
        """Get the database connection URL."""
        if self.type == "sqlite":
            return f"sqlite:///{self.database}"
        elif self.type == "postgresql":
            return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"
        else:
            raise ValueError(f"Unsupported database type: {self.type}")


class OneBotConfig(BaseModel):
    api_url: str = "http://127.0.0.1:5700"
    access_token: str = ""
    bot_id: int = 0
    timeout_sec: float = 10.0
    known_members: dict[int, str] = {}  # user id -> display name


class LiveRoomConfig(BaseModel):
    group_id: int
    room_id: str
    online_msg: str = "The stream is live!"
    offline_msg: str = "The stream has ended."
    poll_interval_sec: float = 60.0


class LogConfig(BaseModel):
    file_path: str = "logs/live_agent.log"
    max_size_mb: int = 10
    backup_count: int = 5
    level: str = "INFO"
    db_level: str = "INFO"  # Minimum level persisted to the log table


class Settings(BaseSettings):
    database: DatabaseConfig
    onebot: OneBotConfig = OneBotConfig()
    live_rooms: list[LiveRoomConfig] = []
    logging: LogConfig = LogConfig()
    utc_offset_hours: int = 8
    data_dir: str = "data"

    class Config:
        env_nested_delimiter = "__"
        env_file = ".env"

    def __init__(self, **kwargs):
        common = dict(
            max_connections=int(os.environ.get("DATABASE_MAX_CONNECTIONS", "5")),
            group_table_prefix=os.environ.get("GROUP_TABLE_PREFIX", "message"),
            log_table_name=os.environ.get("LOG_TABLE_NAME", "bot_log"),
        )

        # Create database config from environment
        db_type = os.environ.get("DATABASE_TYPE", "sqlite")
        if db_type == "postgresql":
            database_config = DatabaseConfig(
                type="postgresql",
                host=os.environ.get("POSTGRES_HOST", "localhost"),
                port=int(os.environ.get("POSTGRES_PORT", "5432")),
                database=os.environ.get("POSTGRES_DB", ""),
                user=os.environ.get("POSTGRES_USER", ""),
                password=os.environ.get("POSTGRES_PASSWORD", ""),
                **common,
            )
        elif db_type == "sqlite":
            database_config = DatabaseConfig(
                type="sqlite",
                database=os.environ.get("SQLITE_DB", "store.db"),
                **common,
            )
        else:
            raise ValueError(f"Unsupported database type: {db_type}")

        kwargs.setdefault("database", database_config)
        super().__init__(**kwargs)
