from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

# Default data directory
DATA_DIR = Path(__file__).parent.parent.parent / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LIFTLOG_")

    project_name: str = "liftlog"
    version: str = "0.1.0"

    data_dir: Path = DATA_DIR
    db_filename: str = "liftlog.db"
    # Seconds a connection waits for another writer's lock
    db_busy_timeout: float = 5.0

    # Acting user for the CLI
    user: Optional[str] = None
    api_url: str = "http://127.0.0.1:8000"

    heartbeat_interval_seconds: float = 30.0
    history_limit: int = 100
    routine_history_window: int = 50
    recent_limit: int = 10
    history_page_size: int = 20

    log_level: str = "WARNING"


settings = Settings()
