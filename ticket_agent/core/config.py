"""Application configuration."""

import os
import tempfile

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Environment
    env: str = os.getenv("APP_ENV", "development")
    api_secret_key: str = os.getenv("API_SECRET_KEY", "dev-secret-key")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./data/tasks.db")

    # Orchestration
    workspace_root: str = os.getenv("WORKSPACE_ROOT", tempfile.gettempdir())
    queue_capacity: int = int(os.getenv("QUEUE_CAPACITY", "100"))

    # Jira
    jira_review_status: str = os.getenv("JIRA_REVIEW_STATUS", "Code Review")

    # OpenCode
    opencode_base_url: str = os.getenv("OPENCODE_BASE_URL", "http://127.0.0.1:4096")
    opencode_model_id: str = os.getenv("OPENCODE_MODEL_ID", "claude-opus-4.5")
    opencode_provider_id: str = os.getenv("OPENCODE_PROVIDER_ID", "github-copilot")

    # Timeouts (in seconds)
    agent_poll_interval: float = float(os.getenv("AGENT_POLL_INTERVAL", "2"))
    agent_max_wait: float = float(os.getenv("AGENT_MAX_WAIT", "1800"))  # 30 minutes
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "30"))


settings = Settings()
