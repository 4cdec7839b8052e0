"""
Settings
Environment driven configuration, read once per process.
"""
import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    port: int = 8080
    config_dir: str = "./config"
    default_output_file: str = "./config/events.log"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    log_level: str = "INFO"
    sender_hostname: str = "siem-event-generator"


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_settings() -> Settings:
    """Build settings from the environment, falling back to defaults"""
    config_dir = os.getenv("CONFIG_DIR", "./config")
    return Settings(
        port=int(os.getenv("PORT", "8080")),
        config_dir=config_dir,
        default_output_file=os.getenv("DEFAULT_OUTPUT_FILE", os.path.join(config_dir, "events.log")),
        cors_origins=_split(os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        sender_hostname=os.getenv("SENDER_HOSTNAME", "siem-event-generator"),
    )


@lru_cache()
def get_settings() -> Settings:
    return load_settings()
