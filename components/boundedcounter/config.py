from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional

class CounterSettings(BaseSettings):
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    # None -> packaged lua/ directory
    COUNTER_SCRIPT_DIR: Optional[str] = None
    COUNTER_KEY_PREFIX: str = Field(default="")

    class Config:
        env_file = ".env"
        case_sensitive = False
