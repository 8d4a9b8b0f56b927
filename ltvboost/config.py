"""Configuration management."""
import os


class Config:
    def __init__(self):
        self.BOT_TOKEN: str = os.environ.get("BOT_TOKEN", "")
        self.DB_PATH: str = os.environ.get("LTVBOOST_DB_PATH", "data/ltvboost.db")
        self.REDIS_URL: str = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
        self.MAX_HISTORY: int = int(os.environ.get("MAX_HISTORY", "50"))
        self.RATE_LIMIT_PER_MIN: int = int(os.environ.get("RATE_LIMIT_PER_MIN", "10"))
        self.LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()
        self.LOG_FILE: str = os.environ.get("LOG_FILE", "")

    def validate(self):
        if not self.BOT_TOKEN:
            raise ValueError("BOT_TOKEN is not set!")


config = Config()
