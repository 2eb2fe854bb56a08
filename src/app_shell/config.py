import os
from functools import lru_cache
from pathlib import Path

DATA_DIR_ENV = "DEDOUP_DATA_DIR"
RULES_PATH_ENV = "DEDOUP_RULES_PATH"

PROJECT_ROOT = Path(__file__).resolve().parents[2]


class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get(DATA_DIR_ENV, "./data"))
        self.rules_path = Path(os.environ.get(RULES_PATH_ENV, str(self.base_dir / "rules.yaml")))
        self.migrations_dir = str(PROJECT_ROOT / "migrations")

    def db_path(self, db_file: str) -> str:
        return str(self.data_dir / db_file)

    def ensure_data_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    return Settings()
