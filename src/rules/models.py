from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class AnalyticsRules(BaseModel):
    timezone: str = "UTC"
    daily_activity_days: int = Field(default=30, ge=1)
    top_sites_limit: int = Field(default=50, ge=1)
    today_by_domain_limit: int = Field(default=30, ge=1)
    recent_visits_max: int = Field(default=50, ge=1)
    history_max_limit: int = Field(default=100, ge=1)
    visit_history_max_limit: int = Field(default=50, ge=1)
    source_top_n: int = Field(default=7, ge=0)
    max_conflict_retries: int = Field(default=3, ge=0)

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone '{v}'") from e
        return v


class StorageRules(BaseModel):
    backend: Literal["sqlite", "memory"] = "sqlite"
    db_file: str = "dedoup.db"
    busy_timeout_seconds: float = Field(default=5.0, gt=0)
    query_timeout_ms: int | None = Field(default=10_000, ge=1)


class LoggingRules(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class Rules(BaseModel):
    project: ProjectRules
    analytics: AnalyticsRules = Field(default_factory=AnalyticsRules)
    storage: StorageRules = Field(default_factory=StorageRules)
    logging: LoggingRules = Field(default_factory=LoggingRules)
