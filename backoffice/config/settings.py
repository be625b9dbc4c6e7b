# backoffice/config/settings.py

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_name: str = "backoffice"
    environment: Literal["dev", "test", "prod"] = "dev"
    debug: bool = False
    version: str = "0.1.0"
    cors_origins: str = ""  # comma-separated; empty allows any origin

    # --- Security ---
    jwt_secret: str = Field(..., min_length=32)
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 7 * 24 * 60
    session_cookie_name: str = "session"
    cookie_secure: bool = False
    password_hash_iterations: int = Field(480000, ge=1)

    # --- Data files (relative paths resolve against the project root) ---
    data_dir: str = "./data"
    data_role_permissions_file: str = "./data/role_permissions.json"
    data_users_file: str = "./data/users.json"
    data_audit_file: str = "./data/audit_logs.json"
    data_legacy_file: str = "./data/auth.json"
    data_notifications_file: str = "./data/notifications.json"
    data_requirements_file: str = "./data/requirements.json"
    data_requirement_documents_file: str = "./data/requirement_documents.json"
    data_projects_file: str = "./data/projects.json"
    data_project_documents_file: str = "./data/project_documents.json"
    data_tasks_file: str = "./data/tasks.json"
    data_milestones_file: str = "./data/milestones.json"
    data_matching_file: str = "./data/matching_results.json"
    data_quality_reports_file: str = "./data/quality_reports.json"
    data_test_documents_file: str = "./data/test_documents.json"
    data_ai_jobs_file: str = "./data/ai_jobs.json"
    data_support_messages_file: str = "./data/support_messages.json"

    # --- Observability ---
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
