from pydantic_settings import BaseSettings
from typing import List
import os


class Settings(BaseSettings):
    env: str = "dev"
    secret_key: str = "change_me_super_secret"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    refresh_token_expire_minutes: int = 60 * 24 * 30
    database_url: str = "postgresql+psycopg2://salonuser:salonpass@db:5432/salonpos"
    tenant_header: str = "X-Tenant-ID"
    backend_cors_origins: str = "http://localhost:5173"
    log_level: str = "INFO"

    # Agenda
    agenda_interval: int = 30  # 5, 10, 30 or 60
    agenda_display_until: str = "21:00"
    closed_day_fallback_open: str = "08:00"
    public_slot_interval: int = 30
    default_booking_duration: int = 30
    default_work_start: str = "09:00"
    default_work_end: str = "20:00"
    default_lunch_start: str = "12:00"
    default_lunch_end: str = "13:00"

    # Services that count as "primary" for the secondary-units goal
    primary_service_categories: str = "Cabelo,Barba"

    port: int = int(os.getenv("PORT", "8000"))

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        origins = self.backend_cors_origins
        return [origin.strip() for origin in origins.split(",") if origin.strip()]

    @property
    def primary_categories(self) -> List[str]:
        return [c.strip() for c in self.primary_service_categories.split(",") if c.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
