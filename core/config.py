# WORKFLOW: Core configuration management for the Parcel Ingestion API.
# Used by: All modules throughout the application
# Configuration includes:
# - Database connection settings
# - Upload limits (size, allowed content types, temporary directory)
# - Parser settings (spreadsheet-XML minimum rows, source system tag)
# - API settings (prefix, CORS, host/port)
# - Logging configuration
#
# Loaded at startup and used by all services for consistent configuration.

from pydantic_settings import BaseSettings, SettingsConfigDict

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./parcels.db"

    # Uploads
    upload_dir: str = "uploads"
    max_upload_size_bytes: int = 5 * 1024 * 1024
    allowed_content_types: list[str] = [
        XLSX_CONTENT_TYPE,
        "application/xml",
        "text/xml",
    ]

    # Parsers
    spreadsheet_xml_min_rows: int = 8
    source_system: str = "FILE_UPLOAD"

    # API
    api_v1_prefix: str = "/api/v1"
    project_name: str = "Parcel Ingestion API"
    version: str = "1.0.0"

    # Environment
    environment: str = "development"
    debug: bool = False

    # Logging
    log_level: str = "INFO"

    # CORS
    allowed_origins: list[str] = ["*"]
    allowed_methods: list[str] = ["*"]
    allowed_headers: list[str] = ["*"]

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8001

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
