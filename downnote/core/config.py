from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    sql_echo: bool = False
    log_level: str = "INFO"
    create_schema_on_startup: bool = False

    # Versioning policy
    version_char_threshold: int = 100
    version_time_threshold_minutes: float = 5
    version_retention_count: int = 20

    # Guest welcome document, skipped on migration when unmodified
    welcome_document_title: str = "Welcome to DownNote"
    welcome_document_prefix: str = "# Welcome to DownNote!"

    model_config = {"env_file": ".env", "extra": "ignore"}

settings = Settings()
