from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True)

    ENVIRONMENT: str = "development"

    # Relay listener settings
    RELAY_HOST: str = "127.0.0.1"
    RELAY_PORT: int = 8888

    # StreamReader limit; a longer line is a read failure
    MAX_LINE_BYTES: int = 64 * 1024

    # When False, end of stream stops reading but keeps the connection
    # registered
    DEREGISTER_ON_EOF: bool = True

    # When True, registering an identifier that is already live raises
    # instead of replacing the previous write channel
    REJECT_DUPLICATE_IDS: bool = False

    # HTTP side channel (health and metrics)
    HTTP_HOST: str = "0.0.0.0"
    HTTP_PORT: int = 8000

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/relay.log"
    LOG_EXCLUDED_PATHS: list[str] = ["/metrics", "/health"]

    # Loki settings
    LOKI_ENABLED: bool = False
    LOKI_URL: str = "http://loki:3100"
    LOKI_VERSION: str = "1"


app_settings = Settings()
