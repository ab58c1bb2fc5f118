from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env", ".env.production"), extra="ignore")

    ENVIRONMENT: str = "LOCAL"
    LOG_LEVEL: str = "INFO"

    # Ledger context
    CHAIN_ID: int = 31337
    GENESIS_TIMESTAMP: int = 1_700_000_000
    BLOCK_TIME_SECONDS: int = 12
    AUTOMINE: bool = False

    # Deployment
    REGISTRY_OWNER: str = "0x00000000000000000000000000000000000000A1"
    ASSET_NAME: str = "Carbon Credit"
    ASSET_SYMBOL: str = "CCR"

    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000


settings = Settings()
