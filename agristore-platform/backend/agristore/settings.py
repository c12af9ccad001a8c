# agristore/settings.py
import tempfile
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    LIGHTHOUSE_API_KEY: str | None = None
    LIGHTHOUSE_BASE_URL: str = "https://node.lighthouse.storage"
    LIGHTHOUSE_API_URL: str = "https://api.lighthouse.storage"
    GATEWAY_URL: str = "https://gateway.lighthouse.storage"

    BASE_RPC_URL: str = "https://mainnet.base.org"
    BASE_TESTNET_RPC_URL: str = "https://sepolia.base.org"
    CONTRACT_ADDRESS: str | None = None

    # unset means neither development nor production: testnet, redacted errors
    ENVIRONMENT: str | None = None
    FRONTEND_URL: str = "https://agri-store-eta.vercel.app"
    HOST: str = "127.0.0.1"
    PORT: int = 3001
    LOG_LEVEL: str = "INFO"

    UPLOAD_DIR: str = Field(default_factory=tempfile.gettempdir)
    MAX_UPLOAD_BYTES: int = 100 * 1024 * 1024
    MAX_BULK_FILES: int = 20
    STORAGE_TIMEOUT_SECONDS: float = 60.0

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def rpc_url(self) -> str:
        """Base mainnet in production, the testnet everywhere else."""
        return self.BASE_RPC_URL if self.is_production else self.BASE_TESTNET_RPC_URL

    @property
    def network_label(self) -> str:
        return "Mainnet" if self.is_production else "Testnet"


@lru_cache
def get_settings() -> Settings:
    return Settings()
