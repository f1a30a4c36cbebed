"""MinIO configuration."""

from dataclasses import dataclass

from bundler.lib.config_manager import ConfigManager
from bundler.services.errors import ConfigError


@dataclass
class MinIOConfig:
    """MinIO connection settings.

    Attributes:
        url: Endpoint URL, with or without scheme
        access_key: Access key
        secret_key: Secret key
        secure: Use HTTPS (also implied by an https:// URL)
        region: Optional bucket region, skips region lookups when set
        timeout_seconds: Connect/read timeout for each HTTP request
    """

    url: str = "http://localhost:9000"
    access_key: str = "minioadmin"
    secret_key: str = "minioadmin"
    secure: bool = False
    region: str = ""
    timeout_seconds: float = 60.0

    def __post_init__(self):
        """Validate configuration."""
        if not self.url:
            raise ConfigError("MINIO_URL must not be empty")
        if self.timeout_seconds <= 0:
            raise ConfigError(f"Invalid timeout: {self.timeout_seconds}. Must be positive")

    @property
    def endpoint(self) -> str:
        """Host[:port] without scheme, as the SDK expects."""
        return self.url.replace("http://", "").replace("https://", "").rstrip("/")

    @property
    def use_tls(self) -> bool:
        return self.secure or self.url.startswith("https://")

    @classmethod
    def from_config(cls, manager: ConfigManager) -> "MinIOConfig":
        """Build from a config manager."""
        return cls(
            url=manager.get("MINIO_URL"),
            access_key=manager.get("MINIO_ACCESS_KEY"),
            secret_key=manager.get("MINIO_SECRET_KEY"),
            secure=manager.get("MINIO_SECURE"),
            region=manager.get("MINIO_REGION"),
            timeout_seconds=manager.get("FETCH_TIMEOUT_SECONDS"),
        )
