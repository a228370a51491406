from pathlib import Path
from typing import Any, List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

ENVIRONMENTS = ("development", "production")
NETWORKS = ("mainnet", "testnet")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Normalise enumerated values picked up from the environment."""

        super().model_post_init(__context)

        environment = (self.environment or "").strip().lower()
        if environment in {"dev", "local"}:
            environment = "development"
        elif environment in {"prod", "live"}:
            environment = "production"
        if environment not in ENVIRONMENTS:
            environment = "development"
        object.__setattr__(self, "environment", environment)

        network = (self.hedera_network or "").strip().lower()
        object.__setattr__(self, "hedera_network", network if network in NETWORKS else "mainnet")

    # Runtime
    environment: str = Field(
        default="development",
        description="Deploy mode used to pick the agent endpoint (development or production)",
        validation_alias=AliasChoices("environment", "HEDRON_ENV", "VITE_MODE"),
    )
    log_level: str = Field(default="INFO", description="Logging level")

    # Agent endpoint
    ws_url: Optional[str] = Field(
        default=None,
        description="Explicit agent WebSocket URL; overrides the per-environment endpoints",
        validation_alias=AliasChoices("ws_url", "WS_URL", "VITE_WS_URL"),
    )
    ws_url_development: str = Field(
        default="ws://localhost:8080",
        description="Agent WebSocket endpoint used in development",
    )
    ws_url_production: str = Field(
        default="wss://agent.hedron.app",
        description="Agent WebSocket endpoint used in production",
    )

    # Hedera / wallet
    hedera_network: str = Field(
        default="mainnet",
        description="Hedera network the wallet is connected to (mainnet or testnet)",
        validation_alias=AliasChoices("hedera_network", "HEDERA_NETWORK", "VITE_HEDERA_NETWORK"),
    )
    user_account_id: str = Field(
        default="",
        description="Default Hedera account id used by the terminal client",
    )

    # Reconnection
    reconnect_base_delay_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Delay before the first reconnect attempt after an abnormal close",
    )
    reconnect_multiplier: float = Field(
        default=2.0,
        ge=1.0,
        description="Growth factor applied to the delay after each failed attempt",
    )
    reconnect_max_delay_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Upper bound for the reconnect delay",
    )
    reconnect_jitter: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Proportional random jitter added to grown delays",
    )
    reconnect_max_attempts: Optional[int] = Field(
        default=None,
        ge=1,
        description="Consecutive reconnect attempts before giving up (None = unlimited)",
    )

    # Protocol
    auth_success_markers: List[str] = Field(
        default_factory=lambda: ["Authenticated successfully"],
        description="Text fragments in a SYSTEM_MESSAGE that acknowledge CONNECTION_AUTH",
    )
    default_swap_fee: int = Field(
        default=3000,
        ge=0,
        description="Fee tier (hundredths of a basis point) assumed when a reply omits it",
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def agent_ws_url(self) -> str:
        """Endpoint the transport connects to."""
        if self.ws_url:
            return self.ws_url
        if self.is_production:
            return self.ws_url_production
        return self.ws_url_development

    def reconnect_policy(self):
        from .core.transport import ReconnectPolicy

        return ReconnectPolicy(
            base_delay=self.reconnect_base_delay_seconds,
            multiplier=self.reconnect_multiplier,
            max_delay=self.reconnect_max_delay_seconds,
            jitter=self.reconnect_jitter,
            max_attempts=self.reconnect_max_attempts,
        )


# Global settings instance
settings = Settings()
