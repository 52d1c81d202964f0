"""
Configuration module for the strike trading bot.
Loads settings from environment variables with validation.
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from dotenv import load_dotenv

from .risk.exit_policy import ExitConfig
from .risk.manager import RiskLimits
from .strategies.decision import DecisionConfig

# Load .env file if present
load_dotenv()


@dataclass
class PolymarketConfig:
    """Polymarket API configuration."""
    api_key: str
    api_secret: str
    api_passphrase: str

    # API endpoints
    clob_url: str = "https://clob.polymarket.com"
    gamma_url: str = "https://gamma-api.polymarket.com"
    market_slug_prefix: str = "btc-updown-15m"


@dataclass
class WalletConfig:
    """Wallet configuration."""
    private_key: str
    funder_address: str

    # Chain ID for Polygon Mainnet
    chain_id: int = 137
    signature_type: int = 1


@dataclass
class ReferenceFeedConfig:
    """Reference price feed settings."""
    symbol: str = "btcusdt"
    ws_url: str = "wss://stream.binance.com:9443/ws"
    rest_url: str = "https://api.binance.com/api/v3/ticker/price"
    history_size: int = 100
    reconnect_delay_seconds: float = 1.0
    trend_window_seconds: int = 30


@dataclass
class RiskConfig:
    """Risk control settings."""
    kill_switch: bool
    simulation_mode: bool  # Dry run - decide and account but don't hit the exchange
    limits: RiskLimits = field(default_factory=RiskLimits)


@dataclass
class ScheduleConfig:
    """Periodic task intervals."""
    snapshot_interval_seconds: float = 30.0
    analysis_interval_seconds: float = 5.0


@dataclass
class LogConfig:
    """Logging configuration."""
    log_level: str
    json_logging: bool


@dataclass
class Config:
    """Main configuration container."""
    polymarket: PolymarketConfig
    wallet: WalletConfig
    feed: ReferenceFeedConfig
    decision: DecisionConfig
    exits: ExitConfig
    risk: RiskConfig
    schedule: ScheduleConfig
    logging: LogConfig


def get_env(key: str, default: Optional[str] = None, required: bool = True) -> str:
    """Get environment variable with validation."""
    value = os.getenv(key, default)
    if required and not value:
        raise ValueError(f"Required environment variable {key} is not set")
    return value or ""


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes")


def get_env_int(key: str, default: int) -> int:
    """Get integer environment variable."""
    value = os.getenv(key, str(default))
    return int(value)


def get_env_float(key: str, default: float) -> float:
    """Get float environment variable."""
    value = os.getenv(key, str(default))
    return float(value)


def load_config() -> Config:
    """Load and validate configuration from environment."""

    simulation_mode = get_env_bool("SIMULATION_MODE", True)  # Default to simulation
    # Exchange credentials are only needed when orders really go out
    live = not simulation_mode

    return Config(
        polymarket=PolymarketConfig(
            api_key=get_env("POLYMARKET_API_KEY", required=live),
            api_secret=get_env("POLYMARKET_API_SECRET", required=live),
            api_passphrase=get_env("POLYMARKET_API_PASSPHRASE", required=live),
            market_slug_prefix=get_env("MARKET_SLUG_PREFIX", "btc-updown-15m", required=False),
        ),
        wallet=WalletConfig(
            private_key=get_env("PRIVATE_KEY", required=live),
            funder_address=get_env("FUNDER_ADDRESS", required=False),
            signature_type=get_env_int("SIGNATURE_TYPE", 1),
        ),
        feed=ReferenceFeedConfig(
            symbol=get_env("REFERENCE_SYMBOL", "btcusdt", required=False).lower(),
            trend_window_seconds=get_env_int("TREND_WINDOW_SECONDS", 30),
        ),
        decision=DecisionConfig(
            min_distance=get_env_float("MIN_PRICE_DISTANCE", 100.0),
            max_ticket_price=get_env_float("MAX_TICKET_PRICE", 0.75),
            min_ticket_price=get_env_float("MIN_TICKET_PRICE", 0.10),
            base_amount=get_env_float("BASE_AMOUNT", 5.0),
        ),
        exits=ExitConfig(
            stop_loss_percent=get_env_float("STOP_LOSS_PERCENT", -20.0),
        ),
        risk=RiskConfig(
            kill_switch=get_env_bool("KILL_SWITCH", False),
            simulation_mode=simulation_mode,
            limits=RiskLimits(
                max_position_size=get_env_float("MAX_POSITION_SIZE", 10.0),
                max_open_positions=get_env_int("MAX_OPEN_POSITIONS", 5),
                max_total_exposure=get_env_float("MAX_TOTAL_EXPOSURE", 50.0),
                max_daily_loss=get_env_float("MAX_DAILY_LOSS", 20.0),
            ),
        ),
        schedule=ScheduleConfig(
            snapshot_interval_seconds=get_env_float("SNAPSHOT_INTERVAL_SECONDS", 30.0),
            analysis_interval_seconds=get_env_float("ANALYSIS_INTERVAL_SECONDS", 5.0),
        ),
        logging=LogConfig(
            log_level=get_env("LOG_LEVEL", "INFO", required=False),
            json_logging=get_env_bool("JSON_LOGGING", True),
        ),
    )
