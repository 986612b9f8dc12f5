"""Configuration management for the tick analyzer.

Rules:
- YAML provides defaults for non-secret config.
- Secrets (Deriv token) and a few key settings come from .env / environment
  variables and override YAML.
- YAML is never injected into os.environ.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tick_analyzer.models.markets import DEFAULT_MARKET, MARKETS


class DerivConfig(BaseModel):
    """Deriv API configuration."""

    app_id: str = Field(default="1089", description="Deriv application ID")
    api_token: str = Field(default="", description="Deriv API token (empty = public tick streams only)")
    websocket_url: str = Field(
        default="wss://ws.derivws.com/websockets/v3",
        description="Deriv WebSocket URL",
    )

    @field_validator("app_id")
    @classmethod
    def validate_app_id(cls, v: str) -> str:
        if not v or not str(v).isdigit():
            raise ValueError("app_id must be a non-empty numeric string")
        return str(v)

    @field_validator("websocket_url")
    @classmethod
    def validate_websocket_url(cls, v: str) -> str:
        if not str(v).startswith(("ws://", "wss://")):
            raise ValueError("websocket_url must start with ws:// or wss://")
        return str(v)


class FeedConfig(BaseModel):
    """Live tick feed settings."""

    symbol: str = Field(default=DEFAULT_MARKET)
    window_capacity: int = Field(default=100, ge=20, le=10_000)
    reconnect_delay_sec: float = Field(default=3.0, gt=0, le=300)
    resubscribe_delay_sec: float = Field(default=0.2, ge=0, le=10)
    event_log_size: int = Field(default=16, ge=1, le=1000)

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        if str(v) not in MARKETS:
            raise ValueError(f"symbol must be one of: {sorted(MARKETS)}")
        return str(v)


class AnalysisConfig(BaseModel):
    """Indicator periods and signal thresholds."""

    min_ticks: int = Field(default=20, ge=2, le=1000)
    sma_fast_period: int = Field(default=20, ge=2, le=500)
    sma_slow_period: int = Field(default=50, ge=3, le=1000)
    rsi_period: int = Field(default=14, ge=2, le=200)
    volatility_period: int = Field(default=20, ge=2, le=500)
    momentum_period: int = Field(default=10, ge=2, le=500)
    rsi_overbought: float = Field(default=70.0, gt=0, lt=100)
    rsi_oversold: float = Field(default=30.0, gt=0, lt=100)
    momentum_threshold: float = Field(default=1.0, ge=0)

    @field_validator("sma_slow_period")
    @classmethod
    def validate_sma_periods(cls, v: int, info) -> int:
        if "sma_fast_period" in info.data and v <= info.data["sma_fast_period"]:
            raise ValueError("sma_slow_period must be greater than sma_fast_period")
        return v

    @field_validator("rsi_oversold")
    @classmethod
    def validate_rsi_levels(cls, v: float, info) -> float:
        if "rsi_overbought" in info.data and v >= info.data["rsi_overbought"]:
            raise ValueError("rsi_oversold must be lower than rsi_overbought")
        return v


class APIConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1024, le=65535)
    cors_origins: List[str] = Field(default=["http://localhost:3000", "http://localhost:5173"])


class AnalyzerConfig(BaseSettings):
    """Main configuration class for the analyzer."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)

    deriv: DerivConfig = Field(default_factory=DerivConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    api: APIConfig = Field(default_factory=APIConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if str(v).upper() not in valid:
            raise ValueError(f"Log level must be one of: {sorted(valid)}")
        return str(v).upper()

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "AnalyzerConfig":
        """Load configuration from YAML, then apply env overrides on top."""
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        try:
            base = cls.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Configuration validation error: {e}")

        return base.apply_env_overrides()

    def apply_env_overrides(self) -> "AnalyzerConfig":
        overrides = {
            ("deriv", "app_id"): os.getenv("DERIV__APP_ID"),
            ("deriv", "api_token"): os.getenv("DERIV__API_TOKEN"),
            ("feed", "symbol"): os.getenv("FEED__SYMBOL"),
        }
        data = self.model_dump()
        for (section, key), value in overrides.items():
            if value:
                data[section][key] = value
        if os.getenv("LOG_LEVEL"):
            data["log_level"] = os.getenv("LOG_LEVEL")

        try:
            return type(self).model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Configuration validation error: {e}")


def load_config(config_path: Optional[Path] = None) -> AnalyzerConfig:
    """Load configuration from YAML + .env (env wins for secrets).

    Without a YAML file the built-in defaults are used.
    """
    load_dotenv(dotenv_path=Path(".env"))

    if config_path is None:
        possible_paths = [Path("config/default.yaml"), Path("config/config.yaml"), Path("config.yaml")]
        for path in possible_paths:
            if path.exists():
                config_path = path
                break
        else:
            return AnalyzerConfig.model_validate({}).apply_env_overrides()

    return AnalyzerConfig.from_yaml(config_path)


# Global config instance
_config: Optional[AnalyzerConfig] = None


def get_config() -> AnalyzerConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Optional[Path] = None) -> AnalyzerConfig:
    global _config
    _config = load_config(config_path)
    return _config
