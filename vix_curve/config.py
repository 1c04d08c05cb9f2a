"""Configuration models and loader for the VIX term structure dashboard."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, PositiveInt, field_validator, model_validator


class HistoryProvider(str, Enum):
    YFINANCE = "yfinance"
    CSV = "csv"


class HistoryCsvPaths(BaseModel):
    sp500: Path
    vix: Path


class YFinanceConfig(BaseModel):
    sp500_symbol: str = "^GSPC"
    vix_symbol: str = "^VIX"


class DataConfig(BaseModel):
    provider: HistoryProvider = HistoryProvider.YFINANCE
    futures_csv: Path = Path("data/vix_futures.csv")
    yfinance: YFinanceConfig = Field(default_factory=YFinanceConfig)
    csv: Optional[HistoryCsvPaths] = None

    @model_validator(mode="after")
    def _validate_payload(self) -> "DataConfig":
        if self.provider == HistoryProvider.CSV and self.csv is None:
            raise ValueError("csv provider requires csv paths")
        return self


class CurveConfig(BaseModel):
    target_maturity_days: PositiveInt = 30
    inject_spot_from_history: bool = True
    history_lookback_days: PositiveInt = 120


class StorageConfig(BaseModel):
    path: Path = Path("data/vix_term_structure.csv")
    enabled: bool = True


class MovingAverageConfig(BaseModel):
    windows: List[PositiveInt] = Field(default_factory=lambda: [10, 20, 50])

    @field_validator("windows")
    @classmethod
    def unique_sorted(cls, windows: List[int]) -> List[int]:
        if not windows:
            raise ValueError("at least one moving-average window is required")
        return sorted(set(windows))


class LoggingConfig(BaseModel):
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def known_level(cls, level: str) -> str:
        name = level.upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"unknown logging level {level!r}")
        return name


class AppConfig(BaseModel):
    data: DataConfig = Field(default_factory=DataConfig)
    curve: CurveConfig = Field(default_factory=CurveConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    moving_averages: MovingAverageConfig = Field(default_factory=MovingAverageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(source: Union[str, Path, Dict[str, Any]]) -> AppConfig:
    """Load and validate the application config from a path or raw mapping."""

    if isinstance(source, (str, Path)):
        path = Path(source)
        payload = yaml.safe_load(path.read_text()) or {}
    elif isinstance(source, dict):
        payload = source
    else:
        raise TypeError("config source must be a path or mapping")

    return AppConfig.model_validate(payload)


__all__ = [
    "AppConfig",
    "CurveConfig",
    "DataConfig",
    "HistoryCsvPaths",
    "HistoryProvider",
    "LoggingConfig",
    "MovingAverageConfig",
    "StorageConfig",
    "YFinanceConfig",
    "load_config",
]
