from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_STORE_PATH_ENV = "READINGS_STORE_PATH"
_INGESTION_MODE_ENV = "INGESTION_MODE"
_SUMMARY_STRATEGY_ENV = "DAY_SUMMARY_STRATEGY"
_TIMEZONE_ENV = "READINGS_TIMEZONE"
_TRIGGER_MODE_ENV = "TRIGGER_MODE"
_DEVICE_URL_ENV = "DEVICE_BASE_URL"
_TRIGGER_TIMEOUT_ENV = "TRIGGER_TIMEOUT_SECONDS"
_SIM_MIN_ENV = "SIMULATOR_MIN_VALUE"
_SIM_MAX_ENV = "SIMULATOR_MAX_VALUE"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_INGESTION_MODES = ("monotonic_reject", "consumption_delta", "unconditional")
_SUMMARY_STRATEGIES = ("recomputed", "stored")
_TRIGGER_MODES = ("simulated", "http", "disabled")


@dataclass(frozen=True)
class Settings:
    store_path: Optional[str]
    ingestion_mode: str
    summary_strategy: str
    timezone: Optional[str]
    trigger_mode: str
    device_base_url: str
    trigger_timeout: float
    simulator_min_value: float
    simulator_max_value: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_choice_env(name: str, choices: tuple[str, ...], default: str) -> str:
    candidate = _read_str_env(name, default).lower()
    return candidate if candidate in choices else default


def _read_float_env(name: str, default: float, positive: bool = False) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    if positive and parsed <= 0:
        return default
    return parsed


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/readings.json"),
        ingestion_mode=_read_choice_env(
            _INGESTION_MODE_ENV, _INGESTION_MODES, "consumption_delta"
        ),
        summary_strategy=_read_choice_env(
            _SUMMARY_STRATEGY_ENV, _SUMMARY_STRATEGIES, "recomputed"
        ),
        timezone=_read_optional_env(_TIMEZONE_ENV, None),
        trigger_mode=_read_choice_env(_TRIGGER_MODE_ENV, _TRIGGER_MODES, "simulated"),
        device_base_url=_read_str_env(_DEVICE_URL_ENV, "http://192.168.4.1"),
        trigger_timeout=_read_float_env(_TRIGGER_TIMEOUT_ENV, 10.0, positive=True),
        simulator_min_value=_read_float_env(_SIM_MIN_ENV, 0.0),
        simulator_max_value=_read_float_env(_SIM_MAX_ENV, 1000.0),
        log_level=_read_log_level("INFO"),
    )
