from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from tpgclient.config.models import (
    DEFAULT_TIMEOUT_S,
    DEFAULT_USER_AGENT,
    ClientConfig,
    LoggingSettings,
    TPGSettings,
)


def _as_path(value: str, *, base_dir: Path) -> Path:
    candidate = Path(value)
    return candidate if candidate.is_absolute() else (base_dir / candidate)


def _parse_timeout(value: Any) -> float:
    try:
        timeout_s = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid timeout_s: {value!r}") from exc
    if timeout_s <= 0:
        raise ValueError(f"timeout_s must be > 0, got {timeout_s}")
    return timeout_s


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Config section {name!r} must be a JSON object, got {type(value).__name__}")
    return value


def load_config(
    path: Optional[str | Path] = None,
    *,
    base_dir: Optional[Path] = None,
    dotenv_path: Optional[str | Path] = ".env",
) -> ClientConfig:
    """
    Load typed client config.

    Sources, lowest to highest precedence:
    - optional JSON file (`path` or `TPGCLIENT_CONFIG_PATH`)
    - environment (`TPG_API_KEY`, `TPG_TIMEOUT_S`, `TPGCLIENT_LOG_LEVEL`), with `.env` loaded first

    Relative paths resolve against `base_dir` (defaults to the current working directory).
    """

    if dotenv_path is not None:
        load_dotenv(dotenv_path)

    base_dir = (base_dir or Path.cwd()).resolve()
    config_path = path or os.getenv("TPGCLIENT_CONFIG_PATH")

    raw: Mapping[str, Any] = {}
    if config_path:
        raw = json.loads(_as_path(str(config_path), base_dir=base_dir).read_text(encoding="utf-8"))
        if not isinstance(raw, Mapping):
            raise ValueError(f"Config file {config_path} must hold a JSON object, got {type(raw).__name__}")

    tpg_raw = _section(raw, "tpg")
    api_key = os.getenv("TPG_API_KEY") or tpg_raw.get("api_key")
    if not api_key:
        raise ValueError("Missing TPG API key: set TPG_API_KEY or tpg.api_key")

    timeout_value = os.getenv("TPG_TIMEOUT_S") or tpg_raw.get("timeout_s", DEFAULT_TIMEOUT_S)
    tpg = TPGSettings(
        api_key=str(api_key),
        timeout_s=_parse_timeout(timeout_value),
        user_agent=str(tpg_raw.get("user_agent", DEFAULT_USER_AGENT)),
    )

    logging_raw = _section(raw, "logging")
    file_value = logging_raw.get("file")
    log_file = None if not file_value else _as_path(str(file_value), base_dir=base_dir)
    defaults = LoggingSettings()
    logging_settings = LoggingSettings(
        level=str(os.getenv("TPGCLIENT_LOG_LEVEL") or logging_raw.get("level", defaults.level)),
        format=str(logging_raw.get("format", defaults.format)),
        file=log_file,
    )

    return ClientConfig(tpg=tpg, logging=logging_settings)
