from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tpgclient.version import __version__


DEFAULT_USER_AGENT = f"tpgclient/{__version__}"
DEFAULT_TIMEOUT_S = 30.0


@dataclass(frozen=True)
class TPGSettings:
    api_key: str
    timeout_s: float = DEFAULT_TIMEOUT_S
    user_agent: str = DEFAULT_USER_AGENT

    def __repr__(self) -> str:
        # Keep the key out of logs and tracebacks.
        return f"TPGSettings(api_key='***', timeout_s={self.timeout_s!r}, user_agent={self.user_agent!r})"


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s - %(message)s"
    file: Optional[Path] = None


@dataclass(frozen=True)
class ClientConfig:
    tpg: TPGSettings
    logging: LoggingSettings
