__all__ = [
    "__version__",
    "TPGClient",
    "TPGHTTPClient",
    "build_api_url",
    "TPGError",
    "TransportError",
    "DecodeError",
    "APIError",
    "UnknownResponseError",
    "APITimeParseError",
    "parse_api_time",
    "render_api_time",
    "LatLng",
    "load_config",
]

from tpgclient.api.tpg_base import (
    APIError,
    DecodeError,
    TPGError,
    TPGHTTPClient,
    TransportError,
    UnknownResponseError,
    build_api_url,
)
from tpgclient.api.tpg_client import TPGClient
from tpgclient.config.loader import load_config
from tpgclient.schemas.apitime import APITimeParseError, parse_api_time, render_api_time
from tpgclient.schemas.core import LatLng
from tpgclient.version import __version__
