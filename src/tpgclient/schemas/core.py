from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, TypeVar

from tpgclient.schemas.apitime import parse_api_time


T = TypeVar("T")


def _as_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"Expected a JSON object for {what}, got {type(data).__name__}")
    return data


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError(f"Expected a string for {key!r}, got {type(value).__name__}")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    if data.get(key) is None:
        return None
    return _str(data, key)


def _int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    # JSON booleans are ints in Python; the API never uses them for numeric fields.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected a number for {key!r}, got {type(value).__name__}")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"Expected an integer for {key!r}, got {value}")
    return int(value)


def _optional_int(data: Mapping[str, Any], key: str) -> Optional[int]:
    if data.get(key) is None:
        return None
    return _int(data, key)


def _float(data: Mapping[str, Any], key: str) -> float:
    value = data.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected a number for {key!r}, got {type(value).__name__}")
    return float(value)


def _bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise TypeError(f"Expected a boolean for {key!r}, got {type(value).__name__}")
    return value


def _time(data: Mapping[str, Any], key: str) -> Optional[datetime]:
    value = data.get(key)
    if value is None:
        return None
    return parse_api_time(value)


def _list(data: Mapping[str, Any], key: str, parse: Callable[[Any], T]) -> tuple[T, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, list):
        raise TypeError(f"Expected a JSON array for {key!r}, got {type(value).__name__}")
    return tuple(parse(item) for item in value)


def _obj(data: Mapping[str, Any], key: str, parse: Callable[[Any], T]) -> Optional[T]:
    value = data.get(key)
    if value is None:
        return None
    return parse(value)


@dataclass(frozen=True)
class LatLng:
    """A WGS84 position."""

    lat: float
    lng: float


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float
    referential: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Coordinates":
        data = _as_mapping(data, "coordinates")
        return cls(
            latitude=_float(data, "latitude"),
            longitude=_float(data, "longitude"),
            referential=_str(data, "referential"),
        )


@dataclass(frozen=True)
class Connection:
    """One line/destination pair served from a stop."""

    destination_code: str
    destination_name: str
    line_code: str

    @classmethod
    def from_dict(cls, data: Any) -> "Connection":
        data = _as_mapping(data, "connection")
        return cls(
            destination_code=_str(data, "destinationCode"),
            destination_name=_str(data, "destinationName"),
            line_code=_str(data, "lineCode"),
        )


@dataclass(frozen=True)
class Stop:
    code: str
    name: str
    # Metres from the requested position; only filled by proximity queries.
    distance: int = 0
    connections: tuple[Connection, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "Stop":
        data = _as_mapping(data, "stop")
        return cls(
            code=_str(data, "stopCode"),
            name=_str(data, "stopName"),
            distance=_int(data, "distance"),
            connections=_list(data, "connections", Connection.from_dict),
        )


@dataclass(frozen=True)
class PhysicalStop:
    physical_stop_code: str
    stop_name: str
    coordinates: Optional[Coordinates] = None
    connections: tuple[Connection, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "PhysicalStop":
        data = _as_mapping(data, "physical stop")
        return cls(
            physical_stop_code=_str(data, "physicalStopCode"),
            stop_name=_str(data, "stopName"),
            coordinates=_obj(data, "coordinates", Coordinates.from_dict),
            connections=_list(data, "connections", Connection.from_dict),
        )


@dataclass(frozen=True)
class PhysicalStopGroup:
    """A logical stop and the platforms/posts behind it."""

    stop_code: str
    stop_name: str
    physical_stops: tuple[PhysicalStop, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "PhysicalStopGroup":
        data = _as_mapping(data, "physical stop group")
        return cls(
            stop_code=_str(data, "stopCode"),
            stop_name=_str(data, "stopName"),
            physical_stops=_list(data, "physicalStops", PhysicalStop.from_dict),
        )


@dataclass(frozen=True)
class Deviation:
    deviation_code: str

    @classmethod
    def from_dict(cls, data: Any) -> "Deviation":
        data = _as_mapping(data, "deviation")
        return cls(deviation_code=_str(data, "deviationCode"))


@dataclass(frozen=True)
class Disruption:
    code: str
    timestamp: Optional[datetime]
    place: str = ""
    consequence: str = ""
    nature: str = ""
    line_code: str = ""
    stop_name: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> "Disruption":
        data = _as_mapping(data, "disruption")
        return cls(
            code=_str(data, "disruptionCode"),
            timestamp=_time(data, "timestamp"),
            place=_str(data, "place"),
            consequence=_str(data, "consequence"),
            nature=_str(data, "nature"),
            line_code=_str(data, "lineCode"),
            stop_name=_str(data, "stopName"),
        )


@dataclass(frozen=True)
class LineColor:
    """Rendering hints for a line: `hexa` is the foreground color."""

    line_code: str
    hexa: str
    background: str
    text: str

    @classmethod
    def from_dict(cls, data: Any) -> "LineColor":
        data = _as_mapping(data, "line color")
        return cls(
            line_code=_str(data, "lineCode"),
            hexa=_str(data, "hexa"),
            background=_str(data, "background"),
            text=_str(data, "text"),
        )


@dataclass(frozen=True)
class Departure:
    departure_code: int
    line: Connection
    reliability: str
    # Raw string as sent; not parsed into a datetime.
    timestamp: str
    waiting_time: str
    waiting_time_millis: int

    @classmethod
    def from_dict(cls, data: Any) -> "Departure":
        data = _as_mapping(data, "departure")
        line = _obj(data, "line", Connection.from_dict) or Connection("", "", "")
        return cls(
            departure_code=_int(data, "departureCode"),
            line=line,
            reliability=_str(data, "reliability"),
            timestamp=_str(data, "timestamp"),
            waiting_time=_str(data, "waitingTime"),
            waiting_time_millis=_int(data, "waitingTimeMillis"),
        )


@dataclass(frozen=True)
class NextDeparture:
    """
    A `Departure` extended with vehicle and disruption details.

    The API sends both parts in one flat JSON object; the base fields live in
    `departure` and are mirrored by read-only properties.
    """

    departure: Departure
    characteristics: str = ""
    disruptions: tuple[Disruption, ...] = ()
    vehicle_no: int = 0
    vehicle_type: str = ""
    deviation: Optional[Deviation] = None
    connection_waiting_time: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "NextDeparture":
        data = _as_mapping(data, "next departure")
        return cls(
            departure=Departure.from_dict(data),
            characteristics=_str(data, "characteristics"),
            disruptions=_list(data, "disruptions", Disruption.from_dict),
            vehicle_no=_int(data, "vehiculeNo"),
            vehicle_type=_str(data, "vehiculeType"),
            deviation=_obj(data, "deviation", Deviation.from_dict),
            connection_waiting_time=_optional_int(data, "connectionWaitingTime"),
        )

    @property
    def departure_code(self) -> int:
        return self.departure.departure_code

    @property
    def line(self) -> Connection:
        return self.departure.line

    @property
    def reliability(self) -> str:
        return self.departure.reliability

    @property
    def timestamp(self) -> str:
        return self.departure.timestamp

    @property
    def waiting_time(self) -> str:
        return self.departure.waiting_time

    @property
    def waiting_time_millis(self) -> int:
        return self.departure.waiting_time_millis


@dataclass(frozen=True)
class Step:
    """One stop along a thermometer."""

    stop: Stop
    timestamp: str = ""
    departure_code: Optional[int] = None
    deviation: bool = False
    deviation_code: str = ""
    reliability: Optional[str] = None
    visible: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "Step":
        data = _as_mapping(data, "step")
        stop = _obj(data, "stop", Stop.from_dict) or Stop(code="", name="")
        return cls(
            stop=stop,
            timestamp=_str(data, "timestamp"),
            departure_code=_optional_int(data, "departureCode"),
            deviation=_bool(data, "deviation"),
            deviation_code=_str(data, "deviationCode"),
            reliability=_optional_str(data, "reliability"),
            visible=_bool(data, "visible"),
        )


@dataclass(frozen=True)
class StopsResponse:
    timestamp: Optional[datetime]
    stops: tuple[Stop, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "StopsResponse":
        data = _as_mapping(data, "stops response")
        return cls(timestamp=_time(data, "timestamp"), stops=_list(data, "stops", Stop.from_dict))


@dataclass(frozen=True)
class PhysicalStopsResponse:
    timestamp: Optional[datetime]
    stops: tuple[PhysicalStopGroup, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "PhysicalStopsResponse":
        data = _as_mapping(data, "physical stops response")
        return cls(
            timestamp=_time(data, "timestamp"),
            stops=_list(data, "stops", PhysicalStopGroup.from_dict),
        )


@dataclass(frozen=True)
class NextDeparturesResponse:
    timestamp: Optional[datetime]
    stop: Optional[Stop] = None
    departures: tuple[NextDeparture, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "NextDeparturesResponse":
        data = _as_mapping(data, "next departures response")
        return cls(
            timestamp=_time(data, "timestamp"),
            stop=_obj(data, "stop", Stop.from_dict),
            departures=_list(data, "departures", NextDeparture.from_dict),
        )


@dataclass(frozen=True)
class AllNextDeparturesResponse:
    timestamp: Optional[datetime]
    stop: Optional[Stop] = None
    departures: tuple[Departure, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "AllNextDeparturesResponse":
        data = _as_mapping(data, "all next departures response")
        return cls(
            timestamp=_time(data, "timestamp"),
            stop=_obj(data, "stop", Stop.from_dict),
            departures=_list(data, "departures", Departure.from_dict),
        )


def _thermometer_disruption(value: Any) -> Optional[Disruption]:
    # The field is named in the plural; tolerate a list and keep its first entry.
    if isinstance(value, list):
        return Disruption.from_dict(value[0]) if value else None
    return Disruption.from_dict(value)


@dataclass(frozen=True)
class ThermometerResponse:
    """Progress of a departure along its route, stop by stop."""

    timestamp: Optional[datetime]
    destination_code: str = ""
    destination_name: str = ""
    line_code: str = ""
    stop: Optional[Stop] = None
    steps: tuple[Step, ...] = ()
    disruption: Optional[Disruption] = None
    deviations: tuple[Deviation, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "ThermometerResponse":
        data = _as_mapping(data, "thermometer response")
        return cls(
            timestamp=_time(data, "timestamp"),
            destination_code=_str(data, "destinationCode"),
            destination_name=_str(data, "destinationName"),
            line_code=_str(data, "lineCode"),
            stop=_obj(data, "stop", Stop.from_dict),
            steps=_list(data, "steps", Step.from_dict),
            disruption=_obj(data, "disruptions", _thermometer_disruption),
            deviations=_list(data, "deviations", Deviation.from_dict),
        )


@dataclass(frozen=True)
class LinesColorsResponse:
    timestamp: Optional[datetime]
    colors: tuple[LineColor, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "LinesColorsResponse":
        data = _as_mapping(data, "lines colors response")
        return cls(timestamp=_time(data, "timestamp"), colors=_list(data, "colors", LineColor.from_dict))


@dataclass(frozen=True)
class DisruptionsResponse:
    timestamp: Optional[datetime]
    disruptions: tuple[Disruption, ...] = ()

    @classmethod
    def from_dict(cls, data: Any) -> "DisruptionsResponse":
        data = _as_mapping(data, "disruptions response")
        return cls(
            timestamp=_time(data, "timestamp"),
            disruptions=_list(data, "disruptions", Disruption.from_dict),
        )
