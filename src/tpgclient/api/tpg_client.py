from __future__ import annotations

from typing import Iterable, Optional, Union

import requests

from tpgclient.api.tpg_base import TPGHTTPClient
from tpgclient.config.models import DEFAULT_TIMEOUT_S, ClientConfig
from tpgclient.schemas.core import (
    AllNextDeparturesResponse,
    DisruptionsResponse,
    LatLng,
    LinesColorsResponse,
    NextDeparturesResponse,
    PhysicalStopsResponse,
    StopsResponse,
    ThermometerResponse,
)


# Endpoint paths, relative to the versioned API prefix and without the `.json` suffix.
GET_STOPS_PATH = "/GetStops"
GET_PHYSICAL_STOPS_PATH = "/GetPhysicalStops"
GET_NEXT_DEPARTURES_PATH = "/GetNextDepartures"
GET_ALL_NEXT_DEPARTURES_PATH = "/GetAllNextDepartures"
GET_THERMOMETER_PATH = "/GetThermometer"
GET_THERMOMETER_PHYSICAL_STOPS_PATH = "/GetThermometerPhysicalStops"
GET_LINES_COLORS_PATH = "/GetLinesColors"
GET_DISRUPTIONS_PATH = "/GetDisruptions"

DepartureCode = Union[int, str]


def sorted_join(codes: Iterable[str]) -> str:
    """Sort codes ascending and join them with `,`; an empty iterable gives `""` (filter disabled)."""
    return ",".join(sorted(codes))


def _format_coordinate(value: float) -> str:
    return repr(float(value))


# `TPGClient` maps each API capability to one method; `TPGHTTPClient` handles HTTP and decoding.
class TPGClient:
    """
    Typed client for the TPG open data API.

    Every method performs one blocking GET and returns a frozen response record, or raises
    one of the errors from `tpgclient.api.tpg_base`.
    """

    def __init__(self, *, http: TPGHTTPClient) -> None:
        self._http = http

    @classmethod
    def create(
        cls,
        api_key: str,
        *,
        session: Optional[requests.Session] = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> "TPGClient":
        return cls(http=TPGHTTPClient(api_key=api_key, timeout_s=timeout_s, session=session))

    @classmethod
    def from_config(cls, config: ClientConfig, *, session: Optional[requests.Session] = None) -> "TPGClient":
        return cls(http=TPGHTTPClient.from_settings(config.tpg, session=session))

    # Stops

    def _get_stops(
        self,
        *,
        stop_code: str = "",
        stop_name: str = "",
        line: str = "",
        position: Optional[LatLng] = None,
    ) -> StopsResponse:
        params = {"stopCode": stop_code, "stopName": stop_name, "line": line}
        if position is not None:
            params["latitude"] = _format_coordinate(position.lat)
            params["longitude"] = _format_coordinate(position.lng)
        return self._http.fetch(GET_STOPS_PATH, params, StopsResponse.from_dict)

    def get_stops(self) -> StopsResponse:
        """All stops, ascending by stop code."""
        return self._get_stops()

    def get_stops_from_codes(self, codes: Iterable[str]) -> StopsResponse:
        """Stops whose code is in `codes`, ascending by stop code."""
        return self._get_stops(stop_code=sorted_join(codes))

    def get_stops_by_name(self, name: str) -> StopsResponse:
        """Stops whose name contains `name`."""
        return self._get_stops(stop_name=name)

    def get_stops_by_line(self, line: str) -> StopsResponse:
        """Stops served by `line`."""
        return self._get_stops(line=line)

    def get_stops_near(self, position: LatLng) -> StopsResponse:
        """
        Stops within the API's search radius (500 m) of `position`.

        `Stop.distance` holds the distance in metres.
        """

        return self._get_stops(position=position)

    # Physical stops

    def _get_physical_stops(self, *, stop_code: str = "", stop_name: str = "") -> PhysicalStopsResponse:
        params = {"stopCode": stop_code, "stopName": stop_name}
        return self._http.fetch(GET_PHYSICAL_STOPS_PATH, params, PhysicalStopsResponse.from_dict)

    def get_physical_stops_from_codes(self, codes: Iterable[str]) -> PhysicalStopsResponse:
        return self._get_physical_stops(stop_code=sorted_join(codes))

    def get_physical_stops_by_name(self, name: str) -> PhysicalStopsResponse:
        return self._get_physical_stops(stop_name=name)

    # Departures

    def _get_next_departures(
        self,
        *,
        stop_code: str = "",
        departure_code: str = "",
        lines_code: str = "",
        destinations_code: str = "",
    ) -> NextDeparturesResponse:
        params = {
            "stopCode": stop_code,
            "departureCode": departure_code,
            "linesCode": lines_code,
            "destinationsCode": destinations_code,
        }
        return self._http.fetch(GET_NEXT_DEPARTURES_PATH, params, NextDeparturesResponse.from_dict)

    def get_next_departures_for_stop(
        self,
        stop_code: str,
        departure_code: DepartureCode = "",
    ) -> NextDeparturesResponse:
        """
        Next departures from `stop_code`.

        With an empty `departure_code` every upcoming departure of the stop is returned.
        """

        return self._get_next_departures(stop_code=stop_code, departure_code=str(departure_code))

    def get_next_departures_for_lines(
        self,
        lines_codes: Iterable[str],
        destinations_codes: Iterable[str] = (),
    ) -> NextDeparturesResponse:
        return self._get_next_departures(
            lines_code=sorted_join(lines_codes),
            destinations_code=sorted_join(destinations_codes),
        )

    def get_all_next_departures(
        self,
        stop_code: str,
        line_code: str,
        destination_code: str,
    ) -> AllNextDeparturesResponse:
        params = {
            "stopCode": stop_code,
            "lineCode": line_code,
            "destinationCode": destination_code,
        }
        return self._http.fetch(GET_ALL_NEXT_DEPARTURES_PATH, params, AllNextDeparturesResponse.from_dict)

    # Thermometers

    def get_thermometer(self, departure_code: DepartureCode) -> ThermometerResponse:
        """Stops of a departure's route with disruptions and deviations, per logical stop."""
        params = {"departureCode": str(departure_code)}
        return self._http.fetch(GET_THERMOMETER_PATH, params, ThermometerResponse.from_dict)

    def get_thermometer_physical_stops(self, departure_code: DepartureCode) -> ThermometerResponse:
        """Same as `get_thermometer`, per physical stop."""
        params = {"departureCode": str(departure_code)}
        return self._http.fetch(GET_THERMOMETER_PHYSICAL_STOPS_PATH, params, ThermometerResponse.from_dict)

    # Network

    def get_lines_colors(self) -> LinesColorsResponse:
        return self._http.fetch(GET_LINES_COLORS_PATH, {}, LinesColorsResponse.from_dict)

    def get_disruptions(self) -> DisruptionsResponse:
        """Current disruptions on the whole network."""
        return self._http.fetch(GET_DISRUPTIONS_PATH, {}, DisruptionsResponse.from_dict)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "TPGClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
