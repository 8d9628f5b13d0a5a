"""Weather MCP server backed by an HTTP weather service.

Uses the wttr.in JSON format (``?format=j1``) by default; point
``WEATHER_API_URL`` or ``--api-url`` at any service that speaks it.
"""

import argparse
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from mcp_framework import BaseMCPServer, ToolError, mcp_resource, mcp_tool

from .config import WEATHER_API_URL, WEATHER_TIMEOUT

MAX_FORECAST_DAYS = 3


def _first_value(entries: List[Dict[str, str]]) -> str:
    return entries[0]["value"] if entries else ""


def parse_current_conditions(city: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Extract the current conditions from a j1 weather response.

    Raises:
        ToolError: If the response does not have the expected structure
    """
    try:
        current = data["current_condition"][0]
        area = (data.get("nearest_area") or [{}])[0]
        location = ", ".join(
            part for part in (_first_value(area.get("areaName", [])), _first_value(area.get("country", []))) if part
        )
        return {
            "city": city,
            "location": location or city,
            "conditions": _first_value(current.get("weatherDesc", [])),
            "temperature_c": float(current["temp_C"]),
            "feels_like_c": float(current["FeelsLikeC"]),
            "humidity_pct": int(current["humidity"]),
            "wind_kph": float(current["windspeedKmph"]),
            "observed_at": current.get("localObsDateTime") or current.get("observation_time"),
        }
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise ToolError(f"Unexpected response from weather service for {city}: {e}") from e


def parse_forecast(city: str, data: Dict[str, Any], days: int) -> List[Dict[str, Any]]:
    """Extract daily min/max temperatures from a j1 weather response."""
    try:
        return [
            {
                "date": day["date"],
                "min_c": float(day["mintempC"]),
                "max_c": float(day["maxtempC"]),
                "avg_c": float(day["avgtempC"]) if "avgtempC" in day else None,
            }
            for day in data["weather"][:days]
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise ToolError(f"Unexpected forecast response from weather service for {city}: {e}") from e


class WeatherServer(BaseMCPServer):
    """Current weather and short forecasts for a city."""

    def __init__(
        self,
        api_url: str = WEATHER_API_URL,
        timeout: float = WEATHER_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the weather server.

        Args:
            api_url: Base URL of the weather service
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        super().__init__("weather", "0.1.0")
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--api-url",
            default=self.api_url,
            help=f"Weather service base URL (default: {self.api_url})"
        )
        parser.add_argument(
            "--timeout",
            type=float,
            default=self.timeout,
            help="Request timeout in seconds"
        )

    async def _fetch(self, city: str) -> Dict[str, Any]:
        if not city.strip():
            raise ToolError("City must not be empty")

        async with httpx.AsyncClient(base_url=self.api_url, timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(f"/{quote(city.strip())}", params={"format": "j1"})
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise ToolError(
                    f"Weather service returned {e.response.status_code} for {city}"
                ) from e
            except httpx.HTTPError as e:
                logging.error(f"Weather request for {city} failed: {e}")
                raise ToolError(f"Could not reach weather service: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise ToolError(f"Weather service did not return JSON for {city}") from e

    @mcp_tool(name="fetch-weather")
    async def fetch_weather(self, city: str) -> Dict[str, Any]:
        """Fetch current weather for a city.

        Args:
            city: City name, e.g. "London" or "New York"

        Returns:
            Current conditions, temperature, humidity and wind
        """
        data = await self._fetch(city)
        return parse_current_conditions(city, data)

    @mcp_tool()
    async def forecast(self, city: str, days: int = 3) -> List[Dict[str, Any]]:
        """Daily temperature forecast for a city.

        Args:
            city: City name
            days: Number of days to return (1-3)
        """
        if not 1 <= days <= MAX_FORECAST_DAYS:
            raise ToolError(f"days must be between 1 and {MAX_FORECAST_DAYS}")
        data = await self._fetch(city)
        return parse_forecast(city, data, days)

    @mcp_resource("weather://config", name="weather-config", mime_type="application/json")
    def get_config(self) -> Dict[str, Any]:
        """Weather service settings in use"""
        return {"api_url": self.api_url, "timeout": self.timeout}


def main(args: Optional[List[str]] = None) -> None:
    """Main entry point for the weather server."""
    parsed_args = WeatherServer().parse_args(args)
    WeatherServer(api_url=parsed_args.api_url, timeout=parsed_args.timeout).main(args)


if __name__ == "__main__":
    main()
