"""
Weather lookup tool.

Returns stub data for now; the tool contract is what clients rely on.
"""

from dataclasses import dataclass
from typing import List

from .protocol import ToolExecutionError, ToolParameter
from .tools import BaseTool


UNITS = ("metric", "imperial")


@dataclass
class WeatherData:
    """Weather information for a location."""
    location: str
    temperature: float
    condition: str
    humidity: int
    wind_speed: float
    units: str


def get_weather(location: str, units: str = "metric") -> WeatherData:
    """Return weather data for a location."""
    if not isinstance(location, str) or not location:
        raise ToolExecutionError("location must be a non-empty string")

    if units not in UNITS:
        raise ToolExecutionError("units must be either 'metric' or 'imperial'")

    # TODO: call a real weather API instead of returning stub data
    return WeatherData(
        location=location,
        temperature=22.5,
        condition="Partly Cloudy",
        humidity=65,
        wind_speed=10.5,
        units=units,
    )


class WeatherTool(BaseTool):
    """Current weather for a location."""

    @property
    def name(self) -> str:
        return "get_weather"

    @property
    def description(self) -> str:
        return "Get the current weather for a location"

    @property
    def parameters(self) -> List[ToolParameter]:
        return [
            ToolParameter(
                name="location",
                type="string",
                description="City or place name",
                required=True,
            ),
            ToolParameter(
                name="units",
                type="string",
                description="Unit system for temperature and wind speed",
                default="metric",
                enum=UNITS,
            ),
        ]

    @property
    def returns(self) -> List[ToolParameter]:
        return [
            ToolParameter("location", "string", "Location the report is for"),
            ToolParameter("temperature", "number", "Temperature in °C or °F depending on units"),
            ToolParameter("condition", "string", "Short description of the sky"),
            ToolParameter("humidity", "integer", "Relative humidity in percent"),
            ToolParameter("wind_speed", "number", "Wind speed in km/h or mph depending on units"),
            ToolParameter("units", "string", "Unit system used", enum=UNITS),
        ]

    def execute(self, location: str, units: str = "metric") -> WeatherData:
        return get_weather(location, units)
