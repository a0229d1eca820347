from __future__ import annotations

import json
import socket
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable

from ..base import ToolSpec, ToolResult
from ..context import ExecutorContext
from ..contract import ErrorCode
from ...llm.retry import RetryOptions, with_retry

LOOKUP_TIMEOUT = 6
WEATHER_URL = "https://wttr.in/{location}?format=j1"


class WeatherHTTPError(RuntimeError):
    def __init__(self, status: int, reason: str = ""):
        super().__init__(f"Weather API error: {status}" + (f" {reason}" if reason else ""))
        self.status = status


def _is_server_error(err: BaseException) -> bool:
    return isinstance(err, WeatherHTTPError) and err.status >= 500


def _first_value(obj: Any, key: str) -> str:
    try:
        return str(obj[key][0]["value"])
    except (KeyError, IndexError, TypeError):
        return ""


def parse_weather(data: dict[str, Any], location: str) -> dict[str, Any] | None:
    """Pick the fields we report out of a wttr.in j1 document."""
    current = (data.get("current_condition") or [None])[0]
    if not isinstance(current, dict):
        return None
    area = (data.get("nearest_area") or [{}])[0] or {}
    return {
        "location": _first_value(area, "areaName") or location,
        "region": _first_value(area, "region"),
        "country": _first_value(area, "country"),
        "temperature_f": current.get("temp_F"),
        "temperature_c": current.get("temp_C"),
        "feels_like_f": current.get("FeelsLikeF"),
        "feels_like_c": current.get("FeelsLikeC"),
        "humidity": current.get("humidity"),
        "condition": _first_value(current, "weatherDesc") or "Unknown",
        "wind_mph": current.get("windspeedMiles"),
        "wind_dir": current.get("winddir16Point"),
        "visibility_miles": current.get("visibilityMiles"),
        "uv_index": current.get("uvIndex"),
    }


@dataclass
class GetWeatherTool:
    spec: ToolSpec = ToolSpec(
        name="get_weather",
        description="Get current weather conditions for a location (city, region or airport code).",
        parameters={
            "type": "object",
            "properties": {
                "location": {"type": "string", "minLength": 1, "description": "e.g. 'Paris' or 'New York'"},
            },
            "required": ["location"],
        },
    )
    sleep: Callable[[float], None] = time.sleep

    def _fetch(self, url: str) -> dict[str, Any]:
        req = urllib.request.Request(url, headers={"User-Agent": "pyassist/0.1", "Accept": "application/json"})
        try:
            with urllib.request.urlopen(req, timeout=LOOKUP_TIMEOUT) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            raise WeatherHTTPError(e.code, str(e.reason or "")) from e
        return json.loads(raw)

    def execute(self, ctx: ExecutorContext, args: dict[str, Any]) -> ToolResult:
        location = args["location"].strip()
        if not location:
            return ToolResult.failure(ErrorCode.VALIDATION_ERROR, "Location cannot be empty.")
        url = WEATHER_URL.format(location=urllib.parse.quote(location, safe=""))
        # One retry, for 5xx only.
        options = RetryOptions(max_retries=1, base_delay_ms=250, max_delay_ms=1000, retry_on=_is_server_error)
        try:
            data = with_retry(lambda: self._fetch(url), options, sleep=self.sleep)
        except WeatherHTTPError as e:
            return ToolResult.failure(ErrorCode.EXEC_ERROR, str(e))
        except (socket.timeout, TimeoutError):
            return ToolResult.failure(ErrorCode.EXEC_ERROR, "Weather request timed out.")
        except urllib.error.URLError as e:
            if isinstance(e.reason, (socket.timeout, TimeoutError)):
                return ToolResult.failure(ErrorCode.EXEC_ERROR, "Weather request timed out.")
            return ToolResult.failure(ErrorCode.EXEC_ERROR, f"Weather error: {e.reason}")
        except (json.JSONDecodeError, UnicodeDecodeError):
            return ToolResult.failure(ErrorCode.EXEC_ERROR, "Unable to parse weather data.")

        result = parse_weather(data, location) if isinstance(data, dict) else None
        if result is None:
            return ToolResult.failure(ErrorCode.EXEC_ERROR, "Unable to parse weather data.")
        return ToolResult.success(result)
