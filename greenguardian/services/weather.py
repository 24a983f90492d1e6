from __future__ import annotations

import logging
from datetime import date
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

WEATHER_URL = "https://api.weatherapi.com/v1/forecast.json"

MOCK_FORECAST_SUMMARY = """Day 1 (Today): Sunny, Max Temp: 28°C, Min Temp: 18°C, Humidity: 60%, Chance of Rain: 10%.
Day 2: Partly cloudy, Max Temp: 27°C, Min Temp: 17°C, Humidity: 65%, Chance of Rain: 20%.
Day 3: Cloudy with light rain in afternoon, Max Temp: 25°C, Min Temp: 16°C, Humidity: 75%, Chance of Rain: 60%.
Day 4: Sunny, Max Temp: 29°C, Min Temp: 19°C, Humidity: 55%, Chance of Rain: 5%.
Day 5: Scattered showers, Max Temp: 26°C, Min Temp: 17°C, Humidity: 70%, Chance of Rain: 40%.
Day 6: Mostly sunny, Max Temp: 30°C, Min Temp: 20°C, Humidity: 50%, Chance of Rain: 10%.
Day 7: Cloudy, Max Temp: 27°C, Min Temp: 18°C, Humidity: 68%, Chance of Rain: 30%."""


def format_forecast(data: dict) -> Optional[str]:
    days = (data.get("forecast") or {}).get("forecastday") or []
    if not days:
        return None
    lines = []
    for i, item in enumerate(days):
        label = "Day 1 (Today)" if i == 0 else f"Day {i + 1}"
        weekday = date.fromisoformat(item["date"]).strftime("%a")
        d = item["day"]
        lines.append(
            f"{label} ({weekday}): {d['condition']['text']}, Max Temp: {d['maxtemp_c']}°C, "
            f"Min Temp: {d['mintemp_c']}°C, Avg Humidity: {d['avghumidity']}%, "
            f"Chance of Rain: {d['daily_chance_of_rain']}%."
        )
    return "\n".join(lines)


async def fetch_forecast_summary(
    api_key: str,
    location: str,
    days: int = 7,
    timeout: float = 10.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """7-day forecast as prompt-ready text; the mock summary when unavailable."""
    if not api_key:
        logger.info("No weather API key configured, using mock forecast")
        return MOCK_FORECAST_SUMMARY
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.get(
                WEATHER_URL,
                params={"key": api_key, "q": location, "days": days, "aqi": "no", "alerts": "no"},
            )
            resp.raise_for_status()
            summary = format_forecast(resp.json())
    except (httpx.HTTPError, ValueError, KeyError, TypeError):
        logger.warning("Weather fetch failed, using mock forecast", exc_info=True)
        return MOCK_FORECAST_SUMMARY
    if summary is None:
        logger.warning("Weather response had no forecast days, using mock forecast")
        return MOCK_FORECAST_SUMMARY
    return summary
