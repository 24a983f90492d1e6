import httpx

from greenguardian.services.weather import MOCK_FORECAST_SUMMARY, fetch_forecast_summary, format_forecast


FORECAST = {
    "forecast": {
        "forecastday": [
            {
                "date": "2025-05-12",
                "day": {
                    "condition": {"text": "Sunny"},
                    "maxtemp_c": 38.1,
                    "mintemp_c": 26.4,
                    "avghumidity": 22,
                    "daily_chance_of_rain": 0,
                },
            },
            {
                "date": "2025-05-13",
                "day": {
                    "condition": {"text": "Patchy rain nearby"},
                    "maxtemp_c": 35.0,
                    "mintemp_c": 25.0,
                    "avghumidity": 40,
                    "daily_chance_of_rain": 65,
                },
            },
        ]
    }
}


def test_format_forecast():
    text = format_forecast(FORECAST)
    lines = text.splitlines()
    assert lines[0] == (
        "Day 1 (Today) (Mon): Sunny, Max Temp: 38.1°C, Min Temp: 26.4°C, "
        "Avg Humidity: 22%, Chance of Rain: 0%."
    )
    assert lines[1].startswith("Day 2 (Tue): Patchy rain nearby")


def test_format_forecast_without_days():
    assert format_forecast({}) is None


async def test_fetch_uses_api():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=FORECAST)

    text = await fetch_forecast_summary("key", "Lahore", transport=httpx.MockTransport(handler))

    assert text.startswith("Day 1 (Today)")
    assert seen[0].url.params["q"] == "Lahore"
    assert seen[0].url.params["days"] == "7"


async def test_fetch_without_key_uses_mock():
    assert await fetch_forecast_summary("", "Lahore") == MOCK_FORECAST_SUMMARY


async def test_fetch_failure_uses_mock():
    def handler(request):
        return httpx.Response(403, json={"error": {"message": "API key disabled"}})

    text = await fetch_forecast_summary("key", "Lahore", transport=httpx.MockTransport(handler))
    assert text == MOCK_FORECAST_SUMMARY
