from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Green Guardian"
    timezone: str = "Asia/Karachi"
    crop_type: str = "Coriander"

    # Logging
    log_level: str = "INFO"
    log_file: str = "greenguardian.log"

    # Store mode: "sim" for development, "firebase" for the realtime database
    store_mode: str = Field(default="sim")

    # Firebase Realtime Database (REST)
    firebase_url: str = "https://green-guardian-default-rtdb.firebaseio.com"
    firebase_root_path: str = ""
    firebase_auth_token: str = ""
    store_timeout_seconds: float = 5.0
    stream_reconnect_seconds: float = 5.0

    # Root payload keys
    key_temperature: str = "V1"
    key_humidity: str = "V2"
    key_soil_moisture: str = "V3"
    key_light_intensity: str = "V4"
    key_bulb: str = "B2"
    key_pump: str = "B3"
    key_fan: str = "B4"
    key_lid: str = "B5"
    key_mode: str = "Mode"

    # Simulator
    sim_update_seconds: float = 5.0

    # AI Mode thresholds
    humidity_high_fan_on: float = 75.0
    temp_high: float = 28.0
    temp_low_fan_off: float = 24.0
    humidity_high_lid_open: float = 70.0
    humidity_low_lid_close: float = 50.0
    soil_moisture_low_pump_on: float = 35.0
    soil_moisture_high_pump_off: float = 55.0
    light_low_bulb_on: float = 4000.0
    light_high_bulb_off: float = 8000.0

    # Storage
    sqlite_path: str = Field(default="greenguardian.db")
    history_interval_seconds: int = 60  # min gap between stored snapshots

    notification_buffer: int = 50

    # Generative text service (Gemini generateContent)
    genai_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    genai_model: str = "gemini-2.0-flash"
    genai_api_key: str = ""
    genai_timeout_seconds: float = 60.0
    genai_temperature: float = 0.3

    # Weather
    weather_api_key: str = ""
    weather_location: str = "Lahore"
    weather_timeout_seconds: float = 10.0


settings = Settings()
