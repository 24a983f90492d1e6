from __future__ import annotations
from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from ..services.genai import ActuatorScheduleEntry, GrowthStage


class ModeRequest(BaseModel):
    automatic: bool


class ActuatorRequest(BaseModel):
    on: bool


class ScheduleGenerateRequest(BaseModel):
    days: int = Field(default=1, ge=1, le=14)
    weather_forecast_summary: Optional[str] = None


class ScheduleSaveRequest(BaseModel):
    entries: List[ActuatorScheduleEntry]


class OutlookRequest(BaseModel):
    plant_growth_stage: GrowthStage = "Not Specified"
    recent_pest_activity_notes: str = "No specific observations noted."
    weather_forecast_summary: Optional[str] = None


class ChatRequest(BaseModel):
    user_query: str = Field(min_length=1, max_length=2000)


class IrrigationRequest(BaseModel):
    rainy_days: List[int] = Field(default_factory=list)


SensorName = Literal["temperature", "humidity", "soil_moisture", "light_intensity"]


class SimSensorsRequest(BaseModel):
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    soil_moisture: Optional[float] = None
    light_intensity: Optional[float] = None
    unset: List[SensorName] = Field(default_factory=list)  # simulate a missing reading
    clear: bool = False


class SimFailRequest(BaseModel):
    actuators: List[str] = Field(default_factory=list)
