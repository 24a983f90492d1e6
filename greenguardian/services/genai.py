"""Generative-text helpers: actuator schedule, pest/disease outlook, chat, irrigation.

Every flow sends structured input to a Gemini-style ``generateContent``
endpoint, asks for JSON and validates the reply against a pydantic model.
Anything unusable raises ``GenerationError`` inside the client, and each flow
turns that into its fallback.
"""
from __future__ import annotations

import json
import logging
from typing import Literal, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, Field, field_validator

from ..domain.errors import GenerationError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

ScheduleState = Literal["ON", "OFF", "Idle"]
GrowthStage = Literal["Seedling", "Vegetative", "Mature", "Flowering/Bolting", "Not Specified"]
RiskLevel = Literal["Negligible", "Low", "Medium", "High", "Very High"]

SLOTS_PER_DAY = 96

DEFAULT_DISCLAIMER = (
    "This is an AI-generated prediction and should be used as a guide. Always consult "
    "with local agricultural experts or conduct thorough research for definitive diagnosis "
    "and treatment plans. Follow all product label instructions for any treatments applied."
)
DEFAULT_METHODOLOGY = (
    "The prediction is based on a synthesis of general botanical knowledge, typical "
    "pest/disease responses to environmental factors, and common agricultural best "
    "practices. It does not involve real-time searching of specific research papers."
)
CHAT_FALLBACK = (
    "I'm sorry, I couldn't process that request at the moment. "
    "Could you try rephrasing or asking again later?"
)
IRRIGATION_FALLBACK = "Irrigation schedule unavailable. Water when soil moisture drops below 35%."


# --- Schemas ---

class ActuatorScheduleEntry(BaseModel):
    time: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$", description="HH:MM, 24-hour")
    fan: ScheduleState
    pump: ScheduleState
    lid: ScheduleState
    bulb: ScheduleState


class ActuatorScheduleInput(BaseModel):
    crop_type: str
    average_temperature: float
    average_humidity: float
    average_soil_moisture_drop: float
    weather_forecast_summary: str


class ActuatorScheduleOutput(BaseModel):
    schedule: list[ActuatorScheduleEntry]


class PestDiseaseInput(BaseModel):
    crop_type: str = "Coriander"
    average_temperature_c: float
    average_humidity_percent: float
    seven_day_weather_forecast_summary: str
    recent_pest_activity_notes: str = "No specific observations noted."
    plant_growth_stage: GrowthStage = "Not Specified"


class PestDiseasePrediction(BaseModel):
    pest_or_disease_name: str
    risk_level: RiskLevel
    scientific_name: Optional[str] = None
    description: str
    symptoms: list[str] = Field(default_factory=list)
    contributing_factors: list[str] = Field(default_factory=list)
    preventative_actions: list[str] = Field(default_factory=list)
    organic_treatment_options: list[str] = Field(default_factory=list)
    chemical_treatment_options: list[str] = Field(default_factory=list)


class PestDiseaseOutput(BaseModel):
    predictions: list[PestDiseasePrediction] = Field(default_factory=list)
    overall_outlook: str
    critical_warnings: list[str] = Field(default_factory=list)
    prediction_methodology_explanation: str = DEFAULT_METHODOLOGY
    disclaimer: str = DEFAULT_DISCLAIMER

    @field_validator("prediction_methodology_explanation")
    @classmethod
    def _methodology(cls, v: str) -> str:
        return v if v.strip() else DEFAULT_METHODOLOGY

    @field_validator("disclaimer")
    @classmethod
    def _disclaimer(cls, v: str) -> str:
        return v if v.strip() else DEFAULT_DISCLAIMER


class ChatOutput(BaseModel):
    bot_response: str


class IrrigationInput(BaseModel):
    crop: str
    average_daily_moisture_drop: float
    average_temperature: float
    average_humidity: float
    rainy_days: list[int] = Field(default_factory=list)


class IrrigationOutput(BaseModel):
    schedule: str


# --- Client ---

class GenerativeClient:
    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def generate(self, prompt: str, output: Type[M], temperature: Optional[float] = None) -> M:
        if not self._api_key:
            raise GenerationError("no API key configured")

        schema = json.dumps(output.model_json_schema())
        text = f"{prompt}\n\nRespond with a single JSON object matching this JSON schema:\n{schema}"
        config: dict = {"responseMimeType": "application/json"}
        if temperature is not None:
            config["temperature"] = temperature
        body = {"contents": [{"role": "user", "parts": [{"text": text}]}], "generationConfig": config}

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self._base_url}/models/{self._model}:generateContent",
                    params={"key": self._api_key},
                    json=body,
                )
                resp.raise_for_status()
                data = resp.json()
            raw = data["candidates"][0]["content"]["parts"][0]["text"]
            if not raw or not raw.strip():
                raise GenerationError("empty output")
            return output.model_validate_json(raw)
        except GenerationError:
            raise
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            raise GenerationError(f"{output.__name__}: {e}") from e


# --- Schedule helpers ---

def time_slots() -> list[str]:
    return [f"{h:02d}:{m:02d}" for h in range(24) for m in range(0, 60, 15)]


def fallback_schedule() -> list[ActuatorScheduleEntry]:
    return [
        ActuatorScheduleEntry(time=t, fan="OFF", pump="OFF", lid="Idle", bulb="OFF")
        for t in time_slots()
    ]


def expand_schedule(day_one: list[ActuatorScheduleEntry], days: int) -> list[list[ActuatorScheduleEntry]]:
    if days < 1:
        raise ValueError("Number of days must be at least 1.")
    return [[e.model_copy() for e in day_one] for _ in range(days)]


class GreenhouseAdvisor:
    """The four generative flows, each with its fallback."""

    def __init__(
        self,
        client: GenerativeClient,
        crop_type: str = "Coriander",
        outlook_temperature: float = 0.3,
    ) -> None:
        self._client = client
        self.crop_type = crop_type
        self.outlook_temperature = outlook_temperature

    async def generate_actuator_schedule(self, inp: ActuatorScheduleInput) -> tuple[list[ActuatorScheduleEntry], bool]:
        """Return (day schedule, generated). ``generated`` is False for the fallback."""
        prompt = (
            f"Generate a 24-hour actuator control schedule for {inp.crop_type} in 15-minute "
            f"intervals from 00:00 to 23:45 ({SLOTS_PER_DAY} entries). Each entry has a time "
            "(HH:MM) and a state for fan, pump, lid and bulb, each one of ON, OFF or Idle.\n\n"
            f"Average temperature (last 7 days): {inp.average_temperature} C\n"
            f"Average humidity (last 7 days): {inp.average_humidity}%\n"
            f"Average daily soil moisture drop: {inp.average_soil_moisture_drop}%\n"
            f"7-day weather forecast:\n{inp.weather_forecast_summary}"
        )
        try:
            out = await self._client.generate(prompt, ActuatorScheduleOutput)
        except GenerationError as e:
            logger.warning("Schedule generation failed, using fallback: %s", e)
            return fallback_schedule(), False

        if len(out.schedule) != SLOTS_PER_DAY:
            logger.warning(
                "Generated schedule has %d entries, expected %d; using fallback",
                len(out.schedule), SLOTS_PER_DAY,
            )
            return fallback_schedule(), False
        return out.schedule, True

    async def predict_pest_disease(self, inp: PestDiseaseInput) -> tuple[PestDiseaseOutput, bool]:
        inp = inp.model_copy(update={"crop_type": self.crop_type})
        prompt = (
            f"You are a plant pathologist and entomologist specialising in {inp.crop_type}. "
            "Identify 2-4 pests or diseases relevant to the conditions below. For each give a "
            "risk level, description, symptoms, contributing factors explaining how the "
            "conditions raise or lower the risk, preventative actions and treatment options. "
            "List High or Very High risks as critical warnings and summarise an overall outlook.\n\n"
            f"Average temperature: {inp.average_temperature_c} C\n"
            f"Average humidity: {inp.average_humidity_percent}%\n"
            f"Plant growth stage: {inp.plant_growth_stage}\n"
            f"Recent observations: {inp.recent_pest_activity_notes}\n"
            f"7-day weather forecast:\n{inp.seven_day_weather_forecast_summary}"
        )
        try:
            out = await self._client.generate(
                prompt, PestDiseaseOutput, temperature=self.outlook_temperature
            )
            return out, True
        except GenerationError as e:
            logger.warning("Pest/disease prediction failed, using fallback: %s", e)
            return PestDiseaseOutput(
                overall_outlook="The outlook service is unavailable right now. Please try again later.",
            ), False

    async def support_chat(self, user_query: str) -> ChatOutput:
        prompt = (
            f"You are Green Guardian, a friendly assistant dedicated to {self.crop_type} "
            "(Dhania, Cilantro) cultivation. Answer only questions about growing and caring "
            f"for {self.crop_type}; politely decline anything else.\n\n"
            f"User's question: {user_query}"
        )
        try:
            out = await self._client.generate(prompt, ChatOutput)
        except GenerationError as e:
            logger.warning("Chat generation failed: %s", e)
            return ChatOutput(bot_response=CHAT_FALLBACK)
        if not out.bot_response.strip():
            return ChatOutput(bot_response=CHAT_FALLBACK)
        return out

    async def generate_irrigation_schedule(self, inp: IrrigationInput) -> tuple[IrrigationOutput, bool]:
        prompt = (
            "Generate a 7-day irrigation schedule listing day, time (HH:MM) and amount in ml.\n\n"
            f"Average soil moisture drop: {inp.average_daily_moisture_drop}% per day. "
            f"Average temperature: {inp.average_temperature} C. Humidity: {inp.average_humidity}%. "
            f"Crop: {inp.crop}. Rainy days: {inp.rainy_days}"
        )
        try:
            return await self._client.generate(prompt, IrrigationOutput), True
        except GenerationError as e:
            logger.warning("Irrigation generation failed, using fallback: %s", e)
            return IrrigationOutput(schedule=IRRIGATION_FALLBACK), False
