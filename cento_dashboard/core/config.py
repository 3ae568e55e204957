from __future__ import annotations

from typing import Literal

from pydantic import AnyHttpUrl, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cento_dashboard.models.traffic import TrafficPoint, TrafficSensor
from cento_dashboard.models.weather import MonitoredSensor, WeatherParameter

DEFAULT_ADMIN_PASSWORD_HASH = (
    "$2b$12$sdOU8uwfeIt/6CaZUIM6ke71zg30wHn0r3QC4TDA3xHYwQxTVEEXi"
)


class TrafficSensorConfig(BaseModel):
    id: int = Field(ge=1)
    name: str = Field(min_length=1, max_length=128)
    direction: float = Field(default=0.0, ge=0.0, lt=360.0)
    flow: Literal["inbound", "outbound"] = "inbound"


class TrafficPointConfig(BaseModel):
    location: str = Field(min_length=1, max_length=128)
    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)
    sensors: list[TrafficSensorConfig] = Field(min_length=1)

    def to_model(self) -> TrafficPoint:
        return TrafficPoint(
            location=self.location,
            lat=self.lat,
            lon=self.lon,
            sensors=tuple(
                TrafficSensor(id=s.id, name=s.name, direction=s.direction, flow=s.flow)
                for s in self.sensors
            ),
        )


def _cento_points() -> list[TrafficPointConfig]:
    def pair(
        inbound: tuple[int, float], outbound: tuple[int, float]
    ) -> list[TrafficSensorConfig]:
        return [
            TrafficSensorConfig(
                id=inbound[0], direction=inbound[1], name="Ingresso a Cento", flow="inbound"
            ),
            TrafficSensorConfig(
                id=outbound[0], direction=outbound[1], name="Uscita da Cento", flow="outbound"
            ),
        ]

    return [
        TrafficPointConfig(
            location="Via del Curato",
            lat=44.722348,
            lon=11.278319,
            sensors=pair((12488, 0), (12538, 180)),
        ),
        TrafficPointConfig(
            location="Via Ferrarese",
            lat=44.732178,
            lon=11.290936,
            sensors=pair((12492, 105), (12490, 285)),
        ),
        TrafficPointConfig(
            location="Via Giovannina",
            lat=44.730824,
            lon=11.280708,
            sensors=pair((12484, 20), (12486, 200)),
        ),
        TrafficPointConfig(
            location="Ponte Vecchio",
            lat=44.72207,
            lon=11.29472,
            sensors=pair((10991, 50), (10993, 230)),
        ),
    ]


class WeatherParameterConfig(BaseModel):
    label: str = Field(min_length=1, max_length=128)
    keys: list[str] = Field(min_length=1)

    def to_model(self) -> WeatherParameter:
        return WeatherParameter(label=self.label, keys=tuple(self.keys))


class MonitoredSensorConfig(BaseModel):
    id: int = Field(ge=1)
    name: str = Field(min_length=1, max_length=256)


def _weather_parameters() -> list[WeatherParameterConfig]:
    return [
        WeatherParameterConfig(
            label="Temperatura", keys=["TEMPERATURA", "TEMPERATURA MAX", "TEMPERATURA MIN"]
        ),
        WeatherParameterConfig(label="Umidità Relativa", keys=["UMIDITA"]),
        WeatherParameterConfig(label="Pressione Atmosferica", keys=["PRESSIONE"]),
        WeatherParameterConfig(
            label="Vento",
            keys=[
                "VELOCITA MEDIA VENTO",
                "VELOCITA MAX VENTO",
                "VELOCITA MIN VENTO",
                "DIREZIONE VENTO",
                "DIREZIONE RAFFICA",
            ],
        ),
        WeatherParameterConfig(
            label="Intensità della Radiazione Solare", keys=["RADIAZIONE", "RADIAZIONE MAX"]
        ),
        WeatherParameterConfig(
            label="Pioggia", keys=["PIOGGIA CUMULATA", "PIOGGIA INCREMENTALE"]
        ),
    ]


def _other_sensors() -> list[MonitoredSensorConfig]:
    return [
        MonitoredSensorConfig(
            id=1748,
            name="Traffico - MTS - SP 10 dalla Loc. Decima al Confine provinciale BO/FE (BO)",
        ),
        MonitoredSensorConfig(
            id=1462, name="Traffico - MTS - SP 11 fra Pieve di Cento e San Pietro in Casale (BO)"
        ),
        MonitoredSensorConfig(
            id=1456, name="Traffico - MTS - SP 42 fra Pieve di Cento e Castello d'Argile (BO)"
        ),
        MonitoredSensorConfig(id=1459, name="Traffico - MTS - SP 66 fra Cento e Sant'Agostino (FE)"),
        MonitoredSensorConfig(id=1453, name="Traffico - MTS - SP 6 fra Cento e Pilastrello (FE)"),
        MonitoredSensorConfig(id=791, name="IDRO - Arpa - Cento (FE)"),
    ]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APP_",
        case_sensitive=False,
    )

    env: str = Field(default="development")
    debug: bool = Field(default=False)
    docs_enabled: bool = Field(default=True)
    log_level: str = Field(default="INFO")

    secret_key: str = Field(min_length=32)
    algorithm: str = Field(default="HS256")
    token_issuer: str = Field(default="cento-dashboard", min_length=1, max_length=64)
    access_token_expire_minutes: int = Field(default=30, ge=1, le=60 * 24 * 30)

    admin_username: str = Field(default="admin", min_length=3, max_length=64)
    admin_password_hash: str = Field(default=DEFAULT_ADMIN_PASSWORD_HASH, min_length=10)

    cors_origins: list[str] = Field(default_factory=list)
    trusted_hosts: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1"])

    session_cookie: str = Field(default="cento_dashboard_session", min_length=1, max_length=64)
    session_max_age_seconds: int = Field(default=60 * 60 * 8, ge=60, le=60 * 60 * 24 * 30)

    sensornet_url: AnyHttpUrl = Field(default="https://sensornet-api.lepida.it")
    sensornet_user_agent: str = Field(
        default="cento-dashboard/0.1 (contact: you@example.com)",
        min_length=3,
        max_length=256,
    )
    sensornet_timeout_seconds: float = Field(default=10.0, ge=1.0, le=60.0)

    traffic_points: list[TrafficPointConfig] = Field(default_factory=_cento_points)
    traffic_counter_measure: str = Field(default="CONTATORE PARZIALE TRAFFICO", min_length=1)
    traffic_speed_measure: str = Field(default="VELOCITA MEDIA VEICOLI", min_length=1)
    traffic_lookback_hours: int = Field(default=24, ge=1, le=24 * 7)
    traffic_grid_minutes: int = Field(default=15, ge=1, le=60)
    traffic_max_workers: int = Field(default=4, ge=1, le=32)

    weather_station_ids: list[int] = Field(default_factory=lambda: [12494, 12501])
    weather_parameters: list[WeatherParameterConfig] = Field(default_factory=_weather_parameters)
    weather_history_hours: int = Field(default=24, ge=1, le=24 * 7)

    other_sensors: list[MonitoredSensorConfig] = Field(default_factory=_other_sensors)

    refresh_interval_seconds: float = Field(default=300.0, ge=1.0, le=3600.0)
    refresh_min_interval_seconds: int = Field(default=60, ge=0, le=3600)
    background_refresh_enabled: bool = Field(default=True)
    fetch_on_login: bool = Field(default=False)

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    def traffic_catalog(self) -> list[TrafficPoint]:
        return [p.to_model() for p in self.traffic_points]

    def weather_parameter_catalog(self) -> list[WeatherParameter]:
        return [p.to_model() for p in self.weather_parameters]

    def other_sensor_catalog(self) -> list[MonitoredSensor]:
        return [MonitoredSensor(id=s.id, name=s.name) for s in self.other_sensors]


def load_settings() -> Settings:
    settings = Settings()
    if not settings.cors_origins:
        settings.cors_origins = ["http://localhost:3000", "http://localhost:8000"]
    return settings
