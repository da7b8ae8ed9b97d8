from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class AppFileConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    config_version: int = Field(default=1, ge=1)
    service_name: str = "lh-server"
    log_dir: str = "logs"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _level(cls, v: str) -> str:
        v = str(v or "").strip().upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("log_level must be DEBUG|INFO|WARNING|ERROR|CRITICAL")
        return v


class CredentialsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    service_account: str = "lh-server"
    gdbus_path: str = "gdbus"
    bus_name: str = "com.axis.HTTPConf1"
    object_path: str = "/com/axis/HTTPConf1/VAPIXServiceAccounts1"
    method: str = "com.axis.HTTPConf1.VAPIXServiceAccounts1.GetCredentials"
    timeout_seconds: float = Field(default=5.0, gt=0, le=60)


class EndpointConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    path: str
    method: Literal["GET", "POST"] = "GET"
    params: Dict[str, str] = Field(default_factory=dict)
    json_body: Optional[Dict[str, Any]] = None

    @field_validator("path")
    @classmethod
    def _leading_slash(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v.startswith("/"):
            raise ValueError("endpoint path must start with '/'")
        return v


def _temperature_endpoint() -> EndpointConfig:
    return EndpointConfig(
        path="/axis-cgi/temperaturecontrol.cgi",
        method="GET",
        params={"device": "sensor", "id": "2", "action": "query", "temperatureunit": "celsius"},
    )


def _device_info_endpoint() -> EndpointConfig:
    return EndpointConfig(
        path="/axis-cgi/basicdeviceinfo.cgi",
        method="POST",
        json_body={"apiVersion": "1.0", "context": "lh-server", "method": "getAllProperties"},
    )


class DeviceApiConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    base_url: str = "http://127.0.0.1"
    timeout_seconds: float = Field(default=5.0, gt=0, le=5.0)
    auth_scheme: Literal["digest", "basic"] = "digest"
    reacquire_on_auth_failure: bool = True
    temperature: EndpointConfig = Field(default_factory=_temperature_endpoint)
    device_info: EndpointConfig = Field(default_factory=_device_info_endpoint)
    sanity_min: float = -50.0
    sanity_max: float = 100.0

    @model_validator(mode="after")
    def _sanity_window(self) -> "DeviceApiConfig":
        if self.sanity_min >= self.sanity_max:
            raise ValueError("sanity_min must be < sanity_max")
        return self


class CacheConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    temperature_ttl_seconds: float = Field(default=60.0, gt=0)
    device_info_ttl_seconds: float = Field(default=300.0, gt=0)


class ThresholdConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    warning: float
    critical: float


class DependencyNodeConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    name: str
    path: str


class HealthConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    disk_path: str = "/"
    thermal_zone_path: str = "/sys/class/thermal/thermal_zone0/temp"
    thresholds: Dict[str, ThresholdConfig] = Field(
        default_factory=lambda: {
            "memory_available_mb": ThresholdConfig(warning=50.0, critical=20.0),
            "disk_free_mb": ThresholdConfig(warning=100.0, critical=50.0),
            "temperature_celsius": ThresholdConfig(warning=70.0, critical=80.0),
            "cpu_usage_percent": ThresholdConfig(warning=80.0, critical=95.0),
        }
    )
    device_nodes: List[DependencyNodeConfig] = Field(default_factory=lambda: [DependencyNodeConfig(name="i2c-bus-0", path="/dev/i2c-0")])
    include_device_api_dependency: bool = True


class EventsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    capacity: int = Field(default=100, ge=1, le=10_000)
    max_message_length: int = Field(default=256, ge=16, le=256)
    syslog_enabled: bool = True
    syslog_address: str = "/dev/log"
    syslog_facility: str = "daemon"
    default_export_limit: int = Field(default=100, ge=1)


class WebConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    bind_host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    metric_prefix: str = "ptz"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    app: AppFileConfig = Field(default_factory=AppFileConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    device_api: DeviceApiConfig = Field(default_factory=DeviceApiConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    web: WebConfig = Field(default_factory=WebConfig)


# file name -> AppConfig section
SECTION_FILES: Dict[str, str] = {
    "app.json": "app",
    "credentials.json": "credentials",
    "device_api.json": "device_api",
    "cache.json": "cache",
    "health.json": "health",
    "events.json": "events",
    "web.json": "web",
}
