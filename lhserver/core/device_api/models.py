from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


# response property -> DeviceInfo field
PROPERTY_FIELDS: Dict[str, str] = {
    "SerialNumber": "serial_number",
    "Version": "firmware_version",
    "ProdNbr": "model",
    "Architecture": "architecture",
    "Soc": "soc",
}


class DeviceInfo(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    serial_number: str = ""
    firmware_version: str = ""
    model: str = ""
    architecture: str = ""
    soc: str = ""

    @classmethod
    def from_properties(cls, props: Dict[str, Any]) -> "DeviceInfo":
        values: Dict[str, str] = {}
        for prop, fld in PROPERTY_FIELDS.items():
            v = props.get(prop)
            if isinstance(v, str):
                values[fld] = v[:64]
        return cls(**values)
