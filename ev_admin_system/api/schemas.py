# ev_admin_system/api/schemas.py

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


def success(data: Any) -> Dict[str, Any]:
    """Uniform envelope for every successful response."""
    return {"status": 200, "data": data, "message": "Success"}


# --- EVSEs ---

class ConnectorCreate(BaseModel):
    standard: str = Field(min_length=1)  # Ex: TYPE_2
    format: str = Field(min_length=1)  # Ex: SOCKET
    power_type: str = Field(min_length=1)  # Ex: AC, DC
    max_voltage: float
    max_amperage: float
    max_electric_power: float
    rate_setting: Union[int, float]


class EVSECreate(BaseModel):
    model: str = Field(min_length=1)
    vendor: str = Field(min_length=1)
    serial_number: str = Field(min_length=1)
    box_serial_number: str = Field(min_length=1)
    firmware_version: str = Field(min_length=1)
    iccid: str = Field(min_length=1)
    imsi: str = Field(min_length=1)
    meter_type: str = Field(min_length=1)
    meter_serial_number: str = Field(min_length=1)
    kwh: int
    connectors: List[ConnectorCreate] = Field(min_length=1)
    payment_types: List[int]
    capabilities: List[int]
    location_id: Optional[int] = None

    def evse_attributes(self) -> Dict[str, Any]:
        return self.model_dump(include={
            "model", "vendor", "serial_number", "box_serial_number", "firmware_version",
            "iccid", "imsi", "meter_type", "meter_serial_number",
        })


# --- Locations ---

class LocationCreate(BaseModel):
    cpo_owner_id: Optional[int] = None
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    facilities: List[int]
    parking_types: List[int]
    parking_restrictions: List[int]
    images: List[str]


# --- Merchants ---

class CPOCreate(BaseModel):
    party_id: str = Field(min_length=1, max_length=3)
    cpo_owner_name: str = Field(min_length=1)
    contact_name: str = Field(min_length=1)
    contact_number: str = Field(min_length=1)
    contact_email: str = Field(min_length=1)
    username: str = Field(min_length=1)


class RFIDBatchCreate(BaseModel):
    rfid_card_tags: List[str] = Field(min_length=1)


class TopupCreate(BaseModel):
    amount: float


class CompanyPartnerCreate(BaseModel):
    company_name: str = Field(min_length=1)
    address: str = Field(min_length=1)


class CompanyPartnerUpdate(BaseModel):
    address: str = Field(min_length=1)


# --- User management ---

class SubUserCreate(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    role: Literal["ADMIN_ACCOUNTING", "ADMIN_MARKETING", "ADMIN_NOC"]
    privileges: Dict[str, Literal[0, 1]]
