from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from agowash_api.models import ServiceTypeEnum, VehicleTypeEnum

ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class TransactionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_address: str = Field(..., alias="userAddress", pattern=ADDRESS_PATTERN)
    date: str = Field(..., pattern=DATE_PATTERN)
    vehicle_type: VehicleTypeEnum = Field(..., alias="vehicleType")
    service_type: ServiceTypeEnum = Field(..., alias="serviceType")
    price: int = Field(..., ge=0)


class RedemptionSignRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_address: str = Field(..., alias="userAddress", pattern=ADDRESS_PATTERN)
    package_type: int = Field(..., alias="packageType")
    nonce: int = Field(..., ge=0)


class RedemptionSettled(BaseModel):
    """Posted by the chain relay when a PackageRedeemed event is observed."""

    model_config = ConfigDict(populate_by_name=True)

    user_address: str = Field(..., alias="userAddress", pattern=ADDRESS_PATTERN)
    package_type: int = Field(..., alias="packageType")
    points_spent: int = Field(..., alias="pointsSpent", ge=0)


class AdminChange(BaseModel):
    address: str = Field(..., pattern=ADDRESS_PATTERN)


class PriceTiers(BaseModel):
    kecil: int = Field(..., ge=0)
    sedang: int = Field(..., ge=0)
    besar: int = Field(..., ge=0)


class PriceUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    vehicle: Literal["motor", "mobil"]
    service_type: Literal["reguler", "premium", "bodyOnly"] = Field(..., alias="serviceType")
    prices: PriceTiers
