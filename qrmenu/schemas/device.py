"""
Pydantic schemas for anonymous diner devices
"""

from pydantic import BaseModel


class DeviceResponse(BaseModel):
    device_id: str


class CheckoutResponse(BaseModel):
    deleted_count: int
