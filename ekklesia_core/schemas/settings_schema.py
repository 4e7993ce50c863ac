"""
Pydantic schemas for tenant settings.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .mixins import IdMixin, TimestampMixin


class SettingsUpdate(BaseModel):
    """
    Partial settings update. Only fields that were explicitly set are applied.
    """

    timezone: Optional[str] = None
    currency: Optional[str] = None
    fiscal_year: Optional[str] = None
    enabled_modules: Optional[List[str]] = None
    enable_ocr: Optional[bool] = None
    ocr_api_key: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class SettingsRead(IdMixin, TimestampMixin):
    """Settings row as returned to callers."""

    tenant_id: str
    timezone: str
    currency: str
    fiscal_year: str
    enabled_modules: List[str] = Field(default_factory=list)
    enable_ocr: bool = False
    ocr_api_key: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
