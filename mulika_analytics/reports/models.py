"""
Input models for the analytics engine.

Reports arrive from the external report store as a read-only snapshot. The
model validates them at the boundary: agencies and categories are closed
enumerations, so an unknown value is rejected here rather than silently
mismatching in a lookup later.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Agency(str, Enum):
    POLICE = "police"
    LAND_SERVICES = "land_services"
    CIVIL_REGISTRATION = "civil_registration"
    JUDICIARY = "judiciary"
    MOTOR_VEHICLE = "motor_vehicle"
    BUSINESS_LICENSING = "business_licensing"
    EDUCATION = "education"
    HEALTH = "health"
    TAX = "tax"
    HUDUMA_CENTER = "huduma_center"
    OTHER = "other"

    @property
    def ordinal(self) -> int:
        """1-based position in declaration order; used by the vectorizer."""
        return list(Agency).index(self) + 1

    @property
    def label(self) -> str:
        return _AGENCY_LABELS[self]


class Category(str, Enum):
    BRIBERY = "bribery"
    EXTORTION = "extortion"
    EMBEZZLEMENT = "embezzlement"
    NEPOTISM = "nepotism"
    PROCUREMENT_FRAUD = "procurement_fraud"
    LAND_GRABBING = "land_grabbing"
    OTHER = "other"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class ReportStatus(str, Enum):
    SUBMITTED = "submitted"
    VERIFIED = "verified"
    UNDER_REVIEW = "under_review"
    FILED_WITH_EACC = "filed_with_eacc"
    RESOLVED = "resolved"


_AGENCY_LABELS = {
    Agency.POLICE: "Police",
    Agency.LAND_SERVICES: "Land Services",
    Agency.CIVIL_REGISTRATION: "Civil Registration",
    Agency.JUDICIARY: "Judiciary",
    Agency.MOTOR_VEHICLE: "Motor Vehicle Licensing",
    Agency.BUSINESS_LICENSING: "Business Licensing",
    Agency.EDUCATION: "Education Services",
    Agency.HEALTH: "Health Services",
    Agency.TAX: "Tax Services",
    Agency.HUDUMA_CENTER: "Huduma Centres",
    Agency.OTHER: "Other",
}

AGENCY_COUNT = len(Agency)
CATEGORY_COUNT = len(Category)
# Kenya has 47 counties; the vectorizer normalizes county ordinals against it
COUNTY_COUNT = 47


class Report(BaseModel):
    """
    A single submitted corruption incident record.

    Immutable once constructed; the engine never mutates or persists reports.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    county: str
    agency: Agency
    categories: tuple[Category, ...] = Field(min_length=1, max_length=3)
    incident_date: datetime
    estimated_amount: float | None = Field(default=None, ge=0)
    description: str = ""
    submitted_at: datetime
    anonymous_id: str | None = None
    status: ReportStatus = ReportStatus.SUBMITTED
    verification_score: float | None = Field(default=None, ge=0, le=100)

    @field_validator("categories")
    @classmethod
    def check_distinct_categories(cls, value: tuple[Category, ...]) -> tuple[Category, ...]:
        if len(set(value)) != len(value):
            raise ValueError("categories must not repeat")
        return value

    @property
    def amount(self) -> float:
        """Estimated amount with a missing value treated as 0."""
        return self.estimated_amount or 0.0
