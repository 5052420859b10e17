from typing import List

from pydantic import BaseModel

from bloodlink.schemas.base_schema import BloodGroup


class BloodGroupTotal(BaseModel):
    blood_group: BloodGroup
    total_quantity: int


class AnalyticsResponse(BaseModel):
    """System-wide counters for the administrator dashboard"""

    total_blood_units: int
    blood_group_breakdown: List[BloodGroupTotal]
    total_donors: int
    pending_requests: int
    total_donations: int
    total_blood_banks: int
    total_hospitals: int
