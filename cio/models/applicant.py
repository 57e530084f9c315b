"""
Job applicants, tracked here for background checks.
"""
from datetime import date, datetime
from enum import Enum
from typing import ClassVar, Optional, Tuple

from sqlmodel import Field

from cio.clients.airtable import AIRTABLE_APPLICATIONS_TABLE
from cio.models.base import AirtableRecord, CompanyScoped

CRIMINAL_BACKGROUND_CHECK_PACKAGE = "premium_criminal"
MOTOR_VEHICLE_BACKGROUND_CHECK_PACKAGE = "motor_vehicle"


class ApplicantStatus(str, Enum):
    NEEDS_TO_BE_TRIAGED = "Needs to be triaged"
    INTERVIEWING = "Interviewing"
    GIVING_OFFER = "Giving offer"
    ONBOARDING = "Onboarding"
    HIRED = "Hired"
    DECLINED = "Declined"


class Applicant(CompanyScoped, AirtableRecord, table=True):
    __tablename__ = "applicants"

    __airtable_base__: ClassVar[str] = "hiring"
    __airtable_table__: ClassVar[str] = AIRTABLE_APPLICATIONS_TABLE
    __match_on__: ClassVar[Tuple[str, ...]] = ("cio_company_id", "email")

    name: str = Field(default="", max_length=255, index=True)
    email: str = Field(max_length=255, index=True)
    role: str = Field(default="", max_length=255)
    status: str = Field(default=ApplicantStatus.NEEDS_TO_BE_TRIAGED.value, max_length=64, index=True)
    location: str = Field(default="", max_length=255)
    phone: str = Field(default="", max_length=64)
    submitted_time: Optional[datetime] = Field(default=None)
    start_date: Optional[date] = Field(default=None)
    criminal_background_check_status: str = Field(default="", max_length=64)
    motor_vehicle_background_check_status: str = Field(default="", max_length=64)

    def apply_background_check(self, package: str, status: str) -> bool:
        """Record a report status on the check its package covers. Returns True if anything changed."""
        changed = False
        if CRIMINAL_BACKGROUND_CHECK_PACKAGE in package and self.criminal_background_check_status != status:
            self.criminal_background_check_status = status
            changed = True
        if MOTOR_VEHICLE_BACKGROUND_CHECK_PACKAGE in package and self.motor_vehicle_background_check_status != status:
            self.motor_vehicle_background_check_status = status
            changed = True
        return changed
