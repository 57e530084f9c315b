# Import all models for easy access
from .api_token import APIToken
from .applicant import Applicant, ApplicantStatus
from .base import AirtableRecord, BaseModel
from .company import Company
from .finance import CreditCardTransaction, SoftwareVendor
from .function import Function, FunctionConclusion, FunctionStatus
from .mailing_list import MailingListSubscriber
from .recorded_meeting import RecordedMeeting
from .travel import Booking

__all__ = [
    "BaseModel",
    "AirtableRecord",
    "Company",
    "APIToken",
    "Function",
    "FunctionStatus",
    "FunctionConclusion",
    "SoftwareVendor",
    "CreditCardTransaction",
    "Booking",
    "RecordedMeeting",
    "MailingListSubscriber",
    "Applicant",
    "ApplicantStatus",
]
