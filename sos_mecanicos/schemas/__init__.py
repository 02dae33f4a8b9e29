"""
Pydantic schemas for request/response validation.
"""
from sos_mecanicos.schemas.profile import (
    ProfileBase, SignUpRequest, LoginRequest, ProfileUpdate, Profile, ProviderSummary, Token, SessionInfo,
)
from sos_mecanicos.schemas.vehicle import VehicleBase, VehicleCreate, VehicleUpdate, Vehicle
from sos_mecanicos.schemas.service_request import (
    Location, ServiceRequestCreate, ServiceRequest, AcceptRequest,
)
from sos_mecanicos.schemas.insurance import (
    InsuranceQuoteCreate, InsuranceQuoteUpdate, InsuranceQuote, InsurancePlanCreate, InsurancePlan,
)
from sos_mecanicos.schemas.payment import PaymentRequest, PaymentIntentResponse, Payment
from sos_mecanicos.schemas.contact import (
    SupportTicketCreate, PartnerApplicationCreate, JobApplicationCreate, ContactReceipt,
)
from sos_mecanicos.schemas.proposal import ProposalCreate, Proposal, ProposalAccepted
from sos_mecanicos.schemas.notification import Notification, UnreadCount

__all__ = [
    "ProfileBase", "SignUpRequest", "LoginRequest", "ProfileUpdate", "Profile", "ProviderSummary",
    "Token", "SessionInfo",
    "VehicleBase", "VehicleCreate", "VehicleUpdate", "Vehicle",
    "Location", "ServiceRequestCreate", "ServiceRequest", "AcceptRequest",
    "InsuranceQuoteCreate", "InsuranceQuoteUpdate", "InsuranceQuote", "InsurancePlanCreate", "InsurancePlan",
    "PaymentRequest", "PaymentIntentResponse", "Payment",
    "SupportTicketCreate", "PartnerApplicationCreate", "JobApplicationCreate", "ContactReceipt",
    "ProposalCreate", "Proposal", "ProposalAccepted",
    "Notification", "UnreadCount",
]
