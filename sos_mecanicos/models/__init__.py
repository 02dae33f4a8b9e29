"""
SQLAlchemy database models.
"""
from sos_mecanicos.models.profile import Profile, RevokedToken, UserRole
from sos_mecanicos.models.vehicle import Vehicle, VehicleStatus
from sos_mecanicos.models.service_request import ServiceRequest, ServiceType, RequestStatus
from sos_mecanicos.models.insurance import InsuranceQuote, InsurancePlan, QuoteStatus
from sos_mecanicos.models.payment import Payment, PaymentStatus
from sos_mecanicos.models.contact import SupportTicket, PartnerApplication, JobApplication
from sos_mecanicos.models.proposal import Proposal, ProposalStatus
from sos_mecanicos.models.notification import Notification, NotificationType

__all__ = [
    "Profile", "RevokedToken", "UserRole",
    "Vehicle", "VehicleStatus",
    "ServiceRequest", "ServiceType", "RequestStatus",
    "InsuranceQuote", "InsurancePlan", "QuoteStatus",
    "Payment", "PaymentStatus",
    "SupportTicket", "PartnerApplication", "JobApplication",
    "Proposal", "ProposalStatus",
    "Notification", "NotificationType",
]
