"""SQLAlchemy models for the ElderCare application."""

from src.models.assessment import Assessment, AssessmentAuditEntry, AssessmentStatus
from src.models.base import Base
from src.models.client import Client
from src.models.library import CarePlanTemplate, MedicalDiagnosis, Medication
from src.models.product import Product, ProductReview, ReviewerRole
from src.models.resource import CustomResourceCategory, Resource
from src.models.user import ClientUser, User, UserRole

__all__ = [
    "Base",
    "Assessment",
    "AssessmentAuditEntry",
    "AssessmentStatus",
    "CarePlanTemplate",
    "Client",
    "ClientUser",
    "CustomResourceCategory",
    "MedicalDiagnosis",
    "Medication",
    "Product",
    "ProductReview",
    "Resource",
    "ReviewerRole",
    "User",
    "UserRole",
]
