"""DealDesk models - re-exports all models and Base.metadata."""

from .base import Base, UUIDMixin, TimestampMixin, TenantMixin
from .plan import Plan, UNLIMITED
from .organization import Organization, OrganizationMember, OrganizationInvite, Role, InviteStatus
from .user import User
from .lead import Lead
from .contact import Contact
from .pipeline import Pipeline, Stage, PipelineMember, PipelineVisibility
from .deal import Deal, DealEvent, DealEventType, LostReason
from .product import Product, DealProduct
from .activity import Activity, ActivityType
from .automation import Automation
from .custom_field import CustomField, CustomFieldValue, CustomFieldEntity, CustomFieldType

__all__ = [
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "TenantMixin",
    "Plan",
    "UNLIMITED",
    "Organization",
    "OrganizationMember",
    "OrganizationInvite",
    "Role",
    "InviteStatus",
    "User",
    "Lead",
    "Contact",
    "Pipeline",
    "Stage",
    "PipelineMember",
    "PipelineVisibility",
    "Deal",
    "DealEvent",
    "DealEventType",
    "LostReason",
    "Product",
    "DealProduct",
    "Activity",
    "ActivityType",
    "Automation",
    "CustomField",
    "CustomFieldValue",
    "CustomFieldEntity",
    "CustomFieldType",
]
