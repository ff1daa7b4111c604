from enum import Enum


class AcceptanceStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class OfferLetterAction(str, Enum):
    GENERATED = "generated"
    DOWNLOADED = "downloaded"
    PRINTED = "printed"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    REGISTRAR = "REGISTRAR"
    ADMISSIONS_OFFICER = "ADMISSIONS_OFFICER"
    HR = "HR"


# Roles allowed to open a new student number range
RANGE_ADMIN_ROLES = (UserRole.ADMIN.value, UserRole.REGISTRAR.value)
