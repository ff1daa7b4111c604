from app.core.models.application import Application, PersonalDetails
from app.core.models.programme import Programme
from app.core.models.signature import Signature
from app.core.models.offer_letter_settings import OfferLetterSettings
from app.core.models.student_number_range import StudentNumberRange
from app.core.models.student_number_assignment import StudentNumberAssignment
from app.core.models.offer_letter import OfferLetter, OfferLetterEvent

__all__ = [
    "Application",
    "PersonalDetails",
    "Programme",
    "Signature",
    "OfferLetterSettings",
    "StudentNumberRange",
    "StudentNumberAssignment",
    "OfferLetter",
    "OfferLetterEvent",
]
