"""
Offer letter verification codes. Opaque, globally unique (unique constraint on
offer_letters.verification_code); the only credential for public verification.
"""

import uuid


def generate_verification_code() -> str:
    """Random UUID4 string, e.g. 3f2b8c1e-6a0d-4d8e-9b7a-1c2d3e4f5a6b."""
    return str(uuid.uuid4())


def normalize_verification_code(code: str) -> str:
    """Strip whitespace and lowercase so codes copied from a printed letter still match."""
    return (code or "").strip().lower()
