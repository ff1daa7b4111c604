from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Identity of the authenticated caller, recorded as the acting user on issuance and letter events."""

    id: UUID
    full_name: str
    email: str
    role: str
