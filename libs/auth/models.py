from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class AdminPrincipal(BaseModel):
    """
    The signed-in back office user, as carried by the session or a bearer token.
    """

    admin_id: str = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    role: str = "admin"

    model_config = {"populate_by_name": True}

    def session_payload(self) -> dict:
        return {
            "sub": self.admin_id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
        }
