from pydantic import Field

from school_portal.schemas.base import CamelModel
from school_portal.schemas.enums import UserRoleEnum


# Claim set carried inside every access token
class TokenClaims(CamelModel):
    user_id: int = Field(alias="userId")
    email: str = Field(min_length=1)
    role: UserRoleEnum
