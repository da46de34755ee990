from school_portal.schemas.base import Envelope
from school_portal.schemas.people.responses import ProfileResponse, UserResponse


class LoginResponse(Envelope):
    token: str
    user: UserResponse


class ProfileEnvelope(Envelope):
    user: ProfileResponse


class RegisterResponse(Envelope):
    user: UserResponse
