from .requests import LoginRequest, RegisterRequest
from .responses import LoginResponse, ProfileEnvelope, RegisterResponse
from .tokens import TokenClaims
