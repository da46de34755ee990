from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_portal.core.database import get_db
from school_portal.core.dependencies import get_current_claims
from school_portal.core.permissions import require_admin
from school_portal.schemas.academic.responses import MessageEnvelope
from school_portal.schemas.auth import (
    LoginRequest,
    LoginResponse,
    ProfileEnvelope,
    RegisterRequest,
    RegisterResponse,
    TokenClaims,
)
from school_portal.schemas.people.responses import UserResponse
from school_portal.services import AuthService
from school_portal.utils.cookie_utils import clear_auth_cookie, set_auth_cookie

router = APIRouter(tags=["Authentication"])


# Service dependencies
def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db=db)


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    """Authenticate and set the auth cookie"""
    user, token = await auth_service.authenticate_user(request.email, request.password)
    set_auth_cookie(response, token)
    return LoginResponse(token=token, user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageEnvelope)
async def logout(response: Response) -> MessageEnvelope:
    clear_auth_cookie(response)
    return MessageEnvelope(message="Successfully logged out")


@router.get("/profile", response_model=ProfileEnvelope)
async def get_profile(
    claims: TokenClaims = Depends(get_current_claims),
    auth_service: AuthService = Depends(get_auth_service)
) -> ProfileEnvelope:
    return ProfileEnvelope(user=await auth_service.get_profile(claims.user_id))


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    claims: TokenClaims = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service)
) -> RegisterResponse:
    """Create a user with its role profile (admin only)"""
    user = await auth_service.register_user(request)
    return RegisterResponse(user=UserResponse.model_validate(user))
