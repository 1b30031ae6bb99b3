"""
Authentication Routes

POST /auth/coordinator/register - Register coordinator, receive invite code
POST /auth/student/register - Register student with an invite code
POST /auth/login - Login and get JWT token
GET /auth/me - Get current profile
"""

from fastapi import APIRouter, Depends

from campus_placement.core.auth import create_principal_token, get_current_principal
from campus_placement.schemas.schemas import (
    Coordinator, CoordinatorRegister, LoginRequest, Principal, Student, StudentRegister, TokenResponse
)
from campus_placement.services.identity_service import get_identity_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/coordinator/register", response_model=Coordinator, status_code=201)
def register_coordinator(request: CoordinatorRegister):
    """
    Register a coordinator account.

    Share the returned invite code with students so they can register.
    """
    return get_identity_service().register_coordinator(request)


@router.post("/student/register", response_model=Student, status_code=201)
def register_student(request: StudentRegister):
    """Register a student under the coordinator owning the invite code."""
    return get_identity_service().register_student(request)


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    principal = get_identity_service().authenticate(request.email, request.password, request.role)
    token = create_principal_token(principal)
    return TokenResponse(access_token=token, user_id=principal.id, role=principal.role.value)


@router.get("/me")
def get_me(principal: Principal = Depends(get_current_principal)):
    """Get the coordinator or student profile of the caller."""
    return get_identity_service().get_profile(principal)
