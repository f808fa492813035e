"""Auth router — teacher signup, login, logout and user info."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from tempo.config import settings
from tempo.database import get_db
from tempo.middleware.auth import (
    clear_auth_cookie,
    create_access_token,
    get_current_user,
    hash_password,
    set_auth_cookie,
    verify_password,
)
from tempo.middleware.rate_limit import limiter
from tempo.models.user import User, UserRole
from tempo.schemas.auth import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    SignupRequest,
    UserResponse,
    user_to_response,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/signup", response_model=AuthResponse, status_code=201)
@limiter.limit(settings.RATE_LIMIT_AUTH)
def signup(request: Request, req: SignupRequest, response: Response, db: Session = Depends(get_db)):
    """Register a teacher account. Students join through invites only."""
    email = req.email.lower()
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        raise HTTPException(status_code=409, detail="User with this email already exists")

    user = User(
        email=email,
        password_hash=hash_password(req.password),
        name=req.name,
        role=UserRole.TEACHER.value,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    token = create_access_token(user)
    set_auth_cookie(response, token)
    return AuthResponse(user=user_to_response(user), token=token)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.RATE_LIMIT_AUTH)
def login(request: Request, req: LoginRequest, response: Response, db: Session = Depends(get_db)):
    """Login and get a JWT (also set as an HTTP-only cookie)."""
    user = db.query(User).filter(User.email == req.email.lower()).first()
    if not user or not verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_access_token(user)
    set_auth_cookie(response, token)
    return AuthResponse(user=user_to_response(user), token=token)


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response):
    clear_auth_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    """Get current user info."""
    return user_to_response(current_user)
