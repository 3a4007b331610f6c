from datetime import datetime, timedelta, timezone
import logging
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from jose import JWTError, jwt
import bcrypt
from sqlmodel import Session, select

from ..config import Settings
from ..database import get_db
from ..models import User, UserRole
from ..schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserPublic, UserRead
from ..timeutils import utcnow

router = APIRouter()
logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 8
USER_LIST_LIMIT = 50


def get_settings(request: Request) -> Settings:
    """Dependency returning the settings the app was built with."""
    return request.app.state.settings


def _password_bytes(password: str) -> bytes:
    return password.encode('utf-8')[:72]  # Truncate to 72 bytes (bcrypt limit)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    hashed_bytes = hashed_password.encode('utf-8') if isinstance(hashed_password, str) else hashed_password
    return bcrypt.checkpw(_password_bytes(plain_password), hashed_bytes)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt directly."""
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt())
    return hashed.decode('utf-8')


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Authenticate a user."""
    user = db.exec(select(User).where(User.email == email)).first()
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def create_access_token(
    data: dict, settings: Settings, expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=ALGORITHM)


def issue_token(user: User, settings: Settings) -> str:
    role = user.role.value if isinstance(user.role, UserRole) else user.role
    return create_access_token({"sub": user.id, "role": role}, settings)


def _get_token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def _decode_user_id(token: str, settings: Settings) -> Optional[str]:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError as exc:
        logger.debug("Rejected token: %s", exc)
        return None
    user_id = payload.get("sub")
    return user_id if isinstance(user_id, str) and user_id else None


def _unauthenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Please authenticate",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """Get current user from the bearer token."""
    token = _get_token_from_request(request)
    if not token:
        raise _unauthenticated()

    user_id = _decode_user_id(token, settings)
    if not user_id:
        raise _unauthenticated()

    user = db.get(User, user_id)
    if user is None:
        logger.debug("Token subject %s no longer exists", user_id)
        raise _unauthenticated()
    return user


def require_roles(*roles: UserRole) -> Callable:
    """Dependency factory that lets through only users holding one of ``roles``."""
    allowed = {role.value for role in roles}

    async def _check(current_user: User = Depends(get_current_user)) -> User:
        role = current_user.role.value if isinstance(current_user.role, UserRole) else current_user.role
        if role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied",
            )
        return current_user

    return _check


def _auth_response(user: User, settings: Settings) -> AuthResponse:
    return AuthResponse(
        user=UserPublic(email=user.email, name=user.name, role=user.role),
        token=issue_token(user, settings),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Create a new user account."""
    if (
        not payload.email
        or not payload.password
        or not payload.name
        or len(payload.password) < MIN_PASSWORD_LENGTH
    ):
        raise HTTPException(status_code=400, detail="Invalid input data")

    existing = db.exec(select(User).where(User.email == payload.email)).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")

    db_user = User(
        email=payload.email,
        name=payload.name,
        hashed_password=get_password_hash(payload.password),
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info("Registered user %s", db_user.id)

    return _auth_response(db_user, settings)


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Sign in and get a JWT token."""
    db_user = None
    if payload.email and payload.password:
        db_user = authenticate_user(db, payload.email, payload.password)
    if not db_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    db_user.last_login = utcnow()
    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    return _auth_response(db_user, settings)


@router.get("/profile", response_model=UserRead)
def read_profile(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get current user information."""
    user = db.get(User, current_user.id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return UserRead.model_validate(user)


@router.get("/users", response_model=List[UserRead])
def list_users(
    _admin: User = Depends(require_roles(UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    """List accounts (admin only)."""
    users = db.exec(select(User).limit(USER_LIST_LIMIT)).all()
    return [UserRead.model_validate(user) for user in users]
