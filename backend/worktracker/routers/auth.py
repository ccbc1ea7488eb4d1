import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from worktracker.core import config
from worktracker.core.auth import (
    create_access_token,
    get_current_user,
    get_password_hash,
    verify_password,
)
from worktracker.core.dates import utc_now_iso
from worktracker.database import get_db
from worktracker.models.user import User
from worktracker.schemas.user import (
    LoginResponse,
    RegisterResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from worktracker.services.migrations import assign_orphaned_rows

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["authentication"])


def _find_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.lower()).first()


@router.post("/register", response_model=RegisterResponse)
def register(user: UserCreate, db: Session = Depends(get_db)):
    if len(user.password) < config.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {config.MIN_PASSWORD_LENGTH} characters",
        )

    if _find_by_email(db, user.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    db_user = User(
        id=str(uuid.uuid4()),
        email=user.email.lower(),
        password_hash=get_password_hash(user.password),
        name=user.name.strip(),
        created_at=utc_now_iso(),
    )
    db.add(db_user)
    db.flush()

    # The legacy owner adopts pre-existing rows as soon as the account exists
    if config.LEGACY_OWNER_EMAIL and db_user.email == config.LEGACY_OWNER_EMAIL.lower():
        assign_orphaned_rows(db.connection(), db_user.id)

    db.commit()
    db.refresh(db_user)
    logger.info("Registered user %s", db_user.id)

    return RegisterResponse(
        message="User registered successfully",
        user=UserResponse.model_validate(db_user),
    )


@router.post("/login", response_model=LoginResponse)
def login(user: UserLogin, db: Session = Depends(get_db)):
    db_user = _find_by_email(db, user.email)
    if not db_user or not verify_password(user.password, db_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_access_token(data={"sub": db_user.id, "email": db_user.email})
    return LoginResponse(token=token, user=UserResponse.model_validate(db_user))


@router.get("/me", response_model=UserResponse)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)
