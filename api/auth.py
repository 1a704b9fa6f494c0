import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends
from passlib.context import CryptContext
from pydantic import BaseModel

from api.deps import get_user_store
from api.errors import ConflictError, InfrastructureError, ValidationError
from persistence.users import (
    DatabaseMissingError,
    DatabaseUnreachableError,
    DuplicateEmailError,
    StoreError,
    TableMissingError,
    UserStore,
)

logger = logging.getLogger("udyam")

router = APIRouter(prefix="/api/auth", tags=["auth"])

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None


class UserOut(BaseModel):
    id: int
    email: str
    firstName: str
    lastName: str
    createdAt: str


class SignupResponse(BaseModel):
    message: str
    user: UserOut


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def check_signup(payload: SignupRequest) -> None:
    """Request checks that must pass before the store is touched."""
    if not (payload.email and payload.password and payload.firstName and payload.lastName):
        raise ValidationError("All fields are required: email, password, firstName, lastName")
    if not EMAIL_RE.match(payload.email):
        raise ValidationError("Invalid email format")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def infrastructure_error(exc: StoreError, dbname: str) -> InfrastructureError:
    if isinstance(exc, DatabaseMissingError):
        return InfrastructureError(f'Database "{dbname}" does not exist. Please create it first.')
    if isinstance(exc, TableMissingError):
        return InfrastructureError("Database table does not exist. Please run the init.sql script.")
    if isinstance(exc, DatabaseUnreachableError):
        return InfrastructureError("Database connection refused. Please check if PostgreSQL is running.")
    return InfrastructureError("Internal server error")


@router.post("/signup", status_code=201, response_model=SignupResponse)
def signup(payload: SignupRequest, store: UserStore = Depends(get_user_store)):
    check_signup(payload)

    try:
        if store.exists(payload.email):
            raise ConflictError("User with this email already exists")
        user = store.insert(
            payload.email,
            hash_password(payload.password),
            payload.firstName,
            payload.lastName,
        )
    except DuplicateEmailError as exc:
        raise ConflictError("User with this email already exists") from exc
    except StoreError as exc:
        logger.error("signup.store_error", extra={"error_type": type(exc).__name__, "error_message": str(exc)})
        raise infrastructure_error(exc, store.pg.dbname) from exc

    return SignupResponse(
        message="User created successfully",
        user=UserOut(
            id=user.id,
            email=user.email,
            firstName=user.first_name,
            lastName=user.last_name,
            createdAt=user.created_at.isoformat(),
        ),
    )
