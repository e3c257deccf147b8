import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.dependencies import get_current_user
from backend.auth.passwords import hash_password, verify_password
from backend.core.config import get_auth_settings
from backend.core.errors import AccountDeactivated, ValidationFailed
from backend.database import get_db, store_failure
from backend.models.user import User

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

MIN_NAME_LENGTH = 2
MIN_PASSWORD_LENGTH = 6


class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: str

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if len(normalized) < MIN_NAME_LENGTH:
            raise ValueError(f'Name must be at least {MIN_NAME_LENGTH} characters')
        return normalized

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: str
    is_active: bool = True
    contact: str | None = None
    dob: date | None = None
    profile_picture: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    token: str
    token_type: str = 'bearer'
    user: UserResponse


def issue_token(user: User) -> TokenResponse:
    token = jwt_handler.create_access_token(subject=str(user.id), settings=get_auth_settings())
    return TokenResponse(token=token, user=UserResponse.model_validate(user))


@router.post('/register', response_model=TokenResponse)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    try:
        if db.query(User).filter(User.email == data.email).first():
            raise ValidationFailed(
                'User already exists',
                errors=[{'field': 'email', 'message': 'User already exists'}],
            )

        user = User(
            name=data.name,
            email=data.email,
            hashed_password=hash_password(data.password),
            role='student',
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info('Registered account %s', user.id)

        return issue_token(user)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.post('/login', response_model=TokenResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    try:
        user = db.query(User).filter(User.email == data.email).first()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc

    if user is None or not verify_password(user.hashed_password, data.password):
        raise ValidationFailed('Invalid credentials')

    if not user.is_active:
        raise AccountDeactivated()

    return issue_token(user)


@router.get('/me', response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user
