import logging
import re
from datetime import date

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator
from sqlalchemy import case, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, require_admin
from backend.auth.passwords import hash_password, verify_password
from backend.core.errors import IncorrectPassword, NotFound
from backend.database import get_db, store_failure
from backend.models.interview import Interview
from backend.models.user import ROLES, User
from backend.queries import page_count, paginate
from backend.routes.auth_routes import MIN_NAME_LENGTH, MIN_PASSWORD_LENGTH, UserResponse

router = APIRouter(tags=['users'])

logger = logging.getLogger(__name__)

CONTACT_PATTERN = re.compile(r'^[0-9]{10}$')


class UpdateProfileRequest(BaseModel):
    name: str | None = None
    contact: str | None = None
    dob: date | None = None
    profile_picture: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if len(normalized) < MIN_NAME_LENGTH:
            raise ValueError(f'Name must be at least {MIN_NAME_LENGTH} characters')
        return normalized

    @field_validator('contact')
    @classmethod
    def validate_contact(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not CONTACT_PATTERN.match(normalized):
            raise ValueError('Contact must be a 10-digit number')
        return normalized


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str

    @field_validator('current_password')
    @classmethod
    def validate_current_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Current password is required')
        return value

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'New password must be at least {MIN_PASSWORD_LENGTH} characters')
        return value


class UpdateRoleRequest(BaseModel):
    role: str

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in ROLES:
            raise ValueError('Invalid role')
        return normalized


class ProfileStats(BaseModel):
    totalInterviews: int = 0
    completedInterviews: int = 0
    averageScore: float | None = None


class ProfileResponse(BaseModel):
    user: UserResponse
    stats: ProfileStats


class UserMutationResponse(BaseModel):
    message: str
    user: UserResponse


class UserListResponse(BaseModel):
    users: list[UserResponse]
    totalPages: int
    currentPage: int
    total: int


class InterviewerResponse(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str


def interview_totals(db: Session, user_id: int) -> ProfileStats:
    total, completed, average = db.query(
        func.count(Interview.id),
        func.coalesce(func.sum(case((Interview.status == 'completed', 1), else_=0)), 0),
        func.avg(Interview.score),
    ).filter(Interview.user_id == user_id).one()

    return ProfileStats(
        totalInterviews=total,
        completedInterviews=int(completed),
        averageScore=float(average) if average is not None else None,
    )


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFound('User not found')
    return user


@router.get('/profile', response_model=ProfileResponse)
def get_profile(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return ProfileResponse(
            user=UserResponse.model_validate(current_user),
            stats=interview_totals(db, current_user.id),
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.put('/profile', response_model=UserMutationResponse)
def update_profile(
    data: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        user = get_user_or_404(db, current_user.id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if field == 'name' and value is None:
                continue
            setattr(user, field, value)

        db.commit()
        db.refresh(user)

        return UserMutationResponse(
            message='Profile updated successfully',
            user=UserResponse.model_validate(user),
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.put('/change-password', response_model=MessageResponse)
def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        user = get_user_or_404(db, current_user.id)

        if not verify_password(user.hashed_password, data.current_password):
            raise IncorrectPassword()

        user.hashed_password = hash_password(data.new_password)
        db.commit()
        logger.info('Account %s changed its password', user.id)

        return MessageResponse(message='Password changed successfully')
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.delete('/account', response_model=MessageResponse)
def deactivate_account(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        user = get_user_or_404(db, current_user.id)
        user.is_active = False
        db.commit()
        logger.info('Account %s deactivated', user.id)

        return MessageResponse(message='Account deactivated successfully')
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.get('/interviewers', response_model=list[InterviewerResponse], dependencies=[Depends(get_current_user)])
def list_interviewers(db: Session = Depends(get_db)):
    try:
        return db.query(User).filter(
            User.role.in_(('interviewer', 'admin')),
            User.is_active.is_(True),
        ).order_by(User.name.asc()).all()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.get('', response_model=UserListResponse, dependencies=[Depends(require_admin)])
def list_users(
    role: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(User)
        if role:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))

        users, total = paginate(query.order_by(User.created_at.desc(), User.id.desc()), page, limit)

        return UserListResponse(
            users=[UserResponse.model_validate(user) for user in users],
            totalPages=page_count(total, limit),
            currentPage=page,
            total=total,
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.put('/{user_id}/role', response_model=UserMutationResponse)
def update_user_role(
    user_id: int,
    data: UpdateRoleRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        user = get_user_or_404(db, user_id)
        previous_role = user.role
        user.role = data.role
        db.commit()
        db.refresh(user)
        logger.info('Admin %s changed role of account %s from %s to %s', current_user.id, user.id, previous_role, user.role)

        return UserMutationResponse(
            message='User role updated successfully',
            user=UserResponse.model_validate(user),
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc
