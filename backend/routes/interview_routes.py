import datetime as dt
import logging
import re
from datetime import date, datetime, time
from types import MappingProxyType

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, require_interviewer
from backend.core.errors import InvalidState, NotFound, SchedulingConflict, ValidationFailed
from backend.database import get_db, store_failure
from backend.models.interview import (
    DEFAULT_DURATION_MINUTES,
    INTERVIEW_RESULTS,
    INTERVIEW_STATUSES,
    INTERVIEW_TYPES,
    Interview,
)
from backend.models.user import User
from backend.queries import grouped_stats, page_count, paginate

router = APIRouter(tags=['interviews'])

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$')
MAX_NOTES_LENGTH = 2000

DEFAULT_PREPARATION_RESOURCES = MappingProxyType({
    'behavioral': (
        {'title': 'STAR Method Guide', 'url': 'https://example.com/star-method', 'type': 'article'},
        {'title': 'Common Behavioral Questions', 'url': 'https://example.com/behavioral-questions', 'type': 'video'},
    ),
    'frontend': (
        {'title': 'React Interview Questions', 'url': 'https://example.com/react-questions', 'type': 'article'},
        {'title': 'CSS Flexbox Guide', 'url': 'https://example.com/flexbox', 'type': 'tutorial'},
    ),
    'backend': (
        {'title': 'Node.js Best Practices', 'url': 'https://example.com/nodejs', 'type': 'article'},
        {'title': 'Database Design Patterns', 'url': 'https://example.com/database', 'type': 'video'},
    ),
    'fullstack': (
        {'title': 'System Design Interview', 'url': 'https://example.com/system-design', 'type': 'article'},
        {'title': 'Full Stack Project Ideas', 'url': 'https://example.com/projects', 'type': 'tutorial'},
    ),
    'dsa': (
        {'title': 'Data Structures Guide', 'url': 'https://example.com/data-structures', 'type': 'article'},
        {'title': 'Algorithm Patterns', 'url': 'https://example.com/algorithms', 'type': 'video'},
    ),
})


def scheduled_moment(value) -> datetime:
    """Parse a requested interview date into the instant it names.

    A bare ``YYYY-MM-DD`` day means the start of that day in local time. A
    full ISO timestamp keeps its time part and offset.
    """
    if isinstance(value, str):
        text = value.strip()
        if len(text) > 10:
            value = datetime.fromisoformat(text.replace('Z', '+00:00'))
        else:
            value = date.fromisoformat(text)

    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    raise ValueError('Invalid date')


def coerce_calendar_date(value):
    # Only the calendar day is stored.
    if value is None:
        return None
    return scheduled_moment(value).date()


def normalize_time(value: str) -> str:
    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError('Time must be in HH:MM format')
    return f'{int(match.group(1)):02d}:{match.group(2)}'


class ResourceLink(BaseModel):
    title: str
    url: str | None = None
    type: str | None = None


class QuestionRecord(BaseModel):
    question: str
    answer: str | None = None
    rating: float | None = None


class CreateInterviewRequest(BaseModel):
    type: str
    date: date
    time: str
    interviewer: str
    interviewer_id: int | None = None
    duration: int | None = Field(default=None, gt=0)
    notes: str | None = None
    meeting_link: str | None = None

    @field_validator('type')
    @classmethod
    def validate_type(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in INTERVIEW_TYPES:
            raise ValueError('Invalid interview type')
        return normalized

    @field_validator('date', mode='before')
    @classmethod
    def validate_date(cls, value) -> date:
        moment = scheduled_moment(value)
        if moment <= datetime.now(moment.tzinfo):
            raise ValueError('Interview date must be in the future')
        return moment.date()

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        return normalize_time(value)

    @field_validator('interviewer')
    @classmethod
    def validate_interviewer(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Interviewer is required')
        return normalized

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_NOTES_LENGTH} characters or fewer.')

        return normalized


class UpdateInterviewRequest(BaseModel):
    date: dt.date | None = None
    time: str | None = None
    interviewer: str | None = None
    notes: str | None = None
    status: str | None = None

    @field_validator('date', mode='before')
    @classmethod
    def parse_date(cls, value):
        return coerce_calendar_date(value)

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if normalized not in INTERVIEW_STATUSES:
            raise ValueError('Invalid interview status')
        return normalized


class FeedbackRequest(BaseModel):
    feedback: str
    score: int = Field(ge=0, le=100)
    result: str
    questions: list[QuestionRecord] | None = None

    @field_validator('feedback')
    @classmethod
    def validate_feedback(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Feedback is required')
        return normalized

    @field_validator('result')
    @classmethod
    def validate_result(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in INTERVIEW_RESULTS:
            raise ValueError('Invalid result')
        return normalized


class InterviewResponse(BaseModel):
    id: int
    user_id: int
    type: str
    date: date
    time: str
    interviewer: str
    interviewer_id: int | None = None
    status: str
    feedback: str | None = None
    score: int | None = None
    result: str
    resources: list[ResourceLink] = []
    questions: list[QuestionRecord] = []
    meeting_link: str | None = None
    recording_url: str | None = None
    notes: str | None = None
    duration: int = DEFAULT_DURATION_MINUTES
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True

    @field_validator('resources', 'questions', mode='before')
    @classmethod
    def default_empty_list(cls, value):
        return value or []


class InterviewListResponse(BaseModel):
    interviews: list[InterviewResponse]
    totalPages: int
    currentPage: int
    total: int


class InterviewMutationResponse(BaseModel):
    message: str
    interview: InterviewResponse


class MessageResponse(BaseModel):
    message: str


class StatsGroupResponse(BaseModel):
    group: str | None
    count: int
    averageScore: float | None = None


class InterviewStatsResponse(BaseModel):
    statusStats: list[StatsGroupResponse]
    typeStats: list[StatsGroupResponse]


def interview_datetime(interview: Interview) -> datetime | None:
    if interview.date is None or not interview.time:
        return None
    match = TIME_PATTERN.match(interview.time.strip())
    if not match:
        return None
    return datetime.combine(interview.date, time(int(match.group(1)), int(match.group(2))))


def refresh_interview_status(interview: Interview, now: datetime) -> bool:
    """Move an elapsed upcoming interview to completed; True when it changed."""
    scheduled_at = interview_datetime(interview)
    if scheduled_at is not None and scheduled_at < now and interview.status == 'upcoming':
        interview.status = 'completed'
        return True
    return False


def add_default_resources(interview: Interview) -> None:
    defaults = DEFAULT_PREPARATION_RESOURCES.get(interview.type)
    if defaults and not interview.resources:
        interview.resources = [dict(resource) for resource in defaults]


def get_owned_interview(db: Session, interview_id: int, user_id: int) -> Interview:
    interview = db.query(Interview).filter(
        Interview.id == interview_id,
        Interview.user_id == user_id,
    ).first()

    if interview is None:
        raise NotFound('Interview not found')

    return interview


def find_slot_conflict(db: Session, user_id: int, slot_date: date, slot_time: str) -> Interview | None:
    return db.query(Interview).filter(
        Interview.user_id == user_id,
        Interview.date == slot_date,
        Interview.time == slot_time,
        Interview.status != 'cancelled',
    ).first()


def resolve_interviewer_account(db: Session, interviewer_id: int | None) -> int | None:
    if interviewer_id is None:
        return None

    account = db.query(User).filter(
        User.id == interviewer_id,
        User.role.in_(('interviewer', 'admin')),
        User.is_active.is_(True),
    ).first()
    if account is None:
        raise ValidationFailed(
            'Validation failed',
            errors=[{'field': 'interviewer_id', 'message': 'Interviewer not found'}],
        )

    return account.id


@router.get('', response_model=InterviewListResponse)
def list_interviews(
    status_filter: str | None = Query(default=None, alias='status'),
    type_filter: str | None = Query(default=None, alias='type'),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(Interview).filter(Interview.user_id == current_user.id)
        if status_filter:
            query = query.filter(Interview.status == status_filter)
        if type_filter:
            query = query.filter(Interview.type == type_filter)

        interviews, total = paginate(
            query.order_by(Interview.date.desc(), Interview.time.desc()),
            page,
            limit,
        )

        now = datetime.now()
        corrected = [interview.id for interview in interviews if refresh_interview_status(interview, now)]
        if corrected:
            db.commit()
            logger.info('Marked elapsed interviews %s as completed', corrected)

        return InterviewListResponse(
            interviews=[InterviewResponse.model_validate(interview) for interview in interviews],
            totalPages=page_count(total, limit),
            currentPage=page,
            total=total,
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.get('/stats/summary', response_model=InterviewStatsResponse)
def interview_stats_summary(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        owned = Interview.user_id == current_user.id
        return InterviewStatsResponse(
            statusStats=grouped_stats(db, Interview.status, Interview.score, owned),
            typeStats=grouped_stats(db, Interview.type, Interview.score, owned),
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.get('/{interview_id}', response_model=InterviewResponse)
def get_interview(
    interview_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return get_owned_interview(db, interview_id, current_user.id)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.post('', response_model=InterviewMutationResponse, status_code=status.HTTP_201_CREATED)
def create_interview(
    data: CreateInterviewRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        # Read-then-write: two concurrent requests for one slot can both pass.
        if find_slot_conflict(db, current_user.id, data.date, data.time):
            raise SchedulingConflict()

        interview = Interview(
            user_id=current_user.id,
            type=data.type,
            date=data.date,
            time=data.time,
            interviewer=data.interviewer,
            interviewer_id=resolve_interviewer_account(db, data.interviewer_id),
            status='upcoming',
            result='pending',
            duration=data.duration or DEFAULT_DURATION_MINUTES,
            notes=data.notes,
            meeting_link=data.meeting_link,
            resources=[],
            questions=[],
        )
        add_default_resources(interview)

        db.add(interview)
        db.commit()
        db.refresh(interview)
        logger.info('User %s scheduled %s interview %s', current_user.id, interview.type, interview.id)

        return InterviewMutationResponse(
            message='Interview scheduled successfully',
            interview=InterviewResponse.model_validate(interview),
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.put('/{interview_id}', response_model=InterviewMutationResponse)
def update_interview(
    interview_id: int,
    data: UpdateInterviewRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        interview = get_owned_interview(db, interview_id, current_user.id)

        if interview.status == 'completed':
            raise InvalidState('Cannot update completed interview')

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None and field != 'notes':
                continue
            setattr(interview, field, value)

        db.commit()
        db.refresh(interview)

        return InterviewMutationResponse(
            message='Interview updated successfully',
            interview=InterviewResponse.model_validate(interview),
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.put('/{interview_id}/complete', response_model=InterviewMutationResponse)
def complete_interview(
    interview_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        interview = get_owned_interview(db, interview_id, current_user.id)
        interview.status = 'completed'
        db.commit()
        db.refresh(interview)
        logger.info('User %s marked interview %s as completed', current_user.id, interview.id)

        return InterviewMutationResponse(
            message='Interview marked as completed',
            interview=InterviewResponse.model_validate(interview),
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.put('/{interview_id}/feedback', response_model=InterviewMutationResponse)
def record_feedback(
    interview_id: int,
    data: FeedbackRequest,
    current_user: User = Depends(require_interviewer),
    db: Session = Depends(get_db),
):
    try:
        interview = db.query(Interview).filter(Interview.id == interview_id).first()
        if interview is None:
            raise NotFound('Interview not found')

        interview.feedback = data.feedback
        interview.score = data.score
        interview.result = data.result
        interview.status = 'completed'
        if data.questions is not None:
            interview.questions = [question.model_dump() for question in data.questions]

        db.commit()
        db.refresh(interview)
        logger.info(
            'Interviewer %s recorded feedback on interview %s (%s, %s)',
            current_user.id,
            interview.id,
            data.result,
            data.score,
        )

        return InterviewMutationResponse(
            message='Feedback added successfully',
            interview=InterviewResponse.model_validate(interview),
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.delete('/{interview_id}', response_model=MessageResponse)
def cancel_interview(
    interview_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        interview = get_owned_interview(db, interview_id, current_user.id)

        if interview.status == 'completed':
            raise InvalidState('Cannot cancel completed interview')

        interview.status = 'cancelled'
        db.commit()
        logger.info('User %s cancelled interview %s', current_user.id, interview.id)

        return MessageResponse(message='Interview cancelled successfully')
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc
