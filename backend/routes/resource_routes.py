import logging
import random
import re
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import String, cast, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user, get_optional_user, require_admin
from backend.core.errors import Forbidden, NotFound
from backend.database import get_db, store_failure
from backend.models.resource import (
    DIFFICULTIES,
    QUESTION_DIFFICULTIES,
    RESOURCE_CATEGORIES,
    RESOURCE_TYPES,
    Resource,
)
from backend.models.user import User
from backend.queries import column_sum, grouped_counts, page_count, paginate

router = APIRouter(tags=['resources'])

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r'^https?://.+')
MAX_TITLE_LENGTH = 200
SORTABLE_COLUMNS = {
    'created_at': Resource.created_at,
    'title': Resource.title,
    'views': Resource.views,
    'likes': Resource.likes,
    'difficulty': Resource.difficulty,
}
REQUIRED_FIELDS = frozenset({
    'title', 'category', 'type', 'content', 'difficulty', 'tags', 'questions', 'is_active', 'is_premium',
})


def _choice(value: str | None, allowed: tuple[str, ...], message: str) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in allowed:
        raise ValueError(message)
    return normalized


class BankQuestion(BaseModel):
    question: str
    answer: str | None = None
    difficulty: str | None = None
    tags: list[str] = []

    @field_validator('difficulty')
    @classmethod
    def validate_difficulty(cls, value: str | None) -> str | None:
        return _choice(value, QUESTION_DIFFICULTIES, 'Invalid question difficulty')


class ResourceFields(BaseModel):
    """Validation shared by resource creation and updates."""

    @field_validator('title', check_fields=False)
    @classmethod
    def validate_title(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError('Resource title is required')
        if len(normalized) > MAX_TITLE_LENGTH:
            raise ValueError(f'Title cannot exceed {MAX_TITLE_LENGTH} characters')
        return normalized

    @field_validator('category', check_fields=False)
    @classmethod
    def validate_category(cls, value: str | None) -> str | None:
        return _choice(value, RESOURCE_CATEGORIES, 'Invalid category')

    @field_validator('type', check_fields=False)
    @classmethod
    def validate_type(cls, value: str | None) -> str | None:
        return _choice(value, RESOURCE_TYPES, 'Invalid resource type')

    @field_validator('difficulty', check_fields=False)
    @classmethod
    def validate_difficulty(cls, value: str | None) -> str | None:
        return _choice(value, DIFFICULTIES, 'Invalid difficulty')

    @field_validator('content', check_fields=False)
    @classmethod
    def validate_content(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError('Content is required')
        return value

    @field_validator('url', check_fields=False)
    @classmethod
    def validate_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            return None
        if not URL_PATTERN.match(normalized):
            raise ValueError('Please provide a valid URL')
        return normalized

    @field_validator('tags', check_fields=False)
    @classmethod
    def normalize_tags(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        tags: list[str] = []
        for tag in value:
            normalized = tag.strip()
            if normalized and normalized not in tags:
                tags.append(normalized)
        return tags


class CreateResourceRequest(ResourceFields):
    title: str
    category: str
    type: str
    content: str
    url: str | None = None
    author: str | None = None
    difficulty: str = 'intermediate'
    tags: list[str] = []
    is_premium: bool = False
    is_active: bool = True
    estimated_time: int | None = Field(default=None, gt=0)
    questions: list[BankQuestion] = []


class UpdateResourceRequest(ResourceFields):
    title: str | None = None
    category: str | None = None
    type: str | None = None
    content: str | None = None
    url: str | None = None
    author: str | None = None
    difficulty: str | None = None
    tags: list[str] | None = None
    is_premium: bool | None = None
    is_active: bool | None = None
    estimated_time: int | None = Field(default=None, gt=0)
    questions: list[BankQuestion] | None = None


class ResourceResponse(BaseModel):
    id: int
    title: str
    category: str
    type: str
    content: str
    url: str | None = None
    author: str | None = None
    difficulty: str
    tags: list[str] = []
    views: int = 0
    likes: int = 0
    is_active: bool = True
    is_premium: bool = False
    estimated_time: int | None = None
    questions: list[BankQuestion] = []
    created_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True

    @field_validator('tags', 'questions', mode='before')
    @classmethod
    def default_empty_list(cls, value):
        return value or []


class ResourceListResponse(BaseModel):
    resources: list[ResourceResponse]
    totalPages: int
    currentPage: int
    total: int


class BlogListResponse(BaseModel):
    blogs: list[ResourceResponse]
    totalPages: int
    currentPage: int
    total: int


class QuestionResponse(BankQuestion):
    category: str


class QuestionListResponse(BaseModel):
    questions: list[QuestionResponse]
    total: int


class ResourceMutationResponse(BaseModel):
    message: str
    resource: ResourceResponse


class LikeResponse(BaseModel):
    message: str
    likes: int


class MessageResponse(BaseModel):
    message: str


class CategoryCountResponse(BaseModel):
    group: str | None
    count: int


class ResourceStatsResponse(BaseModel):
    total: int
    totalViews: int
    totalLikes: int
    categoryStats: list[CategoryCountResponse]


def get_resource_or_404(db: Session, resource_id: int) -> Resource:
    resource = db.query(Resource).filter(Resource.id == resource_id).first()
    if resource is None:
        raise NotFound('Resource not found')
    return resource


def search_criterion(search: str):
    pattern = f'%{search.strip()}%'
    return or_(
        Resource.title.ilike(pattern),
        Resource.content.ilike(pattern),
        cast(Resource.tags, String).ilike(pattern),
    )


@router.get('', response_model=ResourceListResponse)
def list_resources(
    category: str | None = Query(default=None),
    type_filter: str | None = Query(default=None, alias='type'),
    difficulty: str | None = Query(default=None),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    sort_by: str = Query(default='created_at'),
    order: str = Query(default='desc', pattern='^(asc|desc)$'),
    current_user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(Resource).filter(Resource.is_active.is_(True))
        if category:
            query = query.filter(Resource.category == category)
        if type_filter:
            query = query.filter(Resource.type == type_filter)
        if difficulty:
            query = query.filter(Resource.difficulty == difficulty)
        if search and search.strip():
            query = query.filter(search_criterion(search))
        if current_user is None:
            query = query.filter(Resource.is_premium.is_(False))

        sort_column = SORTABLE_COLUMNS.get(sort_by, Resource.created_at)
        ordering = sort_column.asc() if order == 'asc' else sort_column.desc()

        resources, total = paginate(query.order_by(ordering, Resource.id.desc()), page, limit)

        return ResourceListResponse(
            resources=[ResourceResponse.model_validate(resource) for resource in resources],
            totalPages=page_count(total, limit),
            currentPage=page,
            total=total,
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.get('/questions', response_model=QuestionListResponse)
def list_questions(
    category: str | None = Query(default=None),
    difficulty: str | None = Query(default=None),
    limit: int = Query(default=10, ge=1, le=200),
    shuffle: bool = Query(default=False, alias='random'),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(Resource.category, Resource.questions).filter(Resource.is_active.is_(True))
        if category:
            query = query.filter(Resource.category == category)

        questions = [
            {**question, 'category': resource_category}
            for resource_category, bank in query.all()
            for question in (bank or [])
        ]
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc

    if difficulty:
        questions = [question for question in questions if question.get('difficulty') == difficulty]

    if shuffle:
        random.shuffle(questions)

    questions = questions[:limit]

    return QuestionListResponse(
        questions=[QuestionResponse.model_validate(question) for question in questions],
        total=len(questions),
    )


@router.get('/blogs', response_model=BlogListResponse)
def list_blogs(
    category: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=5, ge=1, le=100),
    db: Session = Depends(get_db),
):
    try:
        query = db.query(Resource).filter(
            Resource.is_active.is_(True),
            Resource.type == 'blog',
        )
        if category:
            query = query.filter(Resource.category == category)

        blogs, total = paginate(query.order_by(Resource.created_at.desc(), Resource.id.desc()), page, limit)

        return BlogListResponse(
            blogs=[ResourceResponse.model_validate(blog) for blog in blogs],
            totalPages=page_count(total, limit),
            currentPage=page,
            total=total,
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.get('/stats/overview', response_model=ResourceStatsResponse, dependencies=[Depends(require_admin)])
def resource_stats_overview(db: Session = Depends(get_db)):
    try:
        active = Resource.is_active.is_(True)
        return ResourceStatsResponse(
            total=db.query(Resource).filter(active).count(),
            totalViews=column_sum(db, Resource.views, active),
            totalLikes=column_sum(db, Resource.likes, active),
            categoryStats=grouped_counts(db, Resource.category, active),
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.get('/{resource_id}', response_model=ResourceResponse)
def get_resource(
    resource_id: int,
    current_user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    try:
        resource = db.query(Resource).filter(Resource.id == resource_id).first()
        if resource is None or not resource.is_active:
            raise NotFound('Resource not found')

        if resource.is_premium and current_user is None:
            raise Forbidden('Premium content requires authentication')

        resource.views = (resource.views or 0) + 1
        db.commit()
        db.refresh(resource)

        return resource
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.post('', response_model=ResourceMutationResponse, status_code=status.HTTP_201_CREATED)
def create_resource(
    data: CreateResourceRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        resource = Resource(
            **data.model_dump(),
            views=0,
            likes=0,
            created_by=current_user.id,
        )
        db.add(resource)
        db.commit()
        db.refresh(resource)
        logger.info('Admin %s created resource %s', current_user.id, resource.id)

        return ResourceMutationResponse(
            message='Resource created successfully',
            resource=ResourceResponse.model_validate(resource),
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.put('/{resource_id}', response_model=ResourceMutationResponse)
def update_resource(
    resource_id: int,
    data: UpdateResourceRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        resource = get_resource_or_404(db, resource_id)

        updates = data.model_dump(exclude_unset=True)
        for field, value in updates.items():
            if value is None and field in REQUIRED_FIELDS:
                continue
            setattr(resource, field, value)

        db.commit()
        db.refresh(resource)
        logger.info('Admin %s updated resource %s (%s)', current_user.id, resource.id, ', '.join(sorted(updates)))

        return ResourceMutationResponse(
            message='Resource updated successfully',
            resource=ResourceResponse.model_validate(resource),
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.delete('/{resource_id}', response_model=MessageResponse)
def delete_resource(
    resource_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        resource = get_resource_or_404(db, resource_id)
        resource.is_active = False
        db.commit()
        logger.info('Admin %s deactivated resource %s', current_user.id, resource.id)

        return MessageResponse(message='Resource deleted successfully')
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc


@router.post('/{resource_id}/like', response_model=LikeResponse, dependencies=[Depends(get_current_user)])
def like_resource(resource_id: int, db: Session = Depends(get_db)):
    try:
        resource = get_resource_or_404(db, resource_id)
        resource.likes = (resource.likes or 0) + 1
        db.commit()
        db.refresh(resource)

        return LikeResponse(message='Resource liked', likes=resource.likes)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc) from exc
