import pytest
from pydantic import ValidationError

from backend.core.errors import Forbidden, NotFound
from backend.models.resource import Resource
from backend.routes.resource_routes import (
    CreateResourceRequest,
    UpdateResourceRequest,
    create_resource,
    delete_resource,
    get_resource,
    like_resource,
    list_blogs,
    list_questions,
    list_resources,
    resource_stats_overview,
    update_resource,
)


def _store_resource(db, **fields) -> Resource:
    values = {
        'title': 'Big-O Cheatsheet',
        'category': 'dsa',
        'type': 'article',
        'content': 'Time complexity of common operations.',
        'difficulty': 'beginner',
        'tags': [],
        'questions': [],
        'views': 0,
        'likes': 0,
        'is_active': True,
        'is_premium': False,
    }
    values.update(fields)
    resource = Resource(**values)
    db.add(resource)
    db.commit()
    db.refresh(resource)
    return resource


def _list(db, current_user=None, **overrides):
    params = {
        'category': None,
        'type_filter': None,
        'difficulty': None,
        'search': None,
        'page': 1,
        'limit': 10,
        'sort_by': 'created_at',
        'order': 'desc',
    }
    params.update(overrides)
    return list_resources(current_user=current_user, db=db, **params)


def test_create_resource_request_normalizes_fields() -> None:
    request = CreateResourceRequest(
        title='  Hooks in depth ',
        category='Frontend',
        type='Video',
        content='useEffect and friends',
        url=' https://react.dev/reference ',
        tags=['react', ' hooks ', 'react', ''],
    )

    assert request.title == 'Hooks in depth'
    assert request.category == 'frontend'
    assert request.type == 'video'
    assert request.url == 'https://react.dev/reference'
    assert request.tags == ['react', 'hooks']
    assert request.difficulty == 'intermediate'


@pytest.mark.parametrize(
    ('overrides', 'message'),
    [
        ({'url': 'ftp://files.mockprep.io'}, 'Please provide a valid URL'),
        ({'title': 'x' * 201}, 'Title cannot exceed 200 characters'),
        ({'category': 'cooking'}, 'Invalid category'),
        ({'type': 'podcast'}, 'Invalid resource type'),
        ({'difficulty': 'expert'}, 'Invalid difficulty'),
        ({'content': '  '}, 'Content is required'),
        ({'questions': [{'question': 'What is a closure?', 'difficulty': 'brutal'}]}, 'Invalid question difficulty'),
    ],
)
def test_create_resource_request_rejects_invalid_input(overrides: dict, message: str) -> None:
    payload = {'title': 'Closures', 'category': 'frontend', 'type': 'article', 'content': 'Scopes.'}
    payload.update(overrides)

    with pytest.raises(ValidationError) as exception_info:
        CreateResourceRequest(**payload)

    assert message in str(exception_info.value)


def test_create_resource_records_creator(db_session, make_user) -> None:
    admin = make_user('admin')

    response = create_resource(
        data=CreateResourceRequest(
            title='Two pointers',
            category='dsa',
            type='practice',
            content='Practice set',
            questions=[{'question': 'Pair sum', 'answer': 'Sort then scan', 'difficulty': 'easy'}],
        ),
        current_user=admin,
        db=db_session,
    )

    assert response.message == 'Resource created successfully'
    assert response.resource.created_by == admin.id
    assert response.resource.views == 0
    assert response.resource.likes == 0
    assert response.resource.questions[0].question == 'Pair sum'


def test_list_resources_hides_premium_from_anonymous_callers(db_session, make_user) -> None:
    _store_resource(db_session, title='Free')
    _store_resource(db_session, title='Paid', is_premium=True)
    _store_resource(db_session, title='Retired', is_active=False)

    anonymous = _list(db_session)
    member = _list(db_session, current_user=make_user())

    assert [resource.title for resource in anonymous.resources] == ['Free']
    assert sorted(resource.title for resource in member.resources) == ['Free', 'Paid']


def test_list_resources_filters_and_searches(db_session) -> None:
    _store_resource(db_session, title='Flexbox Froggy', category='frontend', type='practice')
    _store_resource(db_session, title='Grid Garden', category='frontend', type='practice', tags=['css', 'layout'])
    _store_resource(db_session, title='Heaps', category='dsa')

    by_category = _list(db_session, category='frontend')
    by_search = _list(db_session, search='LAYOUT')

    assert by_category.total == 2
    assert [resource.title for resource in by_search.resources] == ['Grid Garden']


def test_list_resources_sorts_and_paginates(db_session) -> None:
    for likes in (5, 1, 3):
        _store_resource(db_session, title=f'Likes {likes}', likes=likes)

    response = _list(db_session, sort_by='likes', order='asc', limit=2)

    assert [resource.likes for resource in response.resources] == [1, 3]
    assert response.totalPages == 2
    assert response.total == 3


def test_list_questions_flattens_question_banks(db_session) -> None:
    _store_resource(
        db_session,
        category='dsa',
        questions=[
            {'question': 'Reverse a linked list', 'difficulty': 'easy', 'tags': ['lists']},
            {'question': 'LRU cache', 'difficulty': 'hard', 'tags': []},
        ],
    )
    _store_resource(
        db_session,
        category='behavioral',
        questions=[{'question': 'Tell me about a conflict', 'difficulty': 'easy', 'tags': []}],
    )
    _store_resource(db_session, is_active=False, questions=[{'question': 'Hidden', 'difficulty': 'easy'}])

    easy = list_questions(category=None, difficulty='easy', limit=10, shuffle=False, db=db_session)
    limited = list_questions(category='dsa', difficulty=None, limit=1, shuffle=True, db=db_session)

    assert sorted(question.question for question in easy.questions) == [
        'Reverse a linked list',
        'Tell me about a conflict',
    ]
    assert {question.category for question in easy.questions} == {'dsa', 'behavioral'}
    assert limited.total == 1
    assert limited.questions[0].category == 'dsa'


def test_list_blogs_returns_only_active_blogs(db_session) -> None:
    _store_resource(db_session, title='Article')
    _store_resource(db_session, title='Blog post', type='blog')
    _store_resource(db_session, title='Old blog', type='blog', is_active=False)

    response = list_blogs(category=None, page=1, limit=5, db=db_session)

    assert [blog.title for blog in response.blogs] == ['Blog post']
    assert response.total == 1


def test_get_resource_increments_views(db_session) -> None:
    resource = _store_resource(db_session, views=4)

    response = get_resource(resource_id=resource.id, current_user=None, db=db_session)

    assert response.views == 5


def test_get_resource_requires_authentication_for_premium(db_session, make_user) -> None:
    resource = _store_resource(db_session, is_premium=True)

    with pytest.raises(Forbidden) as exception_info:
        get_resource(resource_id=resource.id, current_user=None, db=db_session)

    assert exception_info.value.detail == 'Premium content requires authentication'
    assert get_resource(resource_id=resource.id, current_user=make_user(), db=db_session).views == 1


def test_get_resource_hides_inactive(db_session) -> None:
    resource = _store_resource(db_session, is_active=False)

    with pytest.raises(NotFound) as exception_info:
        get_resource(resource_id=resource.id, current_user=None, db=db_session)

    assert exception_info.value.detail == 'Resource not found'


def test_update_resource_ignores_counters(db_session, make_user) -> None:
    resource = _store_resource(db_session, views=10, likes=2)

    response = update_resource(
        resource_id=resource.id,
        data=UpdateResourceRequest(title='Big-O, revisited', views=0, likes=0, is_premium=True),
        current_user=make_user('admin'),
        db=db_session,
    )

    assert response.resource.title == 'Big-O, revisited'
    assert response.resource.is_premium is True
    assert response.resource.views == 10
    assert response.resource.likes == 2


def test_update_resource_returns_not_found(db_session, make_user) -> None:
    with pytest.raises(NotFound):
        update_resource(
            resource_id=77,
            data=UpdateResourceRequest(title='Nothing'),
            current_user=make_user('admin'),
            db=db_session,
        )


def test_delete_resource_soft_deletes(db_session, make_user) -> None:
    resource = _store_resource(db_session)

    response = delete_resource(resource_id=resource.id, current_user=make_user('admin'), db=db_session)

    assert response.message == 'Resource deleted successfully'
    db_session.expire_all()
    assert db_session.get(Resource, resource.id).is_active is False


def test_like_resource_increments_likes(db_session) -> None:
    resource = _store_resource(db_session, likes=1)

    like_resource(resource_id=resource.id, db=db_session)
    response = like_resource(resource_id=resource.id, db=db_session)

    assert response.message == 'Resource liked'
    assert response.likes == 3


def test_resource_stats_overview_counts_active_resources(db_session) -> None:
    _store_resource(db_session, category='dsa', views=10, likes=1)
    _store_resource(db_session, category='dsa', views=5, likes=4)
    _store_resource(db_session, category='frontend', views=1)
    _store_resource(db_session, category='frontend', views=100, likes=100, is_active=False)

    response = resource_stats_overview(db=db_session)

    assert response.total == 3
    assert response.totalViews == 16
    assert response.totalLikes == 5
    assert {group.group: group.count for group in response.categoryStats} == {'dsa': 2, 'frontend': 1}
