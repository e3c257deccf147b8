import os
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')

from backend.auth.passwords import hash_password  # noqa: E402
from backend.database import Base  # noqa: E402
from backend.models import interview, resource  # noqa: E402,F401
from backend.models.user import User  # noqa: E402


@pytest.fixture
def session_factory():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_user(db_session):
    created = {'count': 0}

    def _make_user(role: str = 'student', *, email: str | None = None, password: str = 'secret123', is_active: bool = True) -> User:
        created['count'] += 1
        user = User(
            name=f'{role.title()} {created["count"]}',
            email=email or f'{role}{created["count"]}@mockprep.io',
            hashed_password=hash_password(password),
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def fake_request():
    def _fake_request(path: str = '/api/interviews'):
        return SimpleNamespace(url=SimpleNamespace(path=path), state=SimpleNamespace())

    return _fake_request
