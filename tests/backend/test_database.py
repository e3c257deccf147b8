from sqlalchemy.exc import OperationalError

from backend.core.errors import InternalError
from backend.database import store_failure
from backend.models.user import User


def test_store_failure_rolls_back_pending_changes(db_session) -> None:
    assert db_session.query(User).count() == 0
    db_session.add(User(name='Pending', email='pending@mockprep.io', hashed_password='x', role='student'))
    assert db_session.new

    error = store_failure(db_session, OperationalError('INSERT INTO users', {}, Exception('database is locked')))

    assert not db_session.new
    assert db_session.query(User).count() == 0
    assert isinstance(error, InternalError)
    assert error.status_code == 500
    assert error.detail == 'Server error'
    assert 'database is locked' in error.error
