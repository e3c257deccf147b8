import logging
from typing import Callable

import jwt
from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, defer

from backend.auth import jwt_handler
from backend.core.config import AuthSettings, get_auth_settings
from backend.core.errors import (
    AccountDeactivated,
    AccountNotFound,
    ApiError,
    Forbidden,
    InternalError,
    InvalidToken,
    TokenExpired,
    Unauthenticated,
)
from backend.database import get_db
from backend.models.user import User

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def extract_token(
    credentials: HTTPAuthorizationCredentials | None,
    x_auth_token: str | None,
) -> str | None:
    """Prefer ``Authorization: Bearer`` and fall back to the ``x-auth-token`` header."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    if x_auth_token and x_auth_token.strip():
        return x_auth_token.strip()
    return None


class CredentialVerifier:
    """Resolves the bearer token on a request to an active account.

    The resolved account and its id are attached to ``request.state`` as
    ``user`` and ``user_id``. With ``optional=True`` a missing or unusable
    token leaves the request unauthenticated and the dependency returns None.
    """

    def __init__(self, settings: AuthSettings, optional: bool = False) -> None:
        self.settings = settings
        self.optional = optional

    def __call__(
        self,
        request: Request,
        credentials: HTTPAuthorizationCredentials | None = Depends(security),
        x_auth_token: str | None = Header(default=None),
        db: Session = Depends(get_db),
    ) -> User | None:
        token = extract_token(credentials, x_auth_token)
        try:
            user = self.resolve(token, db)
        except ApiError as exc:
            if not self.optional or isinstance(exc, InternalError):
                logger.info('Rejected request to %s: %s', request.url.path, exc.detail)
                raise
            user = None

        request.state.user = user
        request.state.user_id = user.id if user is not None else None
        return user

    def resolve(self, token: str | None, db: Session) -> User:
        if not token:
            raise Unauthenticated()

        try:
            payload = jwt_handler.decode_access_token(token, self.settings)
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidToken() from exc

        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError) as exc:
            raise InvalidToken('Invalid token subject') from exc

        try:
            user = (
                db.query(User)
                .options(defer(User.hashed_password))
                .filter(User.id == user_id)
                .first()
            )
        except SQLAlchemyError as exc:
            logger.exception('Account lookup failed')
            raise InternalError(str(exc)) from exc

        if user is None:
            raise AccountNotFound()
        if not user.is_active:
            raise AccountDeactivated()
        return user


get_current_user = CredentialVerifier(get_auth_settings())
get_optional_user = CredentialVerifier(get_auth_settings(), optional=True)


def require_roles(*roles: str, message: str = 'Access denied') -> Callable[..., User]:
    allowed = frozenset(roles)

    def role_gate(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise Forbidden(message)
        return current_user

    return role_gate


require_admin = require_roles('admin', message='Access denied. Admin only.')
require_interviewer = require_roles('interviewer', 'admin', message='Access denied. Interviewer only.')
