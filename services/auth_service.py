import secrets
import logging
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from typing import Optional

import jwt as pyjwt
from flask import current_app
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from extensions import db
from models.user import User, Session
from utils.errors import DriveError
from utils.performance_logger import performance_monitor
from utils.validators import is_optional_text

logger = logging.getLogger(__name__)

MIN_SECRET_LENGTH = 32


class AuthError(DriveError):
    """Raised for registration and login failures"""
    def __init__(self, message: str, status_code: int = 400, code: str = 'AUTH_ERROR'):
        super().__init__(message, status_code, code)


@dataclass
class AuthResult:
    user: User
    session: Session
    access_token: str

    def to_dict(self):
        return {
            'user': self.user.to_dict(),
            'session': self.session.to_dict(),
            'access_token': self.access_token,
        }


def validate_jwt_config(config):
    """Raise RuntimeError when the JWT settings cannot produce safe tokens."""
    secret = config.get('JWT_SECRET_KEY') or ''
    lifetime = config.get('JWT_ACCESS_TOKEN_EXPIRES')

    error = None
    if len(secret) < MIN_SECRET_LENGTH:
        error = f"signing key must be at least {MIN_SECRET_LENGTH} characters"
    elif not config.get('JWT_ENCODE_ISSUER'):
        error = "issuer is required"
    elif not config.get('JWT_ENCODE_AUDIENCE'):
        error = "audience is required"
    elif not isinstance(lifetime, timedelta) or lifetime <= timedelta(0):
        error = "access token lifetime must be positive"

    if error:
        raise RuntimeError(f"Invalid JWT configuration: {error}")


class AuthService:
    """Users, server-side sessions and the JWTs that reference them"""

    def __init__(self):
        self.db = db

    @property
    def session_lifetime(self) -> timedelta:
        return current_app.config['JWT_ACCESS_TOKEN_EXPIRES']

    @performance_monitor("auth.register")
    def register(self, email: str, password: str, display_name: str = None,
                 user_agent: str = None, ip_address: str = None) -> AuthResult:
        if not isinstance(email, str) or not isinstance(password, str) \
                or not email.strip() or not password.strip():
            raise AuthError("Email and password are required.", 400, 'MISSING_CREDENTIALS')
        if not is_optional_text(display_name):
            raise AuthError("Display name must be a string.", 400, 'INVALID_DISPLAY_NAME')

        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            logger.warning(f"Registration rejected, email already in use: {email}")
            raise AuthError("Email is already registered.", 400, 'EMAIL_TAKEN')

        try:
            user = User(
                email=email,
                display_name=display_name.strip() if display_name and display_name.strip() else email,
                is_active=True,
            )
            user.set_password(password)
            self.db.session.add(user)
            self.db.session.flush()

            session = self._create_session(user, user_agent, ip_address)
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            raise AuthError(f"Failed to register user: {str(e)}", 500, 'REGISTER_FAILED')

        logger.info(f"User registered: {user.email}")
        return AuthResult(user, session, self._issue_token(user, session))

    @performance_monitor("auth.login")
    def login(self, email: str, password: str, user_agent: str = None,
              ip_address: str = None) -> AuthResult:
        email = email.strip().lower() if isinstance(email, str) else ''
        if not email or not isinstance(password, str) or not password.strip():
            raise AuthError("Email and password are required.", 401, 'MISSING_CREDENTIALS')

        user = User.query.filter_by(email=email).first()
        if user is None or not user.is_active or not user.check_password(password):
            logger.warning(f"Invalid credentials for {email} from {ip_address}")
            raise AuthError("Invalid credentials.", 401, 'INVALID_CREDENTIALS')

        try:
            user.last_login_at = datetime.now(timezone.utc)
            session = self._create_session(user, user_agent, ip_address)
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            raise AuthError(f"Failed to create session: {str(e)}", 500, 'LOGIN_FAILED')

        return AuthResult(user, session, self._issue_token(user, session))

    def validate_session(self, token: str) -> Optional[User]:
        claims = self._decode(token)
        session_token = claims.get('sid') if claims else None
        if not session_token:
            return None
        return self.user_for_session(session_token)

    def user_for_session(self, session_token: str) -> Optional[User]:
        """Active user behind a live session; expired sessions are dropped on read."""
        session = self.db.session.get(Session, session_token)
        if session is None:
            return None

        if session.is_expired:
            self.db.session.delete(session)
            self.db.session.commit()
            return None

        user = self.db.session.get(User, session.user_id)
        return user if user is not None and user.is_active else None

    def logout(self, token: str) -> bool:
        claims = self._decode(token)
        session_token = claims.get('sid') if claims else None
        if not session_token:
            return False

        session = self.db.session.get(Session, session_token)
        if session is None:
            return False

        self.db.session.delete(session)
        self.db.session.commit()
        return True

    def logout_all(self, token: str) -> int:
        user_id = None

        # Subject is read without verification so near-expiry tokens still work
        try:
            payload = pyjwt.decode(token, options={"verify_signature": False})
            user_id = payload.get('sub') or None
        except PyJWTError:
            pass

        if user_id is None:
            session = self.db.session.get(Session, token)
            if session is not None:
                user_id = session.user_id

        if user_id is None:
            return 0

        removed = Session.query.filter_by(user_id=str(user_id)).delete(synchronize_session=False)
        self.db.session.commit()
        logger.info(f"Removed {removed} session(s) for user {user_id}")
        return removed

    def cleanup(self) -> int:
        removed = self._purge_expired_sessions()
        self.db.session.commit()
        return removed

    def _decode(self, token: str) -> Optional[dict]:
        if not token:
            return None
        try:
            return decode_token(token)
        except (PyJWTError, JWTExtendedException) as e:
            logger.debug(f"Token rejected: {str(e)}")
            return None

    def _purge_expired_sessions(self) -> int:
        now = datetime.now(timezone.utc)
        return Session.query.filter(Session.expires_at <= now).delete(synchronize_session=False)

    def _create_session(self, user: User, user_agent: str = None, ip_address: str = None) -> Session:
        self._purge_expired_sessions()

        now = datetime.now(timezone.utc)
        session = Session(
            token=secrets.token_hex(24).upper(),
            user_id=user.id,
            created_at=now,
            expires_at=now + self.session_lifetime,
            user_agent=user_agent[:500] if user_agent else None,
            ip_address=ip_address,
        )
        self.db.session.add(session)
        return session

    def _issue_token(self, user: User, session: Session) -> str:
        return create_access_token(
            identity=str(user.id),
            additional_claims={'sid': session.token, 'email': user.email},
            expires_delta=self.session_lifetime,
        )
