"""Bearer-token authentication.

Tokens are HS256 JWTs carrying the user id in ``sub``. Flask-Login's
request loader turns a valid ``Authorization: Bearer <token>`` header into
``current_user``; routes opt in with ``@login_required``. Signing out puts
the token's ``jti`` on a denylist until it would have expired anyway.
"""
import secrets
from datetime import datetime, timedelta, timezone

import jwt
from flask import g, jsonify
from flask_login import LoginManager

from filmservice import config
from filmservice.database import SessionLocal, RevokedToken, utcnow
from filmservice.logger import get_logger
from filmservice import users_db

logger = get_logger("auth")

JWT_ALGORITHM = "HS256"

login_manager = LoginManager()


def issue_token(user_id: int, expires_in: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + (expires_in if expires_in is not None else config.JWT_EXPIRES_IN),
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(claims, config.JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Verify signature and expiry; raises jwt.InvalidTokenError on failure."""
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[JWT_ALGORITHM],
        options={"require": ["exp", "sub", "jti"]},
    )


def is_revoked(jti: str) -> bool:
    session = SessionLocal()
    try:
        return session.query(RevokedToken.id).filter(RevokedToken.jti == jti).first() is not None
    finally:
        session.close()


def revoke_token(claims: dict) -> None:
    session = SessionLocal()
    try:
        if session.query(RevokedToken.id).filter(RevokedToken.jti == claims["jti"]).first():
            return
        expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc).replace(tzinfo=None)
        session.add(RevokedToken(jti=claims["jti"], user_id=int(claims["sub"]), expires_at=expires_at))
        session.commit()
    finally:
        session.close()


def purge_revoked_tokens() -> int:
    """Drop denylist rows for tokens that have expired on their own."""
    session = SessionLocal()
    try:
        removed = (
            session.query(RevokedToken)
            .filter(RevokedToken.expires_at < utcnow())
            .delete(synchronize_session=False)
        )
        session.commit()
        return removed
    finally:
        session.close()


def bearer_token(header: str | None) -> str | None:
    parts = (header or '').split(' ')
    if len(parts) == 2 and parts[0].lower() == 'bearer' and parts[1]:
        return parts[1]
    return None


@login_manager.request_loader
def load_user_from_request(request):
    header = request.headers.get("Authorization")
    if not header:
        g.auth_error = "Authorization header required"
        return None
    token = bearer_token(header)
    if not token:
        g.auth_error = "Invalid authorization header"
        return None
    try:
        claims = decode_token(token)
        user_id = int(claims["sub"])
    except (jwt.InvalidTokenError, ValueError) as e:
        logger.debug("Rejected token: %s", e)
        g.auth_error = "Invalid token"
        return None
    if is_revoked(claims["jti"]):
        g.auth_error = "Token has been revoked"
        return None
    user = users_db.get_user(user_id)
    if user is None:
        g.auth_error = "Invalid token"
        return None
    g.token_claims = claims
    return user


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": g.get("auth_error", "Unauthorized")}), 401
