from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from filmservice.database import SessionLocal, User, WatchListEntry, hash_password, verify_password, user_to_dict
from filmservice.logger import get_logger

logger = get_logger("users")


def _clean(name: str | None, email: str | None) -> tuple[str, str]:
    for value in (name, email):
        if value is not None and not isinstance(value, str):
            raise ValueError("name and email must be strings")
    name_clean = (name or '').strip()
    email_clean = (email or '').strip().lower()
    if not name_clean or not email_clean:
        raise ValueError("name and email required")
    if '@' not in email_clean:
        raise ValueError("email is not valid")
    return name_clean, email_clean


def _email_taken(session, email: str, exclude_id: int | None = None) -> bool:
    q = session.query(User.id).filter(func.lower(User.email) == email)
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    return q.first() is not None


def find_all() -> list[dict]:
    session = SessionLocal()
    try:
        return [user_to_dict(u) for u in session.query(User).order_by(User.id).all()]
    finally:
        session.close()


def find_by_id(user_id: int) -> dict | None:
    session = SessionLocal()
    try:
        user = session.get(User, user_id)
        return user_to_dict(user) if user else None
    finally:
        session.close()


def get_user(user_id: int) -> User | None:
    """Return the User row itself (detached), for the login manager."""
    session = SessionLocal()
    try:
        return session.get(User, user_id)
    finally:
        session.close()


def find_by_email(email: str) -> User | None:
    if not email:
        return None
    email_norm = email.strip().lower()
    session = SessionLocal()
    try:
        return session.query(User).filter(func.lower(User.email) == email_norm).first()
    finally:
        session.close()


def authenticate(email: str, password: str) -> User | None:
    user = find_by_email(email)
    if not user:
        return None
    if not verify_password(password or '', user.password_hash):
        return None
    return user


def create(name: str, email: str, password: str) -> int:
    """Create a user with a hashed password. Returns new user id.

    Raises ValueError if the email already exists or input is invalid.
    """
    name_clean, email_clean = _clean(name, email)
    if not password:
        raise ValueError("password required")
    session = SessionLocal()
    try:
        if _email_taken(session, email_clean):
            raise ValueError("email already exists")
        user = User(name=name_clean, email=email_clean, password_hash=hash_password(password))
        session.add(user)
        session.commit()
        logger.info("Created user (id=%s, email=%s)", user.id, email_clean)
        return user.id
    except IntegrityError:
        session.rollback()
        raise ValueError("email already exists") from None
    finally:
        session.close()


def update(user_id: int, name: str, email: str) -> bool:
    name_clean, email_clean = _clean(name, email)
    session = SessionLocal()
    try:
        user = session.get(User, user_id)
        if not user:
            return False
        if _email_taken(session, email_clean, exclude_id=user_id):
            raise ValueError("email already exists")
        user.name = name_clean
        user.email = email_clean
        session.commit()
        return True
    except IntegrityError:
        session.rollback()
        raise ValueError("email already exists") from None
    finally:
        session.close()


def change_password(user_id: int, password: str) -> bool:
    pw_hash = hash_password(password)
    session = SessionLocal()
    try:
        user = session.get(User, user_id)
        if not user:
            return False
        user.password_hash = pw_hash
        session.commit()
        logger.info("Password changed for user %s", user_id)
        return True
    finally:
        session.close()


def delete(user_id: int) -> bool:
    """Delete a user by their ID. Returns True if deleted, False if not found."""
    session = SessionLocal()
    try:
        user = session.get(User, user_id)
        if not user:
            return False
        session.query(WatchListEntry).filter(WatchListEntry.user_id == user_id).delete(synchronize_session=False)
        session.delete(user)
        session.commit()
        return True
    finally:
        session.close()
