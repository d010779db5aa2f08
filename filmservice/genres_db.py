from sqlalchemy.exc import IntegrityError

from filmservice.database import SessionLocal, Genre, genre_to_dict
from filmservice.logger import get_logger

logger = get_logger("genres")


def _clean_title(title: str | None) -> str:
    if title is not None and not isinstance(title, str):
        raise ValueError("title must be a string")
    title_clean = (title or '').strip()
    if not title_clean:
        raise ValueError("title is required")
    return title_clean


def _title_taken(session, title: str, exclude_id: int | None = None) -> bool:
    q = session.query(Genre.id).filter(Genre.title == title)
    if exclude_id is not None:
        q = q.filter(Genre.id != exclude_id)
    return q.first() is not None


def find_all() -> list[dict]:
    session = SessionLocal()
    try:
        rows = session.query(Genre).order_by(Genre.id).all()
        return [genre_to_dict(g) for g in rows]
    finally:
        session.close()


def find_by_id(genre_id: int) -> dict | None:
    session = SessionLocal()
    try:
        genre = session.get(Genre, genre_id)
        return genre_to_dict(genre) if genre else None
    finally:
        session.close()


def find_all_by_ids(genre_ids: list[int]) -> list[dict]:
    """Return the genres whose id is in ``genre_ids``; unknown ids are skipped."""
    if not genre_ids:
        return []
    session = SessionLocal()
    try:
        rows = session.query(Genre).filter(Genre.id.in_(set(genre_ids))).order_by(Genre.id).all()
        return [genre_to_dict(g) for g in rows]
    finally:
        session.close()


def create(title: str) -> int:
    """Create a genre and return its id.

    Raises ValueError if the title is empty or already taken.
    """
    title_clean = _clean_title(title)
    session = SessionLocal()
    try:
        if _title_taken(session, title_clean):
            raise ValueError("genre with this title already exists")
        genre = Genre(title=title_clean)
        session.add(genre)
        session.commit()
        logger.info("Created genre (id=%s, title=%s)", genre.id, title_clean)
        return genre.id
    except IntegrityError:
        session.rollback()
        raise ValueError("genre with this title already exists") from None
    finally:
        session.close()


def update(genre_id: int, title: str) -> bool:
    title_clean = _clean_title(title)
    session = SessionLocal()
    try:
        genre = session.get(Genre, genre_id)
        if not genre:
            return False
        if _title_taken(session, title_clean, exclude_id=genre_id):
            raise ValueError("genre with this title already exists")
        genre.title = title_clean
        session.commit()
        return True
    except IntegrityError:
        session.rollback()
        raise ValueError("genre with this title already exists") from None
    finally:
        session.close()


def delete(genre_id: int) -> bool:
    """Delete a genre and its movie links. Returns False if not found."""
    session = SessionLocal()
    try:
        genre = session.get(Genre, genre_id)
        if not genre:
            return False
        session.delete(genre)
        session.commit()
        logger.info("Deleted genre %s", genre_id)
        return True
    finally:
        session.close()
