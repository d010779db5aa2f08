from filmservice.database import SessionLocal, Movie, Genre, WatchListEntry
from filmservice.movies_db import with_genres_query, fold_movie_rows


def get_all(user_id: int) -> list[dict]:
    """Return the user's watch-list movies (with genres), oldest addition first."""
    session = SessionLocal()
    try:
        rows = (
            with_genres_query(session)
            .join(WatchListEntry, WatchListEntry.movie_id == Movie.id)
            .filter(WatchListEntry.user_id == user_id)
            .order_by(WatchListEntry.added_at.asc(), Movie.id, Genre.id)
            .all()
        )
        return fold_movie_rows(rows)
    finally:
        session.close()


def exists(user_id: int, movie_id: int) -> bool:
    session = SessionLocal()
    try:
        return session.get(WatchListEntry, (user_id, movie_id)) is not None
    finally:
        session.close()


def add(user_id: int, movie_id: int) -> None:
    session = SessionLocal()
    try:
        session.add(WatchListEntry(user_id=user_id, movie_id=movie_id))
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def delete(user_id: int, movie_id: int) -> bool:
    """Remove a movie from the user's watch list. Returns False if it was not there."""
    session = SessionLocal()
    try:
        removed = (
            session.query(WatchListEntry)
            .filter(WatchListEntry.user_id == user_id, WatchListEntry.movie_id == movie_id)
            .delete(synchronize_session=False)
        )
        session.commit()
        return removed > 0
    finally:
        session.close()
