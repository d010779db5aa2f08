"""Movie repository.

Listings are built from a single movies -> movies_genres -> genres outer-join
query and folded back into one dict per movie, so a movie with three genres
costs three rows rather than four queries.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List

from sqlalchemy import String, func, select

from filmservice.database import SessionLocal, Movie, Genre, WatchListEntry, movies_genres, movie_to_dict, genre_to_dict
from filmservice.logger import get_logger

logger = get_logger("movies")

SORT_COLUMNS = {
    "title": Movie.title,
    "releaseyear": Movie.release_year,
    "rating": Movie.rating,
}

MOVIE_FIELDS = ("title", "description", "release_year", "director", "trailer_url", "poster_url")


def with_genres_query(session):
    return (
        session.query(Movie, Genre)
        .outerjoin(movies_genres, movies_genres.c.movie_id == Movie.id)
        .outerjoin(Genre, Genre.id == movies_genres.c.genre_id)
    )


def fold_movie_rows(rows: Iterable) -> List[Dict[str, Any]]:
    """Collapse (Movie, Genre | None) rows into movie dicts, keeping first-seen order."""
    movies: Dict[int, Dict[str, Any]] = {}
    for row in rows:
        movie, genre = row[0], row[1]
        if movie.id not in movies:
            movies[movie.id] = movie_to_dict(movie, genres=[])
        if genre is not None:
            movies[movie.id]["genres"].append(genre_to_dict(genre))
    return list(movies.values())


def _order_by(sort: str | None):
    sort = (sort or '').strip()
    descending = sort.startswith('-')
    column = SORT_COLUMNS.get(sort.lstrip('-').lower())
    if column is None:
        return [Movie.id]
    return [column.desc() if descending else column.asc(), Movie.id]


def find_all(search_term: str | None = None, genre_id: int | None = None,
             is_watched: bool | None = None, sort: str | None = None) -> List[Dict[str, Any]]:
    """Return movies (with genres) matching the optional filters."""
    session = SessionLocal()
    try:
        q = with_genres_query(session)
        if search_term:
            q = q.filter(func.lower(Movie.title, type_=String).contains(search_term.strip().lower(), autoescape=True))
        if genre_id is not None:
            having_genre = select(movies_genres.c.movie_id).where(movies_genres.c.genre_id == genre_id)
            q = q.filter(Movie.id.in_(having_genre))
        if is_watched is not None:
            q = q.filter(Movie.is_watched == is_watched)
        q = q.order_by(*_order_by(sort), Genre.id)
        return fold_movie_rows(q.all())
    finally:
        session.close()


def find_by_id(movie_id: int) -> Dict[str, Any] | None:
    session = SessionLocal()
    try:
        rows = with_genres_query(session).filter(Movie.id == movie_id).order_by(Genre.id).all()
        movies = fold_movie_rows(rows)
        return movies[0] if movies else None
    finally:
        session.close()


def exists(movie_id: int) -> bool:
    session = SessionLocal()
    try:
        return session.query(Movie.id).filter(Movie.id == movie_id).first() is not None
    finally:
        session.close()


def _load_genres(session, genre_ids: list[int]) -> list[Genre]:
    wanted = set(genre_ids or [])
    if not wanted:
        return []
    genres = session.query(Genre).filter(Genre.id.in_(wanted)).order_by(Genre.id).all()
    if len(genres) != len(wanted):
        raise ValueError("Invalid genre ids")
    return genres


def create(data: dict, genre_ids: list[int]) -> int:
    """Insert a movie linked to ``genre_ids`` and return its id.

    ``data`` uses column names (title, description, release_year, director,
    trailer_url, poster_url). Raises ValueError for a missing title or an
    unknown genre id.
    """
    if not (data.get("title") or '').strip():
        raise ValueError("title is required")
    session = SessionLocal()
    try:
        movie = Movie(**{k: data.get(k) for k in MOVIE_FIELDS}, rating=0, is_watched=False)
        movie.title = movie.title.strip()
        movie.genres = _load_genres(session, genre_ids)
        session.add(movie)
        session.commit()
        logger.info("Created movie (id=%s, title=%s, genres=%s)", movie.id, movie.title, sorted(set(genre_ids or [])))
        return movie.id
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def update(movie_id: int, data: dict, genre_ids: list[int]) -> bool:
    """Overwrite a movie's fields and replace its genre links. False if not found."""
    if not (data.get("title") or '').strip():
        raise ValueError("title is required")
    session = SessionLocal()
    try:
        movie = session.get(Movie, movie_id)
        if not movie:
            return False
        for key in MOVIE_FIELDS:
            # keep the stored poster when the update carries none
            if key == "poster_url" and not data.get(key):
                continue
            setattr(movie, key, data.get(key))
        movie.title = movie.title.strip()
        movie.genres = _load_genres(session, genre_ids)
        session.commit()
        return True
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def delete(movie_id: int) -> bool:
    session = SessionLocal()
    try:
        movie = session.get(Movie, movie_id)
        if not movie:
            return False
        session.query(WatchListEntry).filter(WatchListEntry.movie_id == movie_id).delete(synchronize_session=False)
        session.delete(movie)
        session.commit()
        logger.info("Deleted movie %s", movie_id)
        return True
    finally:
        session.close()


def _set_column(movie_id: int, **values) -> bool:
    session = SessionLocal()
    try:
        updated = session.query(Movie).filter(Movie.id == movie_id).update(values, synchronize_session=False)
        session.commit()
        return updated > 0
    finally:
        session.close()


def set_rating(movie_id: int, rating: int) -> bool:
    return _set_column(movie_id, rating=rating)


def set_watched(movie_id: int, is_watched: bool) -> bool:
    return _set_column(movie_id, is_watched=is_watched)
