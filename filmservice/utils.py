import os
import uuid
from typing import Any, Dict, List

from flask import jsonify, request
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from filmservice import config

ALLOWED_IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.webp'}

MOVIE_TEXT_KEYS = ('title', 'description', 'director', 'trailerUrl', 'posterUrl')

# short forms t/f are accepted as well
TRUE_VALUES = ('1', 't', 'true')
FALSE_VALUES = ('0', 'f', 'false')

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def api_error(message: str, status: int):
    return jsonify({"error": message}), status


def parse_int(value: Any) -> int | None:
    """Parse a path/query/form value as an int, or None if it is not one."""
    if isinstance(value, bool):
        return None
    if not isinstance(value, int):
        text = str(value).strip()
        # int() also takes "1_000"
        if '_' in text:
            return None
        try:
            value = int(text)
        except (TypeError, ValueError):
            return None
    if not INT64_MIN <= value <= INT64_MAX:
        return None
    return value


def parse_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    v = str(value or '').strip().lower()
    if v in TRUE_VALUES:
        return True
    if v in FALSE_VALUES:
        return False
    return None


def parse_genre_ids(raw: Any) -> List[int]:
    """Accept [1, 2], ["1", "2"], "1,2" or repeated form fields; ValueError on junk."""
    if raw is None or raw == '':
        return []
    if isinstance(raw, (str, int)):
        raw = [raw]
    ids: List[int] = []
    for item in raw:
        for part in str(item).split(','):
            if not part.strip():
                continue
            gid = parse_int(part)
            if gid is None:
                raise ValueError("Invalid genre ids")
            ids.append(gid)
    return ids


def save_poster(upload: FileStorage) -> str:
    """Store an uploaded poster under IMAGES_DIR and return the stored file name."""
    filename = secure_filename(upload.filename or '')
    ext = os.path.splitext(filename)[1].lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValueError(f"poster must be one of: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}")
    os.makedirs(config.IMAGES_DIR, exist_ok=True)
    stored = f"{uuid.uuid4().hex}{ext}"
    upload.save(os.path.join(config.IMAGES_DIR, stored))
    return stored


def remove_poster(poster_url: str | None) -> None:
    """Delete a poster stored by save_poster. External URLs are left alone."""
    if not poster_url or not poster_url.startswith("/images/"):
        return
    path = os.path.join(config.IMAGES_DIR, secure_filename(poster_url.rsplit("/", 1)[1]))
    if os.path.isfile(path):
        os.remove(path)


def read_movie_payload() -> tuple[Dict[str, Any], List[int], FileStorage | None]:
    """Read a movie from a JSON body or a multipart form.

    Returns (column values, genre ids, poster upload). The poster is not
    saved here so nothing lands on disk for a payload that fails later.
    Raises ValueError with a message fit for the client when the payload
    can't be used.
    """
    if request.is_json:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            raise ValueError("Could not bind JSON")
        for key in MOVIE_TEXT_KEYS:
            if body.get(key) is not None and not isinstance(body[key], str):
                raise ValueError("Could not bind JSON")
        genre_raw = body.get('genreIds')
        if isinstance(genre_raw, (bool, float, dict)):
            raise ValueError("Could not bind JSON")
        poster = None
    else:
        body = request.form
        genre_raw = body.getlist('genreIds')
        poster = request.files.get('poster')

    release_raw = body.get('releaseYear')
    release_year = None
    if release_raw not in (None, ''):
        release_year = parse_int(release_raw)
        if release_year is None:
            raise ValueError("Invalid release year")

    data = {
        'title': (body.get('title') or '').strip(),
        'description': body.get('description'),
        'release_year': release_year,
        'director': body.get('director'),
        'trailer_url': body.get('trailerUrl'),
        'poster_url': body.get('posterUrl'),
    }
    if not data['title']:
        raise ValueError("title is required")
    if poster is not None and not poster.filename:
        poster = None
    return data, parse_genre_ids(genre_raw), poster
