import os
import time
from flask import Flask, jsonify, request, send_from_directory, g
from flask_cors import CORS
from flask_login import login_required, current_user
from sqlalchemy import text
from werkzeug.exceptions import HTTPException, NotFound

from filmservice import config
from filmservice.logger import get_logger
from filmservice.database import init_db, ENGINE
from filmservice.auth import login_manager, issue_token, revoke_token
from filmservice import genres_db, movies_db, watchlist_db, users_db
from filmservice.utils import api_error, parse_int, parse_bool, read_movie_payload, save_poster, remove_poster

logger = get_logger("filmservice")

app = Flask(__name__)
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-change-me")
app.json.sort_keys = False

CORS(app, origins=config.ALLOWED_ORIGINS)
login_manager.init_app(app)

# Ensure database tables exist (idempotent)
init_db()


@app.before_request
def start_timer():
    g.request_started = time.perf_counter()


@app.after_request
def log_request(response):
    started = g.get("request_started")
    elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
    logger.info("%s %s -> %s (%.1fms) from %s", request.method, request.path,
                response.status_code, elapsed_ms, request.remote_addr)
    return response


@app.errorhandler(HTTPException)
def handle_http_error(e: HTTPException):
    return api_error(e.name, e.code or 500)


@app.errorhandler(Exception)
def handle_unexpected_error(e: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return api_error("Internal server error", 500)


@app.route("/health", methods=["GET"])
def health():
    try:
        with ENGINE.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Health check failed: %s", e)
        return jsonify({"status": "error", "error": "database unavailable"}), 500
    return jsonify({"status": "ok"})


# ------------------ Auth ------------------

@app.route("/auth/signIn", methods=["POST"])
def sign_in():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error("Invalid request payload", 400)
    email = data.get("email")
    password = data.get("password")
    if not (isinstance(email, str) and isinstance(password, str)):
        return api_error("Invalid request payload", 400)
    email = email.strip()
    if not (email and password):
        return api_error("Invalid request payload", 400)
    user = users_db.authenticate(email, password)
    if not user:
        logger.warning("Failed sign-in for %s", email.lower())
        return api_error("Invalid credentials", 401)
    return jsonify({"token": issue_token(user.id)})


@app.route("/auth/signOut", methods=["POST"])
@login_required
def sign_out():
    revoke_token(g.token_claims)
    return '', 200


# ------------------ Genres ------------------

@app.route("/genres", methods=["GET"])
@login_required
def genres_find_all():
    return jsonify(genres_db.find_all())


@app.route("/genres/<genre_id>", methods=["GET"])
@login_required
def genres_find_by_id(genre_id):
    gid = parse_int(genre_id)
    if gid is None:
        return api_error("Invalid Genre Id", 400)
    genre = genres_db.find_by_id(gid)
    if not genre:
        return api_error("Genre not found", 404)
    return jsonify(genre)


@app.route("/genres", methods=["POST"])
@login_required
def genres_create():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error("Could not bind JSON", 400)
    try:
        new_id = genres_db.create(data.get("title"))
    except ValueError as e:
        return api_error(str(e), 400)
    return jsonify({"id": new_id})


@app.route("/genres/<genre_id>", methods=["PUT"])
@login_required
def genres_update(genre_id):
    gid = parse_int(genre_id)
    if gid is None:
        return api_error("Invalid Genre Id", 400)
    if not genres_db.find_by_id(gid):
        return api_error("Genre not found", 404)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error("Could not update genre", 400)
    try:
        genres_db.update(gid, data.get("title"))
    except ValueError as e:
        return api_error(str(e), 400)
    return '', 200


@app.route("/genres/<genre_id>", methods=["DELETE"])
@login_required
def genres_delete(genre_id):
    gid = parse_int(genre_id)
    if gid is None:
        return api_error("Invalid Genre Id", 400)
    if not genres_db.delete(gid):
        return api_error("Genre not found", 404)
    return '', 200


# ------------------ Movies ------------------

def _movie_id_or_error(movie_id):
    mid = parse_int(movie_id)
    if mid is None:
        return None, api_error("Invalid Movie Id", 400)
    return mid, None


def _prepare_movie():
    """Validate the request payload and store its poster.

    Returns (data, genre_ids, None) or (None, None, error response).
    """
    try:
        data, genre_ids, poster = read_movie_payload()
    except ValueError as e:
        return None, None, api_error(str(e), 400)
    if len(genres_db.find_all_by_ids(genre_ids)) != len(set(genre_ids)):
        return None, None, api_error("Invalid genre ids", 400)
    if poster is not None:
        try:
            data["poster_url"] = f"/images/{save_poster(poster)}"
        except ValueError as e:
            return None, None, api_error(str(e), 400)
        data["poster_uploaded"] = True
    return data, genre_ids, None


def _discard_new_poster(data):
    if data.pop("poster_uploaded", False):
        remove_poster(data.get("poster_url"))


@app.route("/movies", methods=["GET"])
@login_required
def movies_find_all():
    genre_id = None
    if request.args.get("genreId"):
        genre_id = parse_int(request.args["genreId"])
        if genre_id is None:
            return api_error("Invalid Genre Id", 400)
    is_watched = None
    if request.args.get("isWatched"):
        is_watched = parse_bool(request.args["isWatched"])
        if is_watched is None:
            return api_error("Invalid isWatched value", 400)
    movies = movies_db.find_all(
        search_term=request.args.get("searchTerm"),
        genre_id=genre_id,
        is_watched=is_watched,
        sort=request.args.get("sort"),
    )
    return jsonify(movies)


@app.route("/movies/<movie_id>", methods=["GET"])
@login_required
def movies_find_by_id(movie_id):
    mid, err = _movie_id_or_error(movie_id)
    if err:
        return err
    movie = movies_db.find_by_id(mid)
    if not movie:
        return api_error("Movie not found", 404)
    return jsonify(movie)


@app.route("/movies", methods=["POST"])
@login_required
def movies_create():
    data, genre_ids, err = _prepare_movie()
    if err:
        return err
    try:
        new_id = movies_db.create(data, genre_ids)
    except ValueError as e:
        _discard_new_poster(data)
        return api_error(str(e), 400)
    except Exception:
        _discard_new_poster(data)
        raise
    return jsonify({"id": new_id})


@app.route("/movies/<movie_id>", methods=["PUT"])
@login_required
def movies_update(movie_id):
    mid, err = _movie_id_or_error(movie_id)
    if err:
        return err
    current = movies_db.find_by_id(mid)
    if not current:
        return api_error("Movie not found", 404)
    data, genre_ids, err = _prepare_movie()
    if err:
        return err
    try:
        updated = movies_db.update(mid, data, genre_ids)
    except ValueError as e:
        _discard_new_poster(data)
        return api_error(str(e), 400)
    except Exception:
        _discard_new_poster(data)
        raise
    if not updated:
        _discard_new_poster(data)
        return api_error("Movie not found", 404)
    if data.get("poster_url") and data["poster_url"] != current["posterUrl"]:
        remove_poster(current["posterUrl"])
    return '', 200


@app.route("/movies/<movie_id>", methods=["DELETE"])
@login_required
def movies_delete(movie_id):
    mid, err = _movie_id_or_error(movie_id)
    if err:
        return err
    current = movies_db.find_by_id(mid)
    if not current or not movies_db.delete(mid):
        return api_error("Movie not found", 404)
    remove_poster(current["posterUrl"])
    return '', 200


@app.route("/movies/<movie_id>/rate", methods=["PATCH"])
@login_required
def movies_set_rating(movie_id):
    mid, err = _movie_id_or_error(movie_id)
    if err:
        return err
    rating = parse_int(request.args.get("rating"))
    if rating is None or not 1 <= rating <= 5:
        return api_error("Invalid rating value", 400)
    if not movies_db.set_rating(mid, rating):
        return api_error("Movie not found", 404)
    return '', 200


@app.route("/movies/<movie_id>/setWatched", methods=["PATCH"])
@login_required
def movies_set_watched(movie_id):
    mid, err = _movie_id_or_error(movie_id)
    if err:
        return err
    is_watched = parse_bool(request.args.get("isWatched"))
    if is_watched is None:
        return api_error("Invalid isWatched value", 400)
    if not movies_db.set_watched(mid, is_watched):
        return api_error("Movie not found", 404)
    return '', 200


# ------------------ Images ------------------

@app.route("/images/<image_id>", methods=["GET"])
def get_image(image_id):
    try:
        return send_from_directory(config.IMAGES_DIR, image_id)
    except NotFound:
        return api_error("Image not found", 404)


# ------------------ Watch list ------------------

@app.route("/watchlist", methods=["GET"])
@login_required
def watchlist_get_all():
    return jsonify(watchlist_db.get_all(current_user.id))


@app.route("/watchlist/<movie_id>", methods=["POST"])
@login_required
def watchlist_toggle(movie_id):
    mid, err = _movie_id_or_error(movie_id)
    if err:
        return err
    if watchlist_db.exists(current_user.id, mid):
        watchlist_db.delete(current_user.id, mid)
        return '', 204
    if not movies_db.exists(mid):
        return api_error("Movie not found", 404)
    watchlist_db.add(current_user.id, mid)
    return '', 204


@app.route("/watchlist/<movie_id>", methods=["DELETE"])
@login_required
def watchlist_delete(movie_id):
    mid, err = _movie_id_or_error(movie_id)
    if err:
        return err
    watchlist_db.delete(current_user.id, mid)
    return '', 204


# ------------------ Users ------------------

@app.route("/users", methods=["GET"])
@login_required
def users_find_all():
    try:
        return jsonify(users_db.find_all())
    except Exception:
        logger.exception("Could not load users")
        return api_error("could not load users", 500)


@app.route("/users/userInfo", methods=["GET"])
@login_required
def users_info():
    user = users_db.find_by_id(current_user.id)
    if not user:
        return api_error("User not found", 404)
    return jsonify(user)


@app.route("/users/<user_id>", methods=["GET"])
@login_required
def users_find_by_id(user_id):
    uid = parse_int(user_id)
    if uid is None:
        return api_error("Invalid User Id", 400)
    user = users_db.find_by_id(uid)
    if not user:
        return api_error("User not found", 404)
    return jsonify(user)


@app.route("/users", methods=["POST"])
@login_required
def users_create():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error("Invalid payload", 400)
    try:
        new_id = users_db.create(data.get("name"), data.get("email"), data.get("password"))
    except ValueError as e:
        return api_error(str(e), 400)
    return jsonify({"id": new_id})


@app.route("/users/<user_id>", methods=["PUT"])
@login_required
def users_update(user_id):
    uid = parse_int(user_id)
    if uid is None:
        return api_error("Invalid User Id", 400)
    if not users_db.find_by_id(uid):
        return api_error("User not found", 404)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return api_error("Could not update user", 400)
    try:
        users_db.update(uid, data.get("name"), data.get("email"))
    except ValueError as e:
        return api_error(str(e), 400)
    return '', 200


@app.route("/users/<user_id>/changePassword", methods=["PATCH"])
@login_required
def users_change_password(user_id):
    uid = parse_int(user_id)
    if uid is None:
        return api_error("Invalid User Id", 400)
    if not users_db.find_by_id(uid):
        return api_error("User not found", 404)
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data.get("password"):
        return api_error("Invalid payload", 400)
    try:
        users_db.change_password(uid, data["password"])
    except ValueError:
        return api_error("Invalid payload", 400)
    return '', 200


@app.route("/users/<user_id>", methods=["DELETE"])
@login_required
def users_delete(user_id):
    uid = parse_int(user_id)
    if uid is None:
        return api_error("Invalid User Id", 400)
    if not users_db.delete(uid):
        return api_error("User not found", 404)
    return '', 200
