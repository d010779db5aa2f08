"""Top-level runner so repo-root `python app.py` starts the Flask app.
This simply defers to the package entry in `filmservice.app` so imports work
when run from the repository root.
"""
from filmservice import app
from filmservice.config import APP_HOST, parse_app_host

if __name__ == '__main__':
    host, port = parse_app_host(APP_HOST)
    app.logger.info("Application starting on %s:%s", host, port)
    app.app.run(host=host, port=port)
