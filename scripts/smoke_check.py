#!/usr/bin/env python3
"""Sign in against a running FilmService and hit the main read endpoints.

    python scripts/smoke_check.py --base-url http://127.0.0.1:8080 \
        --email ada@example.com --password 'S3cret!'
"""
import argparse
import sys

import requests

ENDPOINTS = ("/genres", "/movies", "/watchlist", "/users/userInfo")


def run_smoke_check(base_url: str, email: str, password: str, session=None, timeout: float = 10) -> dict:
    """Return {path: status_code} for each endpoint; raises RuntimeError if sign-in fails."""
    s = session or requests.Session()
    base = base_url.rstrip('/')
    r = s.post(f"{base}/auth/signIn", json={"email": email, "password": password}, timeout=timeout)
    if r.status_code != 200:
        raise RuntimeError(f"sign-in failed with {r.status_code}: {r.text}")
    s.headers.update({"Authorization": f"Bearer {r.json()['token']}"})

    results = {}
    for path in ENDPOINTS:
        resp = s.get(f"{base}{path}", timeout=timeout)
        results[path] = resp.status_code
        print(f"{path}: {resp.status_code}")
    return results


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--base-url", default="http://127.0.0.1:8080")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args(argv)
    try:
        results = run_smoke_check(args.base_url, args.email, args.password)
    except (RuntimeError, requests.RequestException) as e:
        print(f"✗ {e}")
        return 1
    return 0 if all(code == 200 for code in results.values()) else 1


if __name__ == '__main__':
    sys.exit(main())
