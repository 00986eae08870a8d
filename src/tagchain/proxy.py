"""HTTP proxy in front of AO3.

The front end only ever talks to these two endpoints:

    GET /api/autocomplete?term=slow+burn
    GET /api/cooccurrence?tags=Slow+Burn,Enemies+to+Lovers,Angst

The handlers are pure functions of (query params, AO3 client) so they can be
mounted on any server; create_app() mounts them on Flask and optionally serves
a static front end from a directory, which is all the local dev server needs.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from flask import Flask, Response, request, send_from_directory
from werkzeug.exceptions import NotFound

from tagchain.ao3 import AO3Client
from tagchain.errors import LookupFailure, MalformedQuery, TransportError
from tagchain.settings import Settings, get_settings

logger = logging.getLogger(__name__)

MIN_TERM_LENGTH = 2

# Suggestions for a term are near-static; search results grow as works are posted
AUTOCOMPLETE_CACHE = "public, max-age=3600, s-maxage=86400"
COOCCURRENCE_CACHE = "public, max-age=300, s-maxage=3600"
NO_CACHE = "no-store"


@dataclass
class ProxyResponse:
    """Status, JSON body and headers for one proxy answer."""

    status: int
    body: Any
    headers: dict[str, str] = field(default_factory=dict)


def _headers(cache_control: str) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Access-Control-Allow-Origin": "*",
        "Cache-Control": cache_control,
    }


def _error(exc: Exception) -> ProxyResponse:
    if isinstance(exc, (LookupFailure, MalformedQuery)):
        return ProxyResponse(exc.http_status, exc.to_payload(), _headers(NO_CACHE))

    logger.exception("Unexpected error while querying AO3")
    fallback = TransportError(str(exc))
    return ProxyResponse(fallback.http_status, fallback.to_payload(), _headers(NO_CACHE))


def split_tags(raw: str) -> list[str]:
    """Split a comma-joined tag parameter, dropping blanks."""
    return [t.strip() for t in raw.split(",") if t.strip()]


def handle_autocomplete(params: Mapping[str, str], client: AO3Client) -> ProxyResponse:
    """Answer GET /autocomplete."""
    term = params.get("term") or ""
    if len(term) < MIN_TERM_LENGTH:
        return ProxyResponse(200, [], _headers(AUTOCOMPLETE_CACHE))

    try:
        suggestions = client.lookup_suggestions(term)
    except Exception as e:
        return _error(e)

    return ProxyResponse(200, suggestions, _headers(AUTOCOMPLETE_CACHE))


def handle_cooccurrence(params: Mapping[str, str], client: AO3Client) -> ProxyResponse:
    """Answer GET /cooccurrence."""
    raw = params.get("tags")
    if not raw:
        return _error(MalformedQuery("missing_tags"))

    tags = split_tags(raw)
    if len(tags) < 2:
        return _error(MalformedQuery("need_at_least_2_tags"))

    try:
        result = client.lookup_cooccurrence_count(tags)
    except Exception as e:
        return _error(e)

    body = {"tags": tags, "count": result.count, "parsed": result.parsed}
    return ProxyResponse(200, body, _headers(COOCCURRENCE_CACHE))


def _to_flask(answer: ProxyResponse) -> Response:
    return Response(json.dumps(answer.body), status=answer.status, headers=answer.headers)


def _preflight() -> Response:
    return Response(
        status=204,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "GET, OPTIONS",
            "Access-Control-Allow-Headers": "Content-Type",
        },
    )


def create_app(
    client: Optional[AO3Client] = None,
    settings: Optional[Settings] = None,
    static_dir: Optional[Path] = None,
) -> Flask:
    """Build the proxy application.

    Args:
        client: AO3 client to forward to. Built from settings if omitted.
        settings: Settings to read AO3 URL, user agent and timeout from.
        static_dir: Directory holding the front end; not served if None.

    Returns:
        Flask app routing /api/* to the proxy handlers.
    """
    settings = settings or get_settings()
    if client is None:
        client = AO3Client(
            base_url=settings.get("ao3_base_url"),
            user_agent=settings.get("user_agent"),
            timeout=float(settings.get("request_timeout")),
        )

    app = Flask(__name__, static_folder=None)
    app.config["AO3_CLIENT"] = client

    @app.route("/api/autocomplete", methods=["GET", "OPTIONS"])
    def autocomplete():
        if request.method == "OPTIONS":
            return _preflight()
        return _to_flask(handle_autocomplete(request.args, client))

    @app.route("/api/cooccurrence", methods=["GET", "OPTIONS"])
    def cooccurrence():
        if request.method == "OPTIONS":
            return _preflight()
        return _to_flask(handle_cooccurrence(request.args, client))

    if static_dir is not None:
        root = Path(static_dir).resolve()

        @app.route("/", defaults={"path": "index.html"})
        @app.route("/<path:path>")
        def static_files(path: str):
            try:
                return send_from_directory(root, path)
            except NotFound:
                return Response("404 Not Found", status=404, mimetype="text/plain")

        logger.info(f"Serving front end from {root}")

    return app
