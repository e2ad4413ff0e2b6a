"""
Flask application serving the local artifact store.

Read-only view over the store: directories render an HTML listing, files are
served as raw bytes with a content type inferred from their extension.
"""

import logging
import os

from flask import Flask, abort, jsonify, make_response, render_template

from .config import Config
from .errors import ValidationError
from .listing import DecompressedTooLarge, list_directory, parent_path, read_file_content
from .validation import resolve_request_path

logger = logging.getLogger(__name__)


def create_app(config: Config) -> Flask:
    """
    Create the Flask application for a configuration.

    Endpoints:
        - GET /healthz - Liveness check with configured repositories
        - GET / and GET /<path> - Directory listing or file content

    Responses:
        404: Path does not exist or escapes the store root
        413: Decompressed .gz content exceeds MAX_DECOMPRESSED_SIZE
        500: Directory or file cannot be read
    """
    app = Flask(__name__)

    @app.route("/healthz")
    def healthz():
        return jsonify(
            status="ok",
            repositories=[repo.name for repo in config.REPOSITORIES],
        )

    @app.route("/", defaults={"req_path": ""})
    @app.route("/<path:req_path>")
    def serve(req_path):
        logger.debug(f"Request URL path: {req_path!r}")

        try:
            fs_path = resolve_request_path(config.FILES_DIR, req_path)
        except ValidationError:
            abort(404)
        logger.debug(f"Resolved file path: {fs_path!r}")

        if not os.path.exists(fs_path):
            abort(404)

        if os.path.isdir(fs_path):
            return _render_directory(config, fs_path, req_path)
        return _serve_file(config, fs_path)

    return app


def _render_directory(config: Config, fs_path: str, req_path: str):
    try:
        entries = list_directory(fs_path, req_path)
    except FileNotFoundError:
        # Removed by a sync pass between the existence check and the listing
        abort(404)
    except OSError as e:
        logger.error(f"Unable to read directory {fs_path}: {e}")
        abort(500, "Unable to read directory")

    return render_template(
        "index.html",
        files=entries,
        parent_path=parent_path(req_path),
        sync_interval=config.SYNC_INTERVAL_MINUTES,
        repositories=config.REPOSITORIES,
    )


def _serve_file(config: Config, fs_path: str):
    try:
        content, content_type = read_file_content(fs_path, config.MAX_DECOMPRESSED_SIZE)
    except DecompressedTooLarge as e:
        abort(413, str(e))
    except FileNotFoundError:
        abort(404)
    except OSError as e:
        logger.error(f"Unable to read file {fs_path}: {e}")
        abort(500, "Unable to read file")

    resp = make_response(content)
    resp.headers["Content-Type"] = content_type
    resp.headers["Content-Length"] = len(content)
    return resp
