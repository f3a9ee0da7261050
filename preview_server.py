#!/usr/bin/env python3
"""Preview server - Flask app serving a rendered site straight from memory.

Nothing is written to disk: the pages dict from site_renderer.render_site()
is served as-is. Example files are served from example_root under
/_examples/, so render the preview with RenderOptions(example_url=EXAMPLE_URL).

Usage: catalog-tool serve [--port 5050] [--open]
Opens: http://localhost:5050
"""

import logging
import mimetypes
import os
import webbrowser
from threading import Timer

from flask import Flask, Response, abort, jsonify, redirect, send_from_directory

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5050
EXAMPLE_URL = "/_examples"


def create_app(pages: dict, example_root=None) -> Flask:
    """Flask app over a {relative path: content} mapping."""
    app = Flask(__name__)
    app.config["PAGES"] = dict(pages)
    app.config["EXAMPLE_ROOT"] = os.path.abspath(example_root) if example_root is not None else None

    @app.route("/")
    def index():
        return redirect("/index.html")

    @app.route("/api/pages")
    def api_pages():
        """List of served paths, in render order."""
        return jsonify(list(app.config["PAGES"]))

    @app.route(f"{EXAMPLE_URL}/<path:rel>")
    def example(rel):
        if app.config["EXAMPLE_ROOT"] is None:
            abort(404)
        # send_from_directory refuses paths that leave the directory
        return send_from_directory(app.config["EXAMPLE_ROOT"], rel, mimetype="text/plain")

    @app.route("/<path:rel>")
    def page(rel):
        content = app.config["PAGES"].get(rel)
        if content is None:
            abort(404)
        mimetype = mimetypes.guess_type(rel)[0] or "text/plain"
        return Response(content, mimetype=mimetype)

    return app


def run_preview(pages: dict, example_root=None, port: int = DEFAULT_PORT, open_browser: bool = False):
    app = create_app(pages, example_root)
    url = f"http://localhost:{port}/index.html"
    if open_browser:
        # let Flask bind first
        Timer(1.5, webbrowser.open, args=(url,)).start()
    logger.info("Preview at %s (%d pages)", url, len(pages))
    try:
        app.run(host="127.0.0.1", port=port, debug=False)
    except KeyboardInterrupt:
        logger.info("Preview stopped.")
