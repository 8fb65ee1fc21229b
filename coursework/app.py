#!/usr/bin/env python3
"""
Coursework Portal - LMS assignment viewer and grading front end
===============================================================
Run: python3 -m coursework.app
Then open: http://localhost:3000
"""

import logging

from flask import Flask, jsonify
from flask_cors import CORS

from coursework.config import config
from coursework.auth import init_auth
from coursework.routes import register_routes
from coursework.services.draft_store import JsonFileStore

logger = logging.getLogger(__name__)


def create_app(store=None, client_factory=None):
    """
    Build the Flask app.

    store defaults to the JSON file configured by COURSEWORK_STORAGE_FILE;
    client_factory (token -> LMS client) defaults to LMSClient.
    """
    logging.basicConfig(
        level=getattr(logging, str(config.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(__name__)
    CORS(app)

    # Auth hook must be registered before the blueprints
    init_auth(app)

    if store is None:
        store = JsonFileStore(config.storage_file)
    register_routes(app, store, client_factory)

    @app.route('/api/health')
    def health():
        return jsonify({"status": "ok", "lms_api_url": config.lms_api_url})

    return app


if __name__ == '__main__':
    app = create_app()

    print()
    print("+" + "=" * 50 + "+")
    print("|  Coursework Portal                               |")
    print("+" + "=" * 50 + "+")
    print(f"|  Listening on http://{config.host}:{config.port}".ljust(51) + "|")
    print(f"|  LMS API: {config.lms_api_url}".ljust(51) + "|")
    print("|  Press Ctrl+C to stop                            |")
    print("+" + "=" * 50 + "+")
    print()

    app.run(host=config.host, port=config.port, debug=config.debug)
