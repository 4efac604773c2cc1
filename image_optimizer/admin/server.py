"""
Local Admin Server — Flask JSON API over the optimization service.

This is meant for local management of a media library.
It should NEVER be exposed to the internet: there is no authentication.
"""

from __future__ import annotations

import logging
import time
import traceback
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request

from ..config.loader import load_settings
from ..engine.service import OptimizationService, build_service
from ..logging_config import setup_logging
from .routes_optimizer import optimizer_bp

logger = logging.getLogger(__name__)


def create_app(
    service: Optional[OptimizationService] = None,
    project_root: Optional[Path] = None,
) -> Flask:
    """Create the Flask application."""
    project_root = project_root or Path(__file__).parent.parent.parent

    app = Flask(__name__)
    app.config["PROJECT_ROOT"] = project_root
    app.config["OPTIMIZER_SERVICE"] = service or build_service(load_settings(project_root))

    # ── Register Blueprints ───────────────────────────────────────
    app.register_blueprint(optimizer_bp, url_prefix="/api")   # /api/*

    # ── Error Handlers ────────────────────────────────────────────

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"success": False, "message": "Not found"}), 404

    @app.errorhandler(500)
    def internal_server_error(e):
        """Catch-all: return JSON for any unhandled 500 so clients never see raw HTML."""
        tb = traceback.format_exc()
        logger.error(
            f"Unhandled 500 on {request.method} {request.path}: {e}\n{tb}"
        )
        return jsonify({
            "success": False,
            "message": f"Internal server error: {str(e)}",
        }), 500

    # ── Request Logging ───────────────────────────────────────────

    @app.before_request
    def log_request_start():
        request._start_time = time.time()

    @app.after_request
    def log_request_end(response):
        """Log API calls with duration; polling endpoints go to DEBUG."""
        duration_ms = 0
        if hasattr(request, "_start_time"):
            duration_ms = int((time.time() - request._start_time) * 1000)

        if request.path.startswith("/api/"):
            is_poll = request.path in ("/api/test", "/api/stats")
            log_fn = logger.debug if is_poll else logger.info
            log_fn(
                f"{request.method} {request.path} → {response.status_code} ({duration_ms}ms)"
            )
        return response

    logger.info(f"Admin server initialized (project_root={project_root})")

    return app


def run_server(
    host: str = "127.0.0.1",
    port: int = 5050,
    debug: bool = False,
    project_root: Optional[Path] = None,
) -> None:
    """
    Run the admin server.

    Args:
        host: Bind address (default: localhost only)
        port: Port to run on
        debug: Enable Flask debug mode and DEBUG logging
        project_root: Root used to resolve media and data directories
    """
    setup_logging(level="DEBUG" if debug else None)

    app = create_app(project_root=project_root)
    url = f"http://{host}:{port}"

    print(f"""
╔══════════════════════════════════════════════════════════════╗
║                  IMAGE OPTIMIZER ADMIN API                   ║
╠══════════════════════════════════════════════════════════════╣
║                                                              ║
║  Local admin API running at:                                 ║
║  → {url:<54} ║
║                                                              ║
║  Press Ctrl+C to stop                                        ║
║                                                              ║
║  ⚠️  This server is for LOCAL USE ONLY                       ║
║     Never expose to the internet!                            ║
║                                                              ║
╚══════════════════════════════════════════════════════════════╝
""")

    # The reloader forks the process, which would build a second service
    app.run(host=host, port=port, debug=debug, use_reloader=False)
