"""
Admin API — Optimize/revert endpoints.

Blueprint: optimizer_bp
Prefix: /api
Routes:
    GET  /api/test                         # Liveness probe
    GET  /api/stats                        # Ledger statistics
    GET  /api/images?paged=1&status=...    # Paginated asset list
    GET  /api/history/<asset_id>           # Ledger entry + recent events
    POST /api/optimize/<asset_id>          # Optimize one asset
    POST /api/revert/<asset_id>            # Restore one asset from backup
    POST /api/bulk-optimize                # Optimize several assets, serially
    GET  /api/settings                     # Current optimizer settings
    POST /api/settings                     # Update optimizer settings
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request

from ..config.settings_store import SettingsError
from ..engine.service import IMAGE_STATUSES, OptimizationService

optimizer_bp = Blueprint("optimizer", __name__)

logger = logging.getLogger(__name__)

PER_PAGE = 20


def _service() -> OptimizationService:
    return current_app.config["OPTIMIZER_SERVICE"]


def _unknown_asset(asset_id: int):
    return jsonify({
        "success": False,
        "message": f"Invalid asset ID: {asset_id}",
    }), 404


# ── Info ────────────────────────────────────────────────────────────


@optimizer_bp.route("/test", methods=["GET"])
def api_test():
    return jsonify({
        "status": "API is working!",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


@optimizer_bp.route("/stats", methods=["GET"])
def api_stats():
    """Aggregate savings over optimized assets."""
    response = jsonify(_service().statistics())
    response.headers["Cache-Control"] = "public, max-age=3600"
    return response


@optimizer_bp.route("/images", methods=["GET"])
def api_images():
    """Paginated list of library assets with their ledger state."""
    paged = request.args.get("paged", 1, type=int) or 1
    status = request.args.get("status") or None
    if status is not None and status not in IMAGE_STATUSES:
        return jsonify({"error": f"status must be one of {', '.join(IMAGE_STATUSES)}"}), 400

    response = jsonify(_service().list_images(page=paged, per_page=PER_PAGE, status=status))
    response.headers["Cache-Control"] = "public, max-age=1800"
    return response


@optimizer_bp.route("/history/<int:asset_id>", methods=["GET"])
def api_history(asset_id: int):
    history = _service().history(asset_id)
    if history is None:
        return jsonify({"error": "No optimization history found"}), 404
    return jsonify(history)


# ── Optimize / revert ───────────────────────────────────────────────


@optimizer_bp.route("/optimize/<int:asset_id>", methods=["POST"])
def api_optimize(asset_id: int):
    service = _service()
    if service.get_asset(asset_id) is None:
        return _unknown_asset(asset_id)

    result = service.optimize(asset_id)
    return jsonify(result.to_wire()), 200 if result.is_success() else 400


@optimizer_bp.route("/revert/<int:asset_id>", methods=["POST"])
def api_revert(asset_id: int):
    service = _service()
    if service.get_asset(asset_id) is None:
        return _unknown_asset(asset_id)

    result = service.revert(asset_id)
    return jsonify(result.to_wire()), 200 if result.is_success() else 400


@optimizer_bp.route("/bulk-optimize", methods=["POST"])
def api_bulk_optimize():
    """Optimize the given ids one at a time."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400

    raw_ids = data.get("asset_ids", [])
    if not isinstance(raw_ids, list):
        return jsonify({"error": "asset_ids must be a list of integers"}), 400
    try:
        asset_ids = [int(i) for i in raw_ids]
    except (TypeError, ValueError):
        return jsonify({"error": "asset_ids must be a list of integers"}), 400
    if not asset_ids:
        return jsonify({"error": "No assets provided"}), 400

    results = _service().bulk_optimize(asset_ids)
    succeeded = sum(1 for r in results.values() if r.is_success())
    return jsonify({
        "success": succeeded == len(results),
        "succeeded": succeeded,
        "failed": len(results) - succeeded,
        "results": {str(k): r.to_wire() for k, r in results.items()},
    })


# ── Settings ────────────────────────────────────────────────────────


@optimizer_bp.route("/settings", methods=["GET"])
def api_get_settings():
    return jsonify(_service().settings.optimization_config().to_dict())


@optimizer_bp.route("/settings", methods=["POST"])
def api_update_settings():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"success": False, "message": "Request body must be a JSON object"}), 400
    try:
        _service().settings.update(data)
    except SettingsError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    return jsonify({
        "success": True,
        "settings": _service().settings.optimization_config().to_dict(),
    })
