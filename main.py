from flask import Flask, request, jsonify
from datetime import datetime, timezone
import logging

from flask_compress import Compress

import config

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Reduce werkzeug logging for health checks
logging.getLogger('werkzeug').setLevel(logging.ERROR)
logging.getLogger('httpx').setLevel(logging.ERROR)  # supabase-py request lines

app = Flask(__name__)
app.secret_key = config.SECRET_KEY

# Enable gzip compression
compress = Compress()
compress.init_app(app)

# Space logos arrive inline as base64
app.config['MAX_CONTENT_LENGTH'] = 8 * 1024 * 1024
app.config['JSON_SORT_KEYS'] = False


@app.after_request
def add_cors_headers(response):
    origin = request.headers.get('Origin')
    if origin and origin in config.ALLOWED_ORIGINS:
        response.headers['Access-Control-Allow-Origin'] = origin
        response.headers['Access-Control-Allow-Credentials'] = 'true'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, DELETE, OPTIONS'
        response.headers['Vary'] = 'Origin'
    return response


# Initialize Wallet Auth
from wallet_auth import init_wallet_auth
if not init_wallet_auth(app):
    logger.warning("⚠️ Wallet Auth initialization failed")

# Initialize User Profiles, XP and Leaderboard
from user_profiles import init_user_profiles
if not init_user_profiles(app):
    logger.warning("⚠️ User Profiles initialization failed")

# Initialize Builder Spaces
from builder_spaces import init_builder_spaces
if not init_builder_spaces(app):
    logger.warning("⚠️ Builder Spaces initialization failed")

# Initialize Quest Board
from quest_board import init_quest_board
if not init_quest_board(app):
    logger.error("❌ Quest Board initialization failed")

# Initialize Builder Analytics
logger.info("📊 Initializing Builder Analytics...")
from builder_analytics import init_builder_analytics
if not init_builder_analytics(app):
    logger.error("❌ Builder Analytics initialization failed")


@app.route("/health")
def health_check():
    """Health check endpoint for deployment"""
    return jsonify({
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }), 200


@app.route("/api")
def api_status():
    return jsonify({
        "status": "online",
        "service": "TrustQuests API",
        "endpoints": [
            "/api/auth",
            "/api/users",
            "/api/leaderboard",
            "/api/spaces",
            "/api/quests",
            "/api/quest-drafts",
            "/api/builder-analytics",
        ],
    })


@app.errorhandler(404)
def not_found(e):
    return jsonify({"error": "Route not found"}), 404


@app.errorhandler(500)
def internal_error(e):
    logger.error(f"❌ Unhandled error: {e}")
    return jsonify({"error": "Internal server error"}), 500


if __name__ == "__main__":
    logger.info("🚀 Starting TrustQuests API...")
    logger.info(f"🌐 Starting Flask server on http://0.0.0.0:{config.PORT}")
    app.run(host="0.0.0.0", port=config.PORT, debug=False, threaded=True, use_reloader=False)
