"""
Minimal Flask service wired to a logtee pipeline.

Every request is logged to stderr and, when LOGTEE_REMOTE_ENDPOINT is
set, shipped in batches to the collector. The pipeline drains on exit.

Usage:
    python3 app.py
    LOGTEE_REMOTE_ENDPOINT=localhost:4318/v1/logs LOGTEE_INSECURE_TRANSPORT=1 python3 app.py
    curl localhost:7070/health
"""

import logging
import os

from flask import Flask, jsonify

from logtee import build_pipeline, load_config
from logtee.flask_middleware import request_logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

config = load_config()
pipeline = build_pipeline(config, register_atexit=True)

app = Flask(__name__)
request_logging(app, pipeline.logger)


@app.route("/health")
def health():
    return jsonify({"status": "ok"})


if __name__ == "__main__":
    if pipeline.is_local_only:
        logger.info("No collector configured, logging to stderr only")
    else:
        logger.info("Exporting to %s", config.endpoint_url)
    app.run(port=int(os.environ.get("PORT", "7070")), debug=False)
