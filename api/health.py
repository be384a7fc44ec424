from importlib.metadata import PackageNotFoundError, version

from flask import Blueprint

bp = Blueprint("health", __name__)

try:
    VERSION = version("credential-service")
except PackageNotFoundError:
    # running from a source checkout that was never installed
    VERSION = "0+unknown"


@bp.get("/health")
def health():
    """
    Health check
    ---
    tags:
      - Health
    responses:
      200:
        description: API is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            version:
              type: string
              example: 1.0.0
    """
    return {"status": "ok", "version": VERSION}, 200
