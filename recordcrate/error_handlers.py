from uuid import uuid4

from flask import Response, jsonify, request
from loguru import logger
from werkzeug.exceptions import BadRequest, MethodNotAllowed, NotFound

from recordcrate.errors import (
    AuthorizationError,
    CatalogError,
    ConfigurationError,
    InvalidRequestError,
)


def _error(message: str, status: int) -> tuple[Response, int]:
    return jsonify({"error": message}), status


def handle_invalid_request(error: InvalidRequestError) -> tuple[Response, int]:
    logger.debug("Rejected request to {}: {}", request.path, error)
    return _error(str(error), 400)


def handle_malformed_body(_: BadRequest) -> tuple[Response, int]:
    logger.debug("Malformed request body sent to {}", request.path)
    return _error("Invalid request body", 400)


def handle_unauthorized(_: AuthorizationError) -> tuple[Response, int]:
    logger.warning("Unauthorized request to {}", request.path)
    return _error("Unauthorized", 401)


def handle_configuration_error(error: ConfigurationError) -> tuple[Response, int]:
    logger.warning("Provider unavailable for {}: {}", request.path, error)
    return _error(str(error), 501)


def handle_catalog_error(error: CatalogError) -> tuple[Response, int]:
    logger.error("Request to {} failed: {}", request.path, error)
    return _error(str(error), 500)


def handle_generic_errors(error: Exception) -> tuple[Response, int]:
    error_code = uuid4()
    try:
        error.add_note(f"Error code: {error_code}")
        logger.exception(error)
    except Exception:  # noqa: BLE001
        logger.exception("Unexpected exception while handling generic error")
    finally:
        return _error(  # noqa: B012
            f"Internal server error ({str(error_code)[24:]})", 500
        )


def handle_404_not_found(_: NotFound) -> tuple[Response, int]:
    logger.debug("Unknown page requested: {}", request.path)
    return _error("Not found", 404)


def handle_method_not_allowed(_: MethodNotAllowed) -> tuple[Response, int]:
    return _error("Method not allowed", 405)
