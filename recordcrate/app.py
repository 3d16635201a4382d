import inspect
import logging
import sys
from urllib.parse import urlparse
from uuid import uuid4

import flask
import sentry_sdk
from flask import Flask, g
from loguru import logger
from sentry_sdk.types import Event, Hint
from werkzeug.exceptions import BadRequest, MethodNotAllowed, NotFound

from recordcrate.config import get_config
from recordcrate.database import create_tables
from recordcrate.error_handlers import (
    handle_404_not_found,
    handle_catalog_error,
    handle_configuration_error,
    handle_generic_errors,
    handle_invalid_request,
    handle_malformed_body,
    handle_method_not_allowed,
    handle_unauthorized,
)
from recordcrate.errors import (
    AuthorizationError,
    CatalogError,
    ConfigurationError,
    InvalidRequestError,
)


class InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists.
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message.
        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


# https://loguru.readthedocs.io/en/stable/api/logger.html#record
logger.remove()
logger.configure(extra={"request_id": "-"})
logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
logger.add(
    sys.stdout,
    colorize=True,
    format="<level>{level: <8}</level> "
    "| <light-blue>{extra[request_id]}</light-blue> "
    "| <yellow>{name}:{line}</yellow> "
    "| <level>{message}</level>",
)

requests_logger = logging.getLogger("requests.packages.urllib3")
requests_logger.setLevel(logging.DEBUG)
requests_logger.propagate = True

sqlalchemy_logger = logging.getLogger("sqlalchemy.engine")
sqlalchemy_logger.setLevel(logging.INFO)
sqlalchemy_logger.propagate = True


def filter_healthchecks(event: Event, _: Hint) -> Event | None:
    url_string = event.get("request", {}).get("url", "")
    parsed_url = urlparse(url_string)

    if parsed_url.path == "/health-check":
        return None

    return event


def create_app() -> Flask:
    config = get_config()  # Loads environment variables
    logger.add(
        config.log_file,
        level=logging.INFO,
        colorize=False,
        rotation="500 MB",
        retention=10,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} "
        "| {extra[request_id]} "
        "| {level: <8} | {name}:{line} | {message}",
    )

    sentry_sdk.init(
        sample_rate=0.5,
        traces_sample_rate=0.1,
        profiles_sample_rate=0.1,
        before_send_transaction=filter_healthchecks,
    )

    create_tables()

    flask_app = flask.Flask(__name__)

    @flask_app.before_request
    def before_request() -> None:
        g.logger = logger.bind(request_id=uuid4().hex[:8])

    from recordcrate.routes.catalog import catalog
    from recordcrate.routes.root import root
    from recordcrate.routes.search import search

    flask_app.register_blueprint(root)
    flask_app.register_blueprint(search)
    flask_app.register_blueprint(catalog)

    flask_app.register_error_handler(InvalidRequestError, handle_invalid_request)
    flask_app.register_error_handler(AuthorizationError, handle_unauthorized)
    flask_app.register_error_handler(ConfigurationError, handle_configuration_error)
    flask_app.register_error_handler(CatalogError, handle_catalog_error)
    flask_app.register_error_handler(BadRequest, handle_malformed_body)
    flask_app.register_error_handler(NotFound, handle_404_not_found)
    flask_app.register_error_handler(MethodNotAllowed, handle_method_not_allowed)
    flask_app.register_error_handler(Exception, handle_generic_errors)

    return flask_app
