"""Process-wide logging with an explicit init/teardown lifecycle.

Handlers do not share a logger object; each request gets its own
``LoggerAdapter`` bound to the request id assigned in ``before_request``.
"""
import logging
import secrets
import time

from flask import g, has_request_context, request

LOGGER_NAME = "jobbooster"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"

_handler = None


class RequestIdFilter(logging.Filter):
    def filter(self, record):
        if not hasattr(record, "request_id"):
            record.request_id = g.get("request_id", "-") if has_request_context() else "-"
        return True


def new_request_id():
    return f"req_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def init_logging(app):
    """Install the jobbooster handler once and hook request bookkeeping."""
    global _handler

    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        _handler.addFilter(RequestIdFilter())
        package_logger.addHandler(_handler)
        package_logger.propagate = False

    @app.before_request
    def assign_request_id():
        g.request_id = new_request_id()
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        started = g.get("request_started")
        duration_ms = int((time.perf_counter() - started) * 1000) if started else 0
        response.headers["X-Request-Id"] = g.get("request_id", "-")
        logging.getLogger(f"{LOGGER_NAME}.http").info(
            "%s %s -> %s (%dms)", request.method, request.path, response.status_code, duration_ms
        )
        return response


def teardown_logging():
    global _handler

    if _handler is not None:
        package_logger = logging.getLogger(LOGGER_NAME)
        package_logger.removeHandler(_handler)
        package_logger.propagate = True
        _handler.close()
        _handler = None


def request_logger(name):
    """Logger bound to the current request id."""
    request_id = g.get("request_id", "-") if has_request_context() else "-"
    return logging.LoggerAdapter(logging.getLogger(name), {"request_id": request_id})


def current_request_id():
    return g.get("request_id") if has_request_context() else None
