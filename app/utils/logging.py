"""
app/utils/logging.py
───────────────────
Configures logging for the gift reconciliation service.
"""
import os
import logging
from logging.handlers import RotatingFileHandler
from flask import has_request_context, request


class RequestFormatter(logging.Formatter):
    """
    Custom formatter that injects request info (IP, URL) into logs
    if a request context is available.
    """
    def format(self, record):
        if has_request_context():
            record.url = request.url
            record.remote_addr = request.remote_addr
        else:
            record.url = None
            record.remote_addr = None
        return super().format(record)


def setup_logging(app):
    """
    Configure logging for the app and the `app.*` library loggers.

    File:   logs/app.log, 5MB x 5 backups (skipped when LOG_TO_FILE is off
            or the filesystem is read-only)
    Stdout: always on
    Format: timestamp | level | module | message
    """
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)

    # app.logger is the "app" logger; module loggers under app.* propagate to it.
    # Cleared first so repeated create_app() calls do not stack handlers.
    app.logger.handlers.clear()
    # 1. File Logger
    if app.config.get('LOG_TO_FILE', True):
        try:
            log_dir = os.path.join(app.root_path, '..', 'logs')
            os.makedirs(log_dir, exist_ok=True)

            file_handler = RotatingFileHandler(
                os.path.join(log_dir, 'app.log'),
                maxBytes=5 * 1024 * 1024,
                backupCount=5
            )
            file_handler.setFormatter(RequestFormatter(
                '%(asctime)s | %(levelname)s | %(name)s | %(remote_addr)s | %(url)s | %(message)s'
            ))
            file_handler.setLevel(level)
            app.logger.addHandler(file_handler)
        except OSError:
            app.logger.warning("File logging disabled: log directory is not writable")

    # 2. Stdout Logger
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
    ))
    stream_handler.setLevel(level)
    app.logger.addHandler(stream_handler)
    app.logger.setLevel(level)

    app.logger.info("Gift reconciliation service startup")
