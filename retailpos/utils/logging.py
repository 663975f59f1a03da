"""
retailpos/utils/logging.py
──────────────────────────
Configures structured logging for production.

The Flask app logger is named after the import package ("retailpos"), so
every POS core module that logs through getLogger(__name__) propagates into
the handlers configured here.
"""
import os
import logging
from logging.handlers import RotatingFileHandler
from flask import has_request_context, request, session


class RequestFormatter(logging.Formatter):
    """
    Custom formatter that injects request info (URL, IP, user if logged in)
    into logs if context is available.
    """
    def format(self, record):
        if has_request_context():
            record.url = request.url
            record.remote_addr = request.remote_addr
            record.user_id = session.get('user_id')
        else:
            record.url = None
            record.remote_addr = None
            record.user_id = None
        return super().format(record)


def _owned(handler):
    return getattr(handler, '_retailpos_handler', False)


def setup_logging(app):
    """
    Configure rotating file logging: logs/app.log
    Max size: 5MB
    Backup count: 5 files
    Format: timestamp | level | module | ip | user | url | message
    """
    # create_app() may run many times in one process (tests); drop the
    # handlers a previous call installed on the shared package logger.
    for handler in [h for h in app.logger.handlers if _owned(h)]:
        app.logger.removeHandler(handler)

    # 1. File Logger (not under testing; skipped if the filesystem is read-only)
    if not app.config.get('TESTING'):
        try:
            log_dir = os.path.join(app.root_path, '..', 'logs')
            os.makedirs(log_dir, exist_ok=True)

            file_handler = RotatingFileHandler(
                os.path.join(log_dir, 'app.log'),
                maxBytes=5 * 1024 * 1024,
                backupCount=5
            )
            file_handler.setFormatter(RequestFormatter(
                '%(asctime)s | %(levelname)s | %(name)s | %(remote_addr)s | '
                'user=%(user_id)s | %(url)s | %(message)s'
            ))
            file_handler.setLevel(logging.INFO)
            file_handler._retailpos_handler = True
            app.logger.addHandler(file_handler)
        except OSError:
            pass  # Fallback to stdout if filesystem is read-only

    # 2. Stdout Logger (Critical for cloud logs)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s'
    ))
    stream_handler.setLevel(logging.INFO)
    stream_handler._retailpos_handler = True
    app.logger.addHandler(stream_handler)

    app.logger.setLevel(logging.INFO)
    app.logger.info("Retail POS startup")
