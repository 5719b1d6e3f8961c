import logging
import sys

from pythonjsonlogger import jsonlogger

from fundbridge.core.config import Settings

# third-party loggers that are chatty below WARNING
_QUIET = ("web3", "urllib3", "httpx")


class _ServiceFields(logging.Filter):
    def __init__(self, service: str, environment: str):
        super().__init__()
        self.service = service
        self.environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service
        record.environment = self.environment
        return True


def configure_logging(settings: Settings) -> None:
    """
    JSON lines on stdout. Every record carries service/environment;
    request-scoped fields (request_id, duration_ms) come in via `extra`.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(service)s %(environment)s %(message)s",
            rename_fields={"levelname": "level", "name": "logger"},
        )
    )
    handler.addFilter(_ServiceFields(settings.app_name, settings.environment))
    root.addHandler(handler)

    for name in ("uvicorn.access", "uvicorn.error"):
        logging.getLogger(name).setLevel(level)
    for name in _QUIET:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
