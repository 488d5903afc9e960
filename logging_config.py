# logging_config.py
import logging
import logging.config
import logging.handlers
from pathlib import Path
import contextvars

# Per-request identifier, kept in a ContextVar so every log line of a request carries it
_request_id_ctx = contextvars.ContextVar("request_id", default="-")

class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id_ctx.get("-")
        return True

def set_request_id(req_id: str):
    _request_id_ctx.set(req_id)

def get_logger(name: str = __name__) -> logging.Logger:
    return logging.getLogger(name)

def build_dict_config(json_fmt: bool = False, log_dir: str = "logs") -> dict:
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    fmt = (
        '{"ts":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s",'
        '"request_id":"%(request_id)s","msg":"%(message)s"}'
        if json_fmt
        else '%(asctime)s | %(levelname)s | %(name)s | rid=%(request_id)s | %(message)s'
    )

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_id": {"()": RequestIdFilter},
        },
        "formatters": {
            "default": {
                "format": fmt,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "INFO",
                "formatter": "default",
                "filters": ["request_id"],
            },
            "file_app": {
                "class": "logging.handlers.TimedRotatingFileHandler",
                "level": "INFO",
                "formatter": "default",
                "filters": ["request_id"],
                "filename": str(Path(log_dir) / "app.log"),
                "when": "midnight",
                "interval": 1,
                "backupCount": 30,
                "encoding": "utf-8",
            },
        },
        "loggers": {
            # root logger: whole gateway
            "": {
                "level": "INFO",
                "handlers": ["console", "file_app"],
            },
            # request headers (incl. the API key) must never be logged at DEBUG
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
            "google_genai": {"level": "WARNING"},
            # keep uvicorn in line with the app
            "uvicorn": {"level": "INFO"},
            "uvicorn.error": {"level": "INFO"},
            "uvicorn.access": {"level": "INFO"},
        },
    }

def setup_logging(json_fmt: bool = False, log_dir: str = "logs"):
    logging.config.dictConfig(build_dict_config(json_fmt=json_fmt, log_dir=log_dir))
