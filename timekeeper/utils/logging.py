"""로깅 설정 모듈.

Logging configuration for the timekeeper service.
Console output always; WARNING+ records are forwarded to Axiom when configured.
"""

import logging
import sys

from axiom_py import Client as AxiomClient

from timekeeper.config import settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class AxiomLogHandler(logging.Handler):
    """로그 레코드를 Axiom 데이터셋으로 전송하는 핸들러.

    Ships log records to an Axiom dataset. Used for scheduler output, which
    never passes through the HTTP middleware.
    """

    def __init__(self, client: AxiomClient, dataset: str, level: int = logging.WARNING) -> None:
        super().__init__(level)
        self._client = client
        self._dataset = dataset

    def emit(self, record: logging.LogRecord) -> None:
        event = {
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.exc_info:
            event["exception"] = self.format(record)
        try:
            self._client.ingest_events(self._dataset, [event])
        except Exception:
            self.handleError(record)


def setup_logging() -> None:
    """루트 로거 구성 — Configure root logging from settings.LOG_LEVEL."""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.AXIOM_API_TOKEN and settings.AXIOM_DATASET:
        handlers.append(
            AxiomLogHandler(AxiomClient(token=settings.AXIOM_API_TOKEN), settings.AXIOM_DATASET)
        )

    logging.basicConfig(
        level=log_level,
        format=_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
    )

    # 서드파티 로그 레벨: Quiet noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosmtplib").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging configured: level=%s", settings.LOG_LEVEL)