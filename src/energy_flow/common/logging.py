"""
구조화 로깅 모듈

loguru 위에 코어 공통 로그 설정을 얹습니다.

- 콘솔(컬러) 또는 JSON(orjson) 출력
- log_context()로 묶은 구간의 trace_id / module_name / flow_id 자동 첨부
- 키워드 인자는 메시지 포맷이 아니라 extra 필드로 기록
"""

from __future__ import annotations

import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from functools import lru_cache
from typing import Any, Iterator

import orjson
from loguru import logger

# 현재 실행 흐름의 로그 컨텍스트 (부팅 trace, 로드 중인 모듈, 처리 중인 흐름)
_context: ContextVar[dict[str, str]] = ContextVar("energy_flow_log_context", default={})

_CONTEXT_STYLES = (
    ("trace_id", "yellow", "trace"),
    ("module_name", "magenta", "module"),
    ("flow_id", "blue", "flow"),
)

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[logger_name]}</cyan>:<cyan>{line}</cyan> | "
    "{extra[context_tag]}"
    "<level>{message}</level>"
)

_VALID_LEVELS = frozenset({"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"})


def new_trace_id() -> str:
    """부팅 단위 trace_id (12자리 hex)"""
    return uuid.uuid4().hex[:12]


def current_context() -> dict[str, str]:
    return dict(_context.get())


@contextmanager
def log_context(**values: str | None) -> Iterator[None]:
    """
    with 블록 안에서 기록되는 로그에 컨텍스트 필드를 붙입니다.

    None 값은 해당 필드를 제거합니다.

    Example:
        >>> with log_context(module_name="charts"):
        ...     logger.info("차트 모듈 로드")
    """
    merged = {**_context.get(), **values}
    token = _context.set({k: v for k, v in merged.items() if v is not None})
    try:
        yield
    finally:
        _context.reset(token)


def _patch(record: dict[str, Any]) -> None:
    """모든 레코드에 컨텍스트와 콘솔용 태그를 채웁니다."""
    extra = record["extra"]
    for key, value in _context.get().items():
        extra.setdefault(key, value)
    extra.setdefault("logger_name", record["name"])

    tags = [
        f"<{color}>{label}={extra[key]}</{color}>"
        for key, color, label in _CONTEXT_STYLES
        if key in extra
    ]
    extra["context_tag"] = " ".join(tags) + " | " if tags else ""


def _json_format(record: dict[str, Any]) -> str:
    """
    JSON 한 줄 포맷터

    loguru가 반환 문자열을 다시 포맷하므로 직렬화 결과는 extra에 두고 참조만 반환합니다.
    """
    extra = record["extra"]
    entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(timespec="milliseconds"),
        "level": record["level"].name,
        "logger": extra.get("logger_name", record["name"]),
        "message": record["message"],
    }
    entry.update(
        (k, v) for k, v in extra.items()
        if k not in ("logger_name", "context_tag", "_json")
    )
    if record["exception"] is not None:
        exc_type, exc_value, _ = record["exception"]
        entry["exception"] = {
            "type": exc_type.__name__ if exc_type else None,
            "value": str(exc_value) if exc_value else None,
        }

    extra["_json"] = orjson.dumps(entry, default=str).decode("utf-8")
    return "{extra[_json]}\n"


def configure_logging(
    level: str = "INFO",
    json_output: bool | None = None,
    log_file: str | None = None,
) -> None:
    """
    로깅을 (재)설정합니다.

    환경변수 LOG_LEVEL, LOG_FORMAT(json|console), LOG_FILE가 있으면 인자보다 우선합니다.
    출력은 stderr로만 보냅니다.
    """
    log_level = os.getenv("LOG_LEVEL", level).upper()
    if log_level not in _VALID_LEVELS:
        log_level = "INFO"
    if json_output is None:
        json_output = os.getenv("LOG_FORMAT", "console").lower() == "json"
    log_file = os.getenv("LOG_FILE", log_file or "") or None

    handlers: list[dict[str, Any]] = [
        {"sink": sys.stderr, "level": log_level, "format": _json_format}
        if json_output
        else {"sink": sys.stderr, "level": log_level, "format": _CONSOLE_FORMAT, "colorize": True}
    ]
    if log_file:
        handlers.append({
            "sink": log_file,
            "level": log_level,
            "format": _json_format,
            "rotation": "50 MB",
            "retention": "7 days",
            "compression": "gz",
        })

    logger.configure(handlers=handlers, patcher=_patch)
    logger.debug(f"로깅 설정: level={log_level}, json={json_output}, file={log_file}")


class ContextLogger:
    """
    이름이 붙은 로거

    `logger.info("메시지", key=value)` 형태의 키워드 인자를 extra 필드로 남깁니다.
    메시지 문자열은 다시 포맷하지 않으므로 중괄호가 있어도 안전합니다.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._logger = logger.bind(logger_name=name)

    def _log(self, level: str, message: str, fields: dict[str, Any], exception: bool = False) -> None:
        self._logger.bind(**fields).opt(depth=2, exception=exception).log(level, message)

    def debug(self, message: str, **fields: Any) -> None:
        self._log("DEBUG", message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._log("INFO", message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log("WARNING", message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._log("ERROR", message, fields)

    def exception(self, message: str, **fields: Any) -> None:
        """현재 처리 중인 예외의 traceback과 함께 ERROR로 기록합니다."""
        self._log("ERROR", message, fields, exception=True)


@lru_cache(maxsize=None)
def get_logger(name: str) -> ContextLogger:
    """
    모듈별 로거를 반환합니다.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("모듈 로드", module_name="charts")
    """
    return ContextLogger(name)


# 임포트 시 기본 설정. 호스트 애플리케이션은 configure_logging()으로 다시 설정할 수 있음
if not os.getenv("ENERGY_FLOW_SKIP_DEFAULT_LOGGING"):
    configure_logging()
