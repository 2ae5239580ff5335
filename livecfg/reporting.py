"""
에러 리포팅 채널

리로드 실패, 코덱 생성 실패, 감시 등록 실패처럼 호스트 프로세스를
멈추면 안 되는 에러는 모두 이 채널 하나로 모입니다.
로그로 남기고, 최근 리포트를 보관하며, 등록된 리스너에 전달합니다.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from .errors import ErrorKind

logger = logging.getLogger(__name__)

# 경고 수준으로 기록하는 에러 종류 (기능 저하일 뿐 데이터 손실 없음)
WARNING_KINDS = {ErrorKind.CODEC_REGISTRATION, ErrorKind.WATCH}


@dataclass
class ErrorReport:
    """에러 리포트 한 건"""

    kind: ErrorKind
    message: str
    path: str | None = None
    error: BaseException | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ErrorReporter:
    """구조화된 에러 리포팅 채널

    사용법:
        ```python
        reporter = ErrorReporter()
        reporter.on_report(lambda report: alert(report.message))

        # 테스트에서 발생 여부 확인
        assert reporter.has_errors(ErrorKind.RELOAD)
        ```
    """

    KIND_LABELS = {
        ErrorKind.RESOLUTION: "[경로 치환 실패]",
        ErrorKind.PARSE: "[파싱 실패]",
        ErrorKind.LOAD: "[로드 실패]",
        ErrorKind.CODEC_REGISTRATION: "[코덱 등록 실패]",
        ErrorKind.WATCH: "[감시 등록 실패]",
        ErrorKind.RELOAD: "[리로드 실패]",
        ErrorKind.CONFIGURATION: "[설정 오류]",
    }

    def __init__(self, max_reports: int = 100):
        """
        Args:
            max_reports: 보관할 최근 리포트 수
        """
        self._reports: deque[ErrorReport] = deque(maxlen=max_reports)
        self._listeners: list[Callable[[ErrorReport], None]] = []
        self._lock = threading.Lock()

    def report(
        self,
        kind: ErrorKind,
        error: BaseException,
        path: str | None = None,
    ) -> ErrorReport:
        """에러 기록 및 리스너 통지

        Args:
            kind: 에러 종류
            error: 발생한 예외
            path: 관련 파일 경로 (없으면 예외의 path 속성 사용)

        Returns:
            생성된 ErrorReport
        """
        if path is None:
            path = getattr(error, "path", None)
        report = ErrorReport(
            kind=kind,
            message=str(error),
            path=str(path) if path is not None else None,
            error=error,
        )

        message = self.format_message(report)
        if kind in WARNING_KINDS:
            logger.warning(f"[ErrorReporter] {message}")
        else:
            logger.error(f"[ErrorReporter] {message}")

        with self._lock:
            self._reports.append(report)
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(report)
            except Exception as e:
                logger.error(f"[ErrorReporter] 리스너 실행 실패: {e}")

        return report

    @classmethod
    def format_message(cls, report: ErrorReport) -> str:
        """리포트 메시지 포맷팅

        Returns:
            str: 종류 라벨과 경로가 포함된 메시지
        """
        label = cls.KIND_LABELS.get(report.kind, "[분류되지 않음]")
        error_name = type(report.error).__name__ if report.error else "Error"
        location = f" ({report.path})" if report.path else ""
        return f"{label} {error_name}: {report.message}{location}"

    def on_report(self, listener: Callable[[ErrorReport], None]) -> None:
        """리포트 리스너 등록"""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[ErrorReport], None]) -> None:
        """리포트 리스너 제거"""
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def reports(self) -> list[ErrorReport]:
        """보관 중인 리포트 (오래된 순)"""
        with self._lock:
            return list(self._reports)

    def has_errors(self, kind: ErrorKind | None = None) -> bool:
        """리포트 존재 여부 (kind 지정 시 해당 종류만)"""
        with self._lock:
            if kind is None:
                return bool(self._reports)
            return any(report.kind == kind for report in self._reports)

    def clear(self) -> None:
        """리포트 초기화"""
        with self._lock:
            self._reports.clear()
