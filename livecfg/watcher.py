"""
파일 시스템 감시 기반 핫 리로드

watchdog Observer로 등록된 설정 파일의 외부 변경을 감지하고
파일별 리로드 콜백을 호출합니다.

설계 원칙:
- 경로당 등록은 하나 (재등록 시 이전 콜백 교체)
- 같은 디렉토리의 파일들은 watch 하나를 공유
- 짧은 시간의 연속 이벤트는 디바운스로 한 번의 리로드로 합침
- 감시 실패는 해당 경로만 1회 로드로 강등 (다른 경로에 영향 없음)
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .errors import ErrorKind, WatchError
from .reporting import ErrorReporter
from .settings import StoreSettings

logger = logging.getLogger(__name__)


class WatchState(str, Enum):
    """경로별 감시 상태"""

    WATCHING = "watching"
    RELOADING = "reloading"
    FAILED = "failed"  # 리로드 콜백을 받지 않음 (1회 로드만)


@dataclass
class WatchRegistration:
    """감시 등록 정보"""

    path: Path
    callback: Callable[[], Any]
    state: WatchState = WatchState.WATCHING
    timer: threading.Timer | None = None


class _EventHandler(FileSystemEventHandler):
    def __init__(self, context: "WatcherContext"):
        self.context = context

    def on_modified(self, event):
        if not event.is_directory:
            self.context.dispatch(event.src_path)

    def on_created(self, event):
        if not event.is_directory:
            self.context.dispatch(event.src_path)

    def on_moved(self, event):
        # 임시 파일 → 설정 파일 교체 저장
        if not event.is_directory:
            self.context.dispatch(event.dest_path)


class WatcherContext:
    """파일 감시 컨텍스트

    프로세스 전체가 공유하는 기본 인스턴스는 WatcherContext.default()로 얻습니다.

    사용법:
        ```python
        with WatcherContext(settings) as watcher:
            reference = ConfigReference.load(path, ServerSettings, watcher=watcher)
            ...
        # 종료 시 모든 감시 해제
        ```
    """

    _default: "WatcherContext | None" = None
    _default_lock = threading.Lock()

    def __init__(
        self,
        settings: StoreSettings | None = None,
        reporter: ErrorReporter | None = None,
        observer_factory: Callable[[], Any] | None = None,
    ):
        """
        Args:
            settings: 디바운스/감시 사용 여부 설정
            reporter: 감시 실패와 콜백 실패를 전달할 에러 채널
            observer_factory: Observer 생성 함수 (기본: watchdog Observer)
        """
        self.settings = settings or StoreSettings()
        self.reporter = reporter or ErrorReporter()
        self._observer_factory = observer_factory or Observer
        self._observer = None
        self._handler = _EventHandler(self)
        self._registrations: dict[Path, WatchRegistration] = {}
        self._watches: dict[Path, Any] = {}
        self._lock = threading.RLock()
        self._started = False
        self._degraded = False

    @classmethod
    def default(cls) -> "WatcherContext":
        """프로세스 공유 기본 컨텍스트 (최초 사용 시 생성)"""
        with cls._default_lock:
            if cls._default is None:
                cls._default = cls(StoreSettings.from_env())
                cls._default.start()
            return cls._default

    @classmethod
    def reset_default(cls) -> None:
        """기본 컨텍스트 종료 및 초기화"""
        with cls._default_lock:
            if cls._default is not None:
                cls._default.stop()
            cls._default = None

    def start(self) -> None:
        """파일 감시 시작

        Observer를 시작할 수 없으면 강등 모드로 전환합니다
        (파일은 1회 로드만 되고 리로드되지 않음).
        """
        with self._lock:
            if self._started:
                return
            self._started = True

            if not self.settings.watch_enabled:
                self._degraded = True
                logger.info("[Watcher] 파일 감시 비활성화 - 1회 로드만 수행")
                return

            try:
                observer = self._observer_factory()
                observer.start()
            except Exception as e:
                self._degraded = True
                self.reporter.report(
                    ErrorKind.WATCH,
                    WatchError(f"파일 감시 시작 실패 - 핫 리로드 비활성화: {e}"),
                )
                return

            self._observer = observer
            logger.info("[Watcher] 파일 감시 시작")

    def stop(self) -> None:
        """파일 감시 중지 및 모든 등록 해제"""
        with self._lock:
            for registration in self._registrations.values():
                if registration.timer is not None:
                    registration.timer.cancel()
            self._registrations.clear()
            self._watches.clear()

            observer = self._observer
            self._observer = None
            self._started = False
            self._degraded = False

        if observer is not None:
            observer.stop()
            observer.join(timeout=5)
            logger.info("[Watcher] 파일 감시 중지")

    def __enter__(self) -> "WatcherContext":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    @property
    def degraded(self) -> bool:
        """강등 모드 여부 (Observer 없음)"""
        return self._degraded

    def register(self, path: str | Path, callback: Callable[[], Any]) -> WatchState:
        """파일 감시 등록 (같은 경로 재등록 시 교체)

        Returns:
            WatchState.WATCHING 또는 등록 실패 시 WatchState.FAILED
        """
        path = Path(path).resolve()

        with self._lock:
            if not self._started:
                self.start()

            prior = self._registrations.pop(path, None)
            if prior is not None:
                if prior.timer is not None:
                    prior.timer.cancel()
                logger.debug(f"[Watcher] 감시 등록 교체: {path}")

            registration = WatchRegistration(path=path, callback=callback)
            self._registrations[path] = registration

            if self._observer is None:
                registration.state = WatchState.FAILED
                logger.debug(f"[Watcher] 강등 모드 - 1회 로드: {path}")
                return registration.state

            directory = path.parent
            if directory not in self._watches:
                try:
                    self._watches[directory] = self._observer.schedule(
                        self._handler, str(directory), recursive=False
                    )
                except Exception as e:
                    registration.state = WatchState.FAILED
                    self.reporter.report(
                        ErrorKind.WATCH,
                        WatchError(f"감시 등록 실패 - 1회 로드로 동작: {e}", path=str(path)),
                    )
                    return registration.state

            logger.debug(f"[Watcher] 감시 등록: {path}")
            return registration.state

    def unregister(self, path: str | Path) -> bool:
        """파일 감시 해제

        Returns:
            등록되어 있었는지 여부
        """
        path = Path(path).resolve()

        with self._lock:
            registration = self._registrations.pop(path, None)
            if registration is None:
                return False
            if registration.timer is not None:
                registration.timer.cancel()

            directory = path.parent
            still_used = any(p.parent == directory for p in self._registrations)
            watch = None if still_used else self._watches.pop(directory, None)

            if watch is not None and self._observer is not None:
                try:
                    self._observer.unschedule(watch)
                except (KeyError, OSError) as e:
                    logger.warning(f"[Watcher] 감시 해제 실패: {directory} - {e}")

        logger.debug(f"[Watcher] 감시 해제: {path}")
        return True

    def state_of(self, path: str | Path) -> WatchState | None:
        """경로의 감시 상태 (미등록이면 None)"""
        with self._lock:
            registration = self._registrations.get(Path(path).resolve())
            return registration.state if registration else None

    @property
    def registered_paths(self) -> list[Path]:
        with self._lock:
            return sorted(self._registrations)

    def dispatch(self, src_path: str | Path) -> None:
        """파일 이벤트 처리 (디바운스 후 리로드 스케줄)"""
        path = Path(src_path).resolve()

        with self._lock:
            registration = self._registrations.get(path)
            if registration is None or registration.state == WatchState.FAILED:
                return

            if registration.timer is not None:
                registration.timer.cancel()

            timer = threading.Timer(
                self.settings.debounce_seconds, self._fire, args=(registration,)
            )
            timer.daemon = True
            registration.timer = timer
            timer.start()

    def _fire(self, registration: WatchRegistration) -> None:
        with self._lock:
            # 대기 중 교체/해제된 등록
            if self._registrations.get(registration.path) is not registration:
                return
            registration.timer = None
            registration.state = WatchState.RELOADING

        logger.debug(f"[Watcher] 파일 변경 감지: {registration.path}")

        try:
            registration.callback()
        except Exception as e:
            self.reporter.report(ErrorKind.RELOAD, e, registration.path)
        finally:
            with self._lock:
                if registration.state == WatchState.RELOADING:
                    registration.state = WatchState.WATCHING
