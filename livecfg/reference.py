"""
설정 파일 ↔ 타입 인스턴스 바인딩

ConfigReference 하나가 파일 하나, 노드 트리 하나, 현재 인스턴스 하나를 소유합니다.

설계 원칙:
- get()은 항상 완전히 만들어진 인스턴스만 반환 (교체는 속성 대입 한 번)
- save()와 외부 변경 리로드는 상호 배제하지 않음 (마지막 기록이 우선)
- 외부 편집이 잘못되어도 예외를 던지지 않고 이전 값을 유지
"""

import logging
import os
import stat
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Generic, TypeVar

from .errors import ErrorKind, LoadError
from .mapper import DocumentMapper
from .node_tree import NodeTree
from .reporting import ErrorReporter
from .schema import ConfigDocument, NodeStyle
from .serializers import SerializerRegistry
from .settings import StoreSettings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=ConfigDocument)


class ConfigReference(Generic[T]):
    """설정 파일 바인딩

    사용법:
        ```python
        reference = ConfigReference.load("configs/lobby1/settings.yml", ServerSettings)
        settings = reference.get()

        settings.max_players = 50
        reference.save(settings)

        reference.on_reload(lambda ref: print(ref.get().motd))
        ```
    """

    def __init__(
        self,
        path: str | Path,
        document_type: type[T],
        serializers: SerializerRegistry | None = None,
        style: NodeStyle = NodeStyle.BLOCK,
        settings: StoreSettings | None = None,
        reporter: ErrorReporter | None = None,
    ):
        self.path = Path(path)
        self.document_type = document_type
        self.style = NodeStyle(style)
        self.settings = settings or StoreSettings()
        self.reporter = reporter or ErrorReporter()
        self.serializers = serializers or SerializerRegistry(reporter=self.reporter)
        self._mapper = DocumentMapper(self.serializers)

        self._lock = threading.RLock()
        self._reload_lock = threading.Lock()
        self._tree: NodeTree = NodeTree(style=self.style, header=self.settings.header)
        self._instance: T | None = None
        self._last_written: str | None = None
        self._callbacks: list[Callable[["ConfigReference[T]"], Any]] = []
        self._watcher = None

    @classmethod
    def load(
        cls,
        path: str | Path,
        document_type: type[T],
        serializers: SerializerRegistry | None = None,
        style: NodeStyle = NodeStyle.BLOCK,
        *,
        watcher=None,
        settings: StoreSettings | None = None,
        reporter: ErrorReporter | None = None,
    ) -> "ConfigReference[T]":
        """파일 로드 (없으면 생성) 후 기본값 보충, 저장, 감시 등록

        Args:
            path: 설정 파일 경로
            document_type: 문서 타입
            serializers: 코덱 세트
            style: 노드 스타일
            watcher: 등록할 WatcherContext (None이면 감시하지 않음)

        Raises:
            LoadError: 파일/디렉토리 생성 실패, 문서 루트가 매핑이 아닌 경우
            ParseError: YAML 문법 오류
        """
        reference = cls(path, document_type, serializers, style, settings, reporter)
        reference._ensure_file()

        tree = reference._read_tree()
        instance, changed = reference._mapper.load(tree, document_type)
        if changed:
            logger.info(f"[ConfigReference] 기본값 보충: {reference.path}")

        with reference._lock:
            reference._tree = tree
            instance.bind(reference)
            reference._instance = instance

        # 보충된 기본값을 파일에 반영
        reference.save()

        if watcher is not None:
            reference.watch(watcher)

        logger.debug(f"[ConfigReference] 로드 완료: {reference.path}")
        return reference

    @classmethod
    def bind_instance(
        cls,
        path: str | Path,
        instance: T,
        serializers: SerializerRegistry | None = None,
        style: NodeStyle = NodeStyle.BLOCK,
        *,
        fresh: bool = False,
        watcher=None,
        settings: StoreSettings | None = None,
        reporter: ErrorReporter | None = None,
    ) -> "ConfigReference[T]":
        """코드에서 만든 인스턴스를 파일에 바인딩하고 저장

        Args:
            fresh: True면 기존 파일 내용을 무시하고 새 트리로 기록

        Raises:
            LoadError: 파일/디렉토리 생성 실패
            ParseError: fresh=False이고 기존 파일이 잘못된 경우
        """
        reference = cls(path, type(instance), serializers, style, settings, reporter)
        reference._ensure_file()
        if not fresh:
            reference._tree = reference._read_tree()

        reference.save(instance)

        if watcher is not None:
            reference.watch(watcher)
        return reference

    def get(self) -> T:
        """현재 인스턴스 (최신 리로드 또는 저장 값)"""
        return self._instance

    @property
    def tree(self) -> NodeTree:
        return self._tree

    def save(self, instance: T | None = None) -> None:
        """인스턴스를 트리에 기록하고 파일로 저장한 뒤 현재 인스턴스로 교체

        Args:
            instance: 저장할 인스턴스 (None이면 현재 인스턴스)

        Raises:
            TypeError: 문서 타입이 다른 인스턴스
            LoadError: 파일 쓰기 실패
        """
        with self._lock:
            target = instance if instance is not None else self._instance
            if not isinstance(target, self.document_type):
                raise TypeError(
                    f"{self.document_type.__name__} 인스턴스가 아님: {type(target).__name__}"
                )

            self._mapper.store(target, self._tree)
            text = self._tree.dump()
            self._write(text)

            target.bind(self)
            self._instance = target

        logger.debug(f"[ConfigReference] 저장 완료: {self.path}")

    def reload(self) -> bool:
        """파일 변경 시 다시 파싱하여 인스턴스 교체

        실패해도 예외를 던지지 않고 이전 인스턴스를 유지하며 ErrorReporter로 전달합니다.
        같은 파일의 리로드는 한 번에 하나씩 실행됩니다 (나중에 읽은 내용이 우선).

        Returns:
            인스턴스가 교체되었는지 여부
        """
        with self._reload_lock:
            try:
                text = self.path.read_text(encoding=self.settings.encoding)
            except (OSError, UnicodeDecodeError) as e:
                self.reporter.report(ErrorKind.RELOAD, e, self.path)
                return False

            # 자신이 기록한 내용에 대한 이벤트
            if text == self._last_written:
                logger.debug(f"[ConfigReference] 변경 없음, 리로드 생략: {self.path}")
                return False

            try:
                tree = NodeTree.parse(
                    text, self.style, self.settings.header, source=str(self.path)
                )
                instance, _ = self._mapper.load(tree, self.document_type)
            except Exception as e:
                self.reporter.report(ErrorKind.RELOAD, e, self.path)
                return False

            with self._lock:
                self._tree = tree
                instance.bind(self)
                self._instance = instance
                self._last_written = text

        logger.info(f"[ConfigReference] 리로드 완료: {self.path}")

        for callback in list(self._callbacks):
            try:
                callback(self)
            except Exception as e:
                logger.error(f"[ConfigReference] 콜백 실행 실패: {e}")

        return True

    def on_reload(self, callback: Callable[["ConfigReference[T]"], Any]) -> None:
        """리로드 콜백 등록"""
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[["ConfigReference[T]"], Any]) -> None:
        """리로드 콜백 제거"""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def watch(self, watcher) -> Any:
        """WatcherContext에 리로드 콜백 등록

        Returns:
            WatchState (등록 실패 시 FAILED, 1회 로드로 동작)
        """
        self._watcher = watcher
        return watcher.register(self.path, self.reload)

    @property
    def watch_state(self) -> Any:
        if self._watcher is None:
            return None
        return self._watcher.state_of(self.path)

    def close(self) -> None:
        """감시 해제"""
        if self._watcher is not None:
            self._watcher.unregister(self.path)
            self._watcher = None

    def _ensure_file(self) -> None:
        if self.path.is_dir():
            raise LoadError(f"설정 파일 경로가 디렉토리임: {self.path}", path=str(self.path))
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if not self.path.exists():
                self.path.touch()
                logger.info(f"[ConfigReference] 설정 파일 생성: {self.path}")
        except OSError as e:
            raise LoadError(
                f"설정 파일 생성 실패: {self.path} - {e}", path=str(self.path)
            ) from e

    def _read_tree(self) -> NodeTree:
        try:
            text = self.path.read_text(encoding=self.settings.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise LoadError(
                f"설정 파일 읽기 실패: {self.path} - {e}", path=str(self.path)
            ) from e
        return NodeTree.parse(
            text, self.style, self.settings.header, source=str(self.path)
        )

    def _write(self, text: str) -> None:
        # 임시 파일에 쓴 뒤 교체하여 리로드가 절반만 쓰인 파일을 읽지 않도록 함
        try:
            fd, temp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding=self.settings.encoding, newline="\n") as f:
                    f.write(text)
                if self.path.exists():
                    os.chmod(temp_path, stat.S_IMODE(self.path.stat().st_mode))
                os.replace(temp_path, self.path)
            except BaseException:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise
        except OSError as e:
            raise LoadError(
                f"설정 파일 쓰기 실패: {self.path} - {e}", path=str(self.path)
            ) from e

        self._last_written = text

    def __repr__(self) -> str:
        return f"ConfigReference({self.document_type.__name__}, {str(self.path)!r})"
