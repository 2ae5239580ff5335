"""
디렉토리 단위 설정 로더

디렉토리의 모든 파일(하위 디렉토리 포함)을 같은 문서 타입으로 로드합니다.
로드 전에 기본 템플릿(DefaultConfig) 파일이 없으면 생성합니다.

주의:
    파일 하나라도 로드에 실패하면 전체 로드가 실패합니다 (부분 결과 없음).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Generic, Iterator, TypeVar

from .errors import ConfigStoreError, LoadError
from .reference import ConfigReference
from .reporting import ErrorReporter
from .schema import ConfigDocument, NodeStyle
from .serializers import SerializerRegistry
from .settings import StoreSettings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=ConfigDocument)


@dataclass(frozen=True)
class DefaultConfig(Generic[T]):
    """디렉토리 기본 템플릿

    Attributes:
        file_name: 디렉토리 기준 파일 이름 (하위 경로 허용)
        factory: 기본 인스턴스 생성 함수
        replace_existing: True면 기존 파일을 덮어씀
    """

    file_name: str
    factory: Callable[[], T]
    replace_existing: bool = False

    @classmethod
    def of(cls, file_name: str, instance: T, replace_existing: bool = False) -> "DefaultConfig[T]":
        """인스턴스로 기본 템플릿 생성"""
        return cls(file_name, lambda: instance, replace_existing)


class DirectoryLoader:
    """디렉토리 로더

    사용법:
        ```python
        loader = DirectoryLoader(serializers, watcher=watcher)
        references = loader.load(
            "configs/rewards",
            RewardPool,
            [DefaultConfig("daily.yml", RewardPool, replace_existing=False)],
        )
        pools = [reference.get() for reference in references]
        ```
    """

    def __init__(
        self,
        serializers: SerializerRegistry | None = None,
        style: NodeStyle = NodeStyle.BLOCK,
        *,
        watcher=None,
        settings: StoreSettings | None = None,
        reporter: ErrorReporter | None = None,
    ):
        self.settings = settings or StoreSettings()
        self.reporter = reporter or ErrorReporter()
        self.serializers = serializers or SerializerRegistry(reporter=self.reporter)
        self.style = NodeStyle(style)
        self.watcher = watcher

    def load(
        self,
        directory: str | Path,
        document_type: type[T],
        defaults: list[DefaultConfig[T]] | tuple = (),
    ) -> list[ConfigReference[T]]:
        """디렉토리 로드

        Args:
            directory: 대상 디렉토리 (없으면 생성)
            document_type: 문서 타입
            defaults: 기본 템플릿 목록

        Returns:
            디렉토리 순회 순서(이름순)의 ConfigReference 목록

        Raises:
            LoadError: 경로가 디렉토리가 아니거나 파일 로드 실패
            ParseError: 파일 하나라도 YAML 문법 오류
        """
        directory = Path(directory)
        self._ensure_directory(directory)
        self.install_defaults(directory, document_type, defaults)

        references: list[ConfigReference[T]] = []
        path = directory
        try:
            for path in self.iter_files(directory):
                references.append(
                    ConfigReference.load(
                        path,
                        document_type,
                        self.serializers,
                        self.style,
                        watcher=self.watcher,
                        settings=self.settings,
                        reporter=self.reporter,
                    )
                )
        except BaseException as e:
            # 이미 등록한 감시를 해제하고 전체 실패
            for reference in references:
                reference.close()
            logger.error(f"[DirectoryLoader] 디렉토리 로드 실패: {path} - {e}")
            if isinstance(e, ConfigStoreError) or not isinstance(e, Exception):
                raise
            raise LoadError(
                f"설정 파일 로드 실패: {path} - {type(e).__name__}: {e}", path=str(path)
            ) from e

        logger.info(
            f"[DirectoryLoader] 디렉토리 로드 완료: {directory}, {len(references)}개 파일"
        )
        return references

    def install_defaults(
        self,
        directory: str | Path,
        document_type: type[T],
        defaults: list[DefaultConfig[T]] | tuple = (),
    ) -> list[Path]:
        """기본 템플릿 파일 생성

        Returns:
            새로 기록한 파일 경로 목록

        Raises:
            LoadError: 팩토리가 문서 타입이 아닌 값을 만든 경우, 파일 쓰기 실패
        """
        directory = Path(directory)
        written: list[Path] = []

        for default in defaults:
            path = directory / default.file_name

            if path.exists() and not default.replace_existing:
                logger.debug(f"[DirectoryLoader] 기본 파일 유지: {path}")
                continue

            instance = default.factory()
            if not isinstance(instance, document_type):
                raise LoadError(
                    f"기본 템플릿 '{default.file_name}'이 {document_type.__name__} "
                    f"인스턴스를 만들지 않음: {type(instance).__name__}",
                    path=str(path),
                )

            ConfigReference.bind_instance(
                path,
                instance,
                self.serializers,
                self.style,
                fresh=True,
                settings=self.settings,
                reporter=self.reporter,
            )
            written.append(path)
            logger.info(f"[DirectoryLoader] 기본 파일 기록: {path}")

        return written

    @classmethod
    def iter_files(cls, directory: Path) -> Iterator[Path]:
        """하위 디렉토리를 포함한 모든 파일 (디렉토리별 이름순)"""
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if entry.is_dir():
                yield from cls.iter_files(entry)
            elif entry.is_file():
                yield entry

    @staticmethod
    def _ensure_directory(directory: Path) -> None:
        if directory.exists() and not directory.is_dir():
            raise LoadError(
                f"디렉토리가 아닌 경로: {directory}", path=str(directory)
            )
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LoadError(
                f"디렉토리 생성 실패: {directory} - {e}", path=str(directory)
            ) from e
