"""
설정 로드 진입점

호스트 코드는 ConfigFactory를 통해 문서 타입 단위로 설정을 로드합니다.
경로 템플릿, 노드 스타일, 커스텀 코덱은 DocumentRegistry에 미리 등록합니다.

사용법:
    ```python
    factory = ConfigFactory(registry)

    settings = factory.load_single(ServerSettings, server="lobby1")
    pools = factory.load_directory(
        RewardPool, "configs/rewards", DefaultConfig("daily.yml", RewardPool)
    )
    factory.save_as("configs/generated/custom.yml", RewardPool(name="custom"))

    # 앱 종료 시
    factory.close()
    ```
"""

import logging
import threading
from pathlib import Path
from typing import Any, TypeVar

from .directory import DefaultConfig, DirectoryLoader
from .errors import LoadError
from .path_utils import PathResolver, Placeholder
from .reference import ConfigReference
from .reporting import ErrorReporter
from .schema import ConfigDocument, DocumentRegistry, DocumentSpec
from .serializers import SerializerRegistry
from .settings import StoreSettings
from .watcher import WatcherContext

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=ConfigDocument)

# 프로세스 기본 등록 테이블
default_registry = DocumentRegistry()


class ConfigFactory:
    """설정 로드/저장 팩토리"""

    def __init__(
        self,
        registry: DocumentRegistry | None = None,
        watcher: WatcherContext | None = None,
        settings: StoreSettings | None = None,
        reporter: ErrorReporter | None = None,
        resolver: PathResolver | None = None,
    ):
        """
        Args:
            registry: 문서 타입 등록 테이블 (기본: default_registry)
            watcher: 파일 감시 컨텍스트 (기본: 이 팩토리 전용 컨텍스트)
            settings: 저장소 설정 (기본: 환경변수)
            reporter: 에러 채널
            resolver: 경로 템플릿 치환기
        """
        self.settings = settings or StoreSettings.from_env()
        self.reporter = reporter or ErrorReporter()
        self.registry = registry if registry is not None else default_registry
        self.resolver = resolver or PathResolver()

        self._owns_watcher = watcher is None
        self.watcher = watcher or WatcherContext(self.settings, self.reporter)

        self._serializers: dict[type, SerializerRegistry] = {}
        self._references: dict[Path, ConfigReference] = {}
        self._lock = threading.Lock()

    def load_single(
        self,
        document_type: type[T],
        *placeholders: Placeholder,
        **substitutions: Any,
    ) -> T:
        """등록된 경로 템플릿으로 단일 설정 로드

        Raises:
            LoadError: 경로 템플릿 미등록, 로드 실패
            ResolutionError: 경로 치환 실패
            ParseError: YAML 문법 오류
        """
        return self.load_reference(document_type, *placeholders, **substitutions).get()

    def load_reference(
        self,
        document_type: type[T],
        *placeholders: Placeholder,
        **substitutions: Any,
    ) -> ConfigReference[T]:
        """load_single과 같지만 ConfigReference 반환"""
        spec = self.registry.get(document_type)
        if not spec.path:
            raise LoadError(
                f"{document_type.__name__} 설정을 로드할 수 없음 - 경로 템플릿이 등록되지 않음"
            )

        path = self.resolver.resolve(spec.path, *placeholders, **substitutions)
        reference = ConfigReference.load(
            path,
            document_type,
            self._serializers_for(spec),
            spec.style,
            watcher=self.watcher,
            settings=self.settings,
            reporter=self.reporter,
        )
        self._track([reference])
        return reference

    def load_directory(
        self,
        document_type: type[T],
        directory: str | Path,
        *items: DefaultConfig[T] | Placeholder,
        **substitutions: Any,
    ) -> list[T]:
        """디렉토리의 모든 파일을 문서 타입으로 로드

        위치 인자로 DefaultConfig와 Placeholder를 함께 받습니다.
        디렉토리 경로의 플레이스홀더는 Placeholder 또는 키워드 인자로 치환합니다.
        파일 하나라도 실패하면 예외가 발생하고 결과는 반환되지 않습니다.
        """
        references = self.load_directory_references(
            document_type, directory, *items, **substitutions
        )
        return [reference.get() for reference in references]

    def load_directory_references(
        self,
        document_type: type[T],
        directory: str | Path,
        *items: DefaultConfig[T] | Placeholder,
        **substitutions: Any,
    ) -> list[ConfigReference[T]]:
        """load_directory와 같지만 ConfigReference 목록 반환"""
        defaults = [item for item in items if isinstance(item, DefaultConfig)]
        placeholders = [item for item in items if isinstance(item, Placeholder)]
        unknown = [item for item in items if not isinstance(item, (DefaultConfig, Placeholder))]
        if unknown:
            raise TypeError(
                f"DefaultConfig 또는 Placeholder가 아닌 인자: {type(unknown[0]).__name__}"
            )

        spec = self.registry.get(document_type)
        resolved = self.resolver.resolve(str(directory), *placeholders, **substitutions)

        loader = DirectoryLoader(
            self._serializers_for(spec),
            spec.style,
            watcher=self.watcher,
            settings=self.settings,
            reporter=self.reporter,
        )
        references = loader.load(resolved, document_type, list(defaults))
        self._track(references)
        return references

    def save_as(self, path: str | Path, instance: ConfigDocument) -> Path:
        """코드에서 만든 인스턴스를 지정 경로에 저장하고 바인딩

        load_single/load_directory로 로드한 설정에는 instance.save()를 사용합니다.

        Returns:
            저장된 파일 경로
        """
        spec = self.registry.get(type(instance))
        reference = ConfigReference.bind_instance(
            path,
            instance,
            self._serializers_for(spec),
            spec.style,
            watcher=self.watcher,
            settings=self.settings,
            reporter=self.reporter,
        )
        self._track([reference])
        return reference.path

    def reference_of(self, instance: ConfigDocument) -> ConfigReference | None:
        """인스턴스가 바인딩된 ConfigReference"""
        return instance.reference

    @property
    def references(self) -> list[ConfigReference]:
        with self._lock:
            return list(self._references.values())

    def close(self) -> None:
        """모든 감시 해제 (전용 감시 컨텍스트는 종료)"""
        with self._lock:
            references = list(self._references.values())
            self._references.clear()

        for reference in references:
            reference.close()

        if self._owns_watcher:
            self.watcher.stop()

    def __enter__(self) -> "ConfigFactory":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _serializers_for(self, spec: DocumentSpec) -> SerializerRegistry:
        # 문서 타입별 1회 생성 (코덱 생성 실패도 1회만 리포트)
        with self._lock:
            serializers = self._serializers.get(spec.document_type)
            if serializers is None:
                serializers = SerializerRegistry(spec.codecs, reporter=self.reporter)
                self._serializers[spec.document_type] = serializers
            return serializers

    def _track(self, references: list[ConfigReference]) -> None:
        with self._lock:
            for reference in references:
                self._references[reference.path.resolve()] = reference


_default_factory: ConfigFactory | None = None
_default_factory_lock = threading.Lock()


def get_factory() -> ConfigFactory:
    """프로세스 공유 기본 팩토리 (default_registry, WatcherContext.default())"""
    global _default_factory
    with _default_factory_lock:
        if _default_factory is None:
            _default_factory = ConfigFactory(
                default_registry, watcher=WatcherContext.default()
            )
        return _default_factory


def load_single(document_type: type[T], *placeholders: Placeholder, **substitutions: Any) -> T:
    """기본 팩토리로 단일 설정 로드"""
    return get_factory().load_single(document_type, *placeholders, **substitutions)


def load_directory(
    document_type: type[T],
    directory: str | Path,
    *items: DefaultConfig[T] | Placeholder,
    **substitutions: Any,
) -> list[T]:
    """기본 팩토리로 디렉토리 로드"""
    return get_factory().load_directory(document_type, directory, *items, **substitutions)


def save_as(path: str | Path, instance: ConfigDocument) -> Path:
    """기본 팩토리로 인스턴스 저장"""
    return get_factory().save_as(path, instance)
