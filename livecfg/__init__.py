"""
livecfg - YAML 설정 파일 라이브 바인딩 저장소

파일 ↔ 타입 인스턴스 동기화, 외부 변경 핫 리로드, 디렉토리 단위 로드,
문서 타입별 커스텀 스칼라 코덱을 제공합니다.
"""

from .directory import DefaultConfig, DirectoryLoader
from .errors import (
    CodecRegistrationError,
    ConfigStoreError,
    ConfigurationError,
    ErrorKind,
    LoadError,
    ParseError,
    ResolutionError,
    WatchError,
)
from .factory import (
    ConfigFactory,
    default_registry,
    get_factory,
    load_directory,
    load_single,
    save_as,
)
from .mapper import DocumentMapper
from .node_tree import ConfigNode, NodeTree
from .path_utils import PathResolver, Placeholder, resolve_path
from .reference import ConfigReference
from .reporting import ErrorReport, ErrorReporter
from .schema import (
    ConfigDocument,
    ConfigField,
    DocumentRegistry,
    DocumentSpec,
    NodeStyle,
)
from .serializers import EnumCodec, ScalarCodec, SerializerRegistry
from .settings import DEFAULT_HEADER, StoreSettings
from .watcher import WatchState, WatcherContext

__all__ = [
    # Factory
    "ConfigFactory",
    "default_registry",
    "get_factory",
    "load_directory",
    "load_single",
    "save_as",
    # Schema
    "ConfigDocument",
    "ConfigField",
    "DocumentRegistry",
    "DocumentSpec",
    "NodeStyle",
    # Reference / Directory
    "ConfigReference",
    "DefaultConfig",
    "DirectoryLoader",
    # Serialization
    "ConfigNode",
    "DocumentMapper",
    "EnumCodec",
    "NodeTree",
    "ScalarCodec",
    "SerializerRegistry",
    # Paths
    "PathResolver",
    "Placeholder",
    "resolve_path",
    # Watching
    "WatchState",
    "WatcherContext",
    # Errors
    "CodecRegistrationError",
    "ConfigStoreError",
    "ConfigurationError",
    "ErrorKind",
    "ErrorReport",
    "ErrorReporter",
    "LoadError",
    "ParseError",
    "ResolutionError",
    "WatchError",
    # Settings
    "DEFAULT_HEADER",
    "StoreSettings",
]
