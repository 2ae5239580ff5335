"""
문서 타입 스키마 및 등록 테이블

문서 타입은 ConfigDocument를 상속하고 FIELDS에 필드 명세를 나열합니다.
리플렉션 없이 필드 명세(이름, 기본값, 코덱)만으로 직렬화합니다.

사용법:
    ```python
    registry = DocumentRegistry()

    @registry.document(path="configs/{server}/settings.yml", codecs=[RankCodec])
    class ServerSettings(ConfigDocument):
        FIELDS = (
            ConfigField("motd", default="Welcome"),
            ConfigField("max_players", default=20),
            ConfigField("default_rank", default=Rank.MEMBER, codec="Rank"),
            ConfigField("spawn", document=Location),
        )

    settings = ServerSettings(max_players=50)
    settings.max_players  # 50
    ```
"""

import copy
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Iterable

from .errors import LoadError

if TYPE_CHECKING:
    from .reference import ConfigReference

logger = logging.getLogger(__name__)

CONTAINERS = (None, "list", "map")


class NodeStyle(str, Enum):
    """YAML 노드 스타일"""

    BLOCK = "block"
    FLOW = "flow"


@dataclass(frozen=True)
class ConfigField:
    """문서 필드 명세

    Attributes:
        name: YAML 키 이름 및 속성 이름
        default: 기본값 (가변 객체는 로드/생성 시 복사됨)
        default_factory: 기본값 팩토리 (default 대신 사용)
        codec: 스칼라 코덱 이름 (None이면 기본값 타입으로 결정)
        document: 중첩 문서 타입
        container: None, "list", "map" - 문서/코덱 값의 컬렉션
        comment: 키 위에 기록할 주석 (필드가 새로 채워질 때)
    """

    name: str
    default: Any = None
    default_factory: Callable[[], Any] | None = None
    codec: str | None = None
    document: type["ConfigDocument"] | None = None
    container: str | None = None
    comment: str | None = None

    def __post_init__(self):
        if self.container not in CONTAINERS:
            raise ValueError(f"잘못된 container 값: {self.container!r}")
        if self.default_factory is not None and self.default is not None:
            raise ValueError(f"default와 default_factory를 함께 지정할 수 없음: {self.name}")

    def make_default(self) -> Any:
        """새 기본값 생성"""
        if self.default_factory is not None:
            return self.default_factory()
        if self.default is None:
            if self.container == "list":
                return []
            if self.container == "map":
                return {}
            if self.document is not None:
                return self.document()
        return copy.deepcopy(self.default)


class ConfigDocument:
    """설정 문서 기본 클래스

    ConfigReference에 바인딩된 인스턴스는 save()로 바로 저장할 수 있습니다.
    """

    FIELDS: ClassVar[tuple[ConfigField, ...]] = ()

    def __init__(self, **values: Any):
        names = self.field_names()
        unknown = set(values) - set(names)
        if unknown:
            raise TypeError(
                f"{type(self).__name__}에 없는 필드: {', '.join(sorted(unknown))}"
            )

        for config_field in self.FIELDS:
            if config_field.name in values:
                value = values[config_field.name]
            else:
                value = config_field.make_default()
            setattr(self, config_field.name, value)

        self._reference: "ConfigReference | None" = None

    @classmethod
    def field_names(cls) -> list[str]:
        """필드 이름 목록 (선언 순서)"""
        return [config_field.name for config_field in cls.FIELDS]

    @classmethod
    def get_field(cls, name: str) -> ConfigField | None:
        """이름으로 필드 명세 조회"""
        for config_field in cls.FIELDS:
            if config_field.name == name:
                return config_field
        return None

    def to_dict(self) -> dict[str, Any]:
        """필드 값 딕셔너리 (얕은 복사)"""
        return {name: getattr(self, name) for name in self.field_names()}

    @property
    def reference(self) -> "ConfigReference | None":
        """바인딩된 ConfigReference (없으면 None)"""
        return self._reference

    def bind(self, reference: "ConfigReference") -> None:
        self._reference = reference

    def save(self) -> None:
        """바인딩된 파일에 현재 값 저장

        Raises:
            LoadError: ConfigReference에 바인딩되지 않은 경우
        """
        if self._reference is None:
            raise LoadError(
                f"{type(self).__name__} 인스턴스가 파일에 바인딩되지 않음 "
                "(ConfigFactory.save_as 사용)"
            )
        self._reference.save(self)

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        fields = ", ".join(f"{name}={value!r}" for name, value in self.to_dict().items())
        return f"{type(self).__name__}({fields})"


@dataclass(frozen=True)
class DocumentSpec:
    """문서 타입 등록 정보"""

    document_type: type[ConfigDocument]
    path: str | None = None
    style: NodeStyle = NodeStyle.BLOCK
    codecs: tuple = ()


class DocumentRegistry:
    """문서 타입 → 경로 템플릿/스타일/코덱 등록 테이블

    프로세스 시작 시 채워지며, 등록되지 않은 타입은
    BLOCK 스타일, 커스텀 코덱 없음, 경로 없음으로 취급됩니다.
    """

    def __init__(self):
        self._specs: dict[type[ConfigDocument], DocumentSpec] = {}
        self._lock = threading.Lock()

    def register(
        self,
        document_type: type[ConfigDocument],
        path: str | None = None,
        style: NodeStyle = NodeStyle.BLOCK,
        codecs: Iterable = (),
    ) -> DocumentSpec:
        """문서 타입 등록 (같은 타입 재등록 시 교체)

        Raises:
            TypeError: ConfigDocument 하위 클래스가 아닌 경우
        """
        if not (isinstance(document_type, type) and issubclass(document_type, ConfigDocument)):
            raise TypeError(f"ConfigDocument 하위 클래스가 아님: {document_type!r}")

        spec = DocumentSpec(
            document_type=document_type,
            path=path,
            style=NodeStyle(style),
            codecs=tuple(codecs),
        )
        with self._lock:
            if document_type in self._specs:
                logger.debug(f"[Registry] 문서 타입 재등록: {document_type.__name__}")
            self._specs[document_type] = spec
        return spec

    def document(
        self,
        path: str | None = None,
        style: NodeStyle = NodeStyle.BLOCK,
        codecs: Iterable = (),
    ) -> Callable[[type[ConfigDocument]], type[ConfigDocument]]:
        """클래스 데코레이터 형식 등록"""

        def decorator(document_type: type[ConfigDocument]) -> type[ConfigDocument]:
            self.register(document_type, path=path, style=style, codecs=codecs)
            return document_type

        return decorator

    def get(self, document_type: type[ConfigDocument]) -> DocumentSpec:
        """등록 정보 조회 (미등록 타입은 기본 정보)"""
        with self._lock:
            spec = self._specs.get(document_type)
        return spec or DocumentSpec(document_type=document_type)

    def unregister(self, document_type: type[ConfigDocument]) -> None:
        with self._lock:
            self._specs.pop(document_type, None)

    def __contains__(self, document_type: object) -> bool:
        with self._lock:
            return document_type in self._specs
