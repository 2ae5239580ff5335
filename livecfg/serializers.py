"""
스칼라 코덱 레지스트리

문서 타입별로 커스텀 스칼라 코덱을 등록하여 기본 코덱 세트와 합칩니다.

설계 원칙:
- 기본 코덱: str, int, float, bool, list, dict, path
- 커스텀 코덱은 클래스 또는 인자 없는 팩토리로 선언
- 코덱 생성 실패는 치명적이지 않음 (리포트 후 기본 처리로 폴백)
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path, PurePath
from typing import Any, Callable, ClassVar, Iterable

from .errors import CodecRegistrationError, ErrorKind
from .reporting import ErrorReporter

logger = logging.getLogger(__name__)

BOOL_STRINGS = {
    "true": True,
    "yes": True,
    "on": True,
    "false": False,
    "no": False,
    "off": False,
}


def to_native(value: Any) -> Any:
    """YAML로 기록 가능한 기본 타입으로 변환"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, PurePath):
        return value.as_posix()
    if isinstance(value, dict):
        return {key: to_native(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_native(item) for item in value]
    return value


class ScalarCodec(ABC):
    """스칼라 값 인코더/디코더

    decode는 변환할 수 없는 값에 ValueError 또는 TypeError를 던집니다.
    """

    name: ClassVar[str] = ""
    python_type: ClassVar[type | tuple[type, ...] | None] = None

    @abstractmethod
    def encode(self, value: Any) -> Any:
        """Python 값 → YAML 스칼라"""

    @abstractmethod
    def decode(self, raw: Any) -> Any:
        """YAML 스칼라 → Python 값"""

    def accepts(self, value: Any) -> bool:
        """이 코덱이 처리하는 Python 타입인지 여부"""
        return self.python_type is not None and isinstance(value, self.python_type)


class PassthroughCodec(ScalarCodec):
    """타입 변환 없이 그대로 전달 (코덱을 찾지 못한 필드의 폴백)"""

    name = "any"

    def encode(self, value: Any) -> Any:
        return to_native(value)

    def decode(self, raw: Any) -> Any:
        return raw


class StringCodec(ScalarCodec):
    name = "str"
    python_type = str

    def accepts(self, value: Any) -> bool:
        # str 기반 Enum은 EnumCodec 또는 passthrough로 처리
        return isinstance(value, str) and not isinstance(value, Enum)

    def encode(self, value: Any) -> Any:
        return None if value is None else str(value)

    def decode(self, raw: Any) -> Any:
        if isinstance(raw, (dict, list)):
            raise TypeError(f"문자열이 아닌 값: {type(raw).__name__}")
        if isinstance(raw, bool):
            return "true" if raw else "false"
        return str(raw)


class BoolCodec(ScalarCodec):
    name = "bool"
    python_type = bool

    def encode(self, value: Any) -> Any:
        return bool(value)

    def decode(self, raw: Any) -> Any:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str) and raw.strip().lower() in BOOL_STRINGS:
            return BOOL_STRINGS[raw.strip().lower()]
        raise ValueError(f"bool로 변환할 수 없는 값: {raw!r}")


class IntCodec(ScalarCodec):
    name = "int"
    python_type = int

    def encode(self, value: Any) -> Any:
        return int(value)

    def decode(self, raw: Any) -> Any:
        if isinstance(raw, bool):
            raise TypeError("bool 값은 int로 변환하지 않음")
        if isinstance(raw, float):
            if not raw.is_integer():
                raise ValueError(f"정수가 아닌 값: {raw}")
            return int(raw)
        if isinstance(raw, (int, str)):
            return int(raw)
        raise TypeError(f"int로 변환할 수 없는 값: {type(raw).__name__}")


class FloatCodec(ScalarCodec):
    name = "float"
    python_type = float

    def encode(self, value: Any) -> Any:
        return float(value)

    def decode(self, raw: Any) -> Any:
        if isinstance(raw, bool):
            raise TypeError("bool 값은 float로 변환하지 않음")
        if isinstance(raw, (int, float, str)):
            return float(raw)
        raise TypeError(f"float로 변환할 수 없는 값: {type(raw).__name__}")


class ListCodec(ScalarCodec):
    name = "list"
    python_type = (list, tuple)

    def encode(self, value: Any) -> Any:
        return to_native(list(value))

    def decode(self, raw: Any) -> Any:
        if not isinstance(raw, list):
            raise TypeError(f"리스트가 아닌 값: {type(raw).__name__}")
        return list(raw)


class DictCodec(ScalarCodec):
    name = "dict"
    python_type = dict

    def encode(self, value: Any) -> Any:
        return to_native(dict(value))

    def decode(self, raw: Any) -> Any:
        if not isinstance(raw, dict):
            raise TypeError(f"매핑이 아닌 값: {type(raw).__name__}")
        return dict(raw)


class PathCodec(ScalarCodec):
    name = "path"
    python_type = PurePath

    def encode(self, value: Any) -> Any:
        return Path(value).as_posix()

    def decode(self, raw: Any) -> Any:
        if not isinstance(raw, str):
            raise TypeError(f"경로 문자열이 아닌 값: {type(raw).__name__}")
        return Path(raw)


class EnumCodec(ScalarCodec):
    """Enum 코덱 기반 클래스

    EnumCodec.for_enum(Color)로 특정 Enum 전용 코덱 클래스를 만듭니다.
    값(value) 또는 이름(name, 대소문자 무시)으로 디코딩합니다.
    """

    enum_type: ClassVar[type[Enum]]

    @classmethod
    def for_enum(cls, enum_type: type[Enum], name: str | None = None) -> type["EnumCodec"]:
        """Enum 전용 코덱 클래스 생성"""
        return type(
            f"{enum_type.__name__}Codec",
            (cls,),
            {
                "enum_type": enum_type,
                "python_type": enum_type,
                "name": name or enum_type.__name__,
            },
        )

    def encode(self, value: Any) -> Any:
        if not isinstance(value, self.enum_type):
            value = self.decode(value)
        return to_native(value.value)

    def decode(self, raw: Any) -> Any:
        if isinstance(raw, self.enum_type):
            return raw
        for member in self.enum_type:
            if member.value == raw:
                return member
        if isinstance(raw, str):
            for member in self.enum_type:
                if member.name.lower() == raw.strip().lower():
                    return member
        raise ValueError(f"{self.enum_type.__name__}에 없는 값: {raw!r}")


# bool은 int의 하위 타입이므로 IntCodec보다 먼저 검사
BUILTIN_CODECS: tuple[type[ScalarCodec], ...] = (
    StringCodec,
    BoolCodec,
    IntCodec,
    FloatCodec,
    ListCodec,
    DictCodec,
    PathCodec,
)

CodecFactory = type[ScalarCodec] | Callable[[], ScalarCodec] | ScalarCodec


class SerializerRegistry:
    """문서 타입별 코덱 세트 (기본 코덱 ∪ 커스텀 코덱)

    사용법:
        ```python
        registry = SerializerRegistry(
            [EnumCodec.for_enum(Rank), DurationCodec],
            reporter=reporter,
        )
        codec = registry.get("Rank")
        ```
    """

    def __init__(
        self,
        custom: Iterable[CodecFactory] = (),
        reporter: ErrorReporter | None = None,
    ):
        """
        Args:
            custom: 커스텀 코덱 클래스/팩토리/인스턴스 목록
            reporter: 코덱 생성 실패를 전달할 에러 채널
        """
        self.reporter = reporter or ErrorReporter()
        self.passthrough = PassthroughCodec()
        self._codecs: dict[str, ScalarCodec] = {}
        self._custom: list[ScalarCodec] = []
        self._missing_warned: set[str] = set()

        for codec_class in BUILTIN_CODECS:
            codec = codec_class()
            self._codecs[codec.name] = codec

        for factory in custom:
            self.register(factory)

    def register(self, factory: CodecFactory) -> ScalarCodec | None:
        """커스텀 코덱 등록

        생성에 실패하면 CodecRegistrationError를 리포트하고 None 반환.
        같은 이름의 코덱은 덮어씁니다 (기본 코덱 포함).
        """
        try:
            codec = factory if isinstance(factory, ScalarCodec) else factory()
        except Exception as e:
            error = CodecRegistrationError(
                f"코덱 생성 실패: {getattr(factory, '__name__', factory)} - {e}",
                codec=factory,
            )
            self.reporter.report(ErrorKind.CODEC_REGISTRATION, error)
            return None

        if not isinstance(codec, ScalarCodec) or not codec.name:
            error = CodecRegistrationError(
                f"ScalarCodec이 아니거나 이름이 없는 코덱: {codec!r}", codec=factory
            )
            self.reporter.report(ErrorKind.CODEC_REGISTRATION, error)
            return None

        if codec.name in self._codecs:
            logger.debug(f"[Serializers] 코덱 덮어쓰기: {codec.name}")

        self._codecs[codec.name] = codec
        self._custom = [c for c in self._custom if c.name != codec.name]
        self._custom.append(codec)
        return codec

    def get(self, name: str) -> ScalarCodec | None:
        """이름으로 코덱 조회"""
        return self._codecs.get(name)

    def for_value(self, value: Any) -> ScalarCodec:
        """값의 타입에 맞는 코덱 조회 (커스텀 우선, 없으면 passthrough)"""
        if value is None:
            return self.passthrough

        for codec in reversed(self._custom):
            if codec.accepts(value):
                return codec

        for codec_class in BUILTIN_CODECS:
            codec = self._codecs.get(codec_class.name)
            if codec is not None and codec.accepts(value):
                return codec

        return self.passthrough

    def resolve(self, name: str | None, hint: Any = None) -> ScalarCodec:
        """필드용 코덱 결정

        이름이 지정되었지만 등록되지 않은 경우 (생성 실패 포함)
        값 타입 기반 기본 처리로 폴백합니다.
        """
        if name:
            codec = self._codecs.get(name)
            if codec is not None:
                return codec
            if name not in self._missing_warned:
                self._missing_warned.add(name)
                logger.warning(f"[Serializers] 코덱 없음, 기본 처리로 폴백: {name}")

        return self.for_value(hint)

    @property
    def names(self) -> list[str]:
        """등록된 코덱 이름 목록"""
        return sorted(self._codecs)
