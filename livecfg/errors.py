"""
설정 저장소 에러 정의

경로 치환, 파싱, 로드, 코덱 등록, 파일 감시 단계별로 예외를 구분합니다.
리로드 중 발생한 에러는 호출자에게 던지지 않고 ErrorReporter로 전달됩니다.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """에러 종류"""

    RESOLUTION = "resolution"  # 경로 플레이스홀더 치환 실패
    PARSE = "parse"  # 잘못된 YAML 문서
    LOAD = "load"  # 파일/디렉토리 로드 실패
    CODEC_REGISTRATION = "codec_registration"  # 커스텀 코덱 생성 실패 (치명적이지 않음)
    WATCH = "watch"  # 파일 감시 등록 실패 (해당 경로는 1회 로드로 강등)
    RELOAD = "reload"  # 외부 변경 리로드 실패 (이전 값 유지)
    CONFIGURATION = "configuration"  # StoreSettings 검증 실패


class ConfigStoreError(Exception):
    """설정 저장소 기본 에러"""

    kind = ErrorKind.LOAD

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class ResolutionError(ConfigStoreError):
    """경로 템플릿 치환 실패"""

    kind = ErrorKind.RESOLUTION


class ParseError(ConfigStoreError):
    """YAML 문서 파싱 실패

    line, column은 1부터 시작합니다. 위치를 알 수 없으면 None.
    """

    kind = ErrorKind.PARSE

    def __init__(
        self,
        message: str,
        path: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ):
        super().__init__(message, path)
        self.line = line
        self.column = column

    def __str__(self) -> str:
        message = super().__str__()
        location = self.path or "<document>"
        if self.line is not None:
            location += f":{self.line}"
            if self.column is not None:
                location += f":{self.column}"
        return f"{location}: {message}"


class LoadError(ConfigStoreError):
    """설정 로드 실패 (경로 미등록, null 인스턴스, 잘못된 디렉토리 등)"""

    kind = ErrorKind.LOAD


class CodecRegistrationError(ConfigStoreError):
    """커스텀 스칼라 코덱 생성 실패"""

    kind = ErrorKind.CODEC_REGISTRATION

    def __init__(self, message: str, codec: object = None):
        super().__init__(message)
        self.codec = codec


class WatchError(ConfigStoreError):
    """OS 파일 감시 등록 실패"""

    kind = ErrorKind.WATCH


class ConfigurationError(ConfigStoreError):
    """StoreSettings 설정 오류"""

    kind = ErrorKind.CONFIGURATION
