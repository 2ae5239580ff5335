"""
저장소 런타임 설정

환경변수 기반 설정 관리.
"""

import codecs
import logging
import os
from dataclasses import dataclass, field

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# 모든 관리 파일 상단에 기록되는 기본 헤더 (두 줄)
DEFAULT_HEADER = (
    "Managed by livecfg - edits to this file are reloaded automatically",
    "Unknown keys are kept, missing keys are filled with defaults",
)

TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class StoreSettings:
    """저장소 설정"""

    # 같은 파일에 대한 연속 이벤트를 하나의 리로드로 합치는 대기 시간 (초)
    debounce_seconds: float = 0.5

    # False면 파일 감시 없이 1회 로드만 수행
    watch_enabled: bool = True

    # 헤더 주석이 없는 문서에 기록할 헤더
    header: tuple[str, ...] = field(default_factory=lambda: DEFAULT_HEADER)

    # 파일 인코딩
    encoding: str = "utf-8"

    @classmethod
    def from_env(cls) -> "StoreSettings":
        """환경변수에서 설정 로드

        - LIVECFG_DEBOUNCE_SECONDS: 디바운스 시간 (기본 0.5)
        - LIVECFG_WATCH_ENABLED: 파일 감시 사용 여부 (기본 true)
        - LIVECFG_HEADER: 헤더 줄 목록, "|" 구분
        - LIVECFG_ENCODING: 파일 인코딩 (기본 utf-8)
        """
        header_str = os.getenv("LIVECFG_HEADER", "")
        header = (
            tuple(line.strip() for line in header_str.split("|"))
            if header_str
            else DEFAULT_HEADER
        )

        try:
            debounce = float(os.getenv("LIVECFG_DEBOUNCE_SECONDS", "0.5"))
        except ValueError:
            raise ConfigurationError(
                "잘못된 LIVECFG_DEBOUNCE_SECONDS 값: "
                f"{os.getenv('LIVECFG_DEBOUNCE_SECONDS')}"
            )

        return cls(
            debounce_seconds=debounce,
            watch_enabled=(
                os.getenv("LIVECFG_WATCH_ENABLED", "true").strip().lower()
                in TRUE_VALUES
            ),
            header=header,
            encoding=os.getenv("LIVECFG_ENCODING", "utf-8"),
        )

    def validate(self, strict: bool = True) -> list[str]:
        """설정값 검증

        Args:
            strict: True면 오류 발견 시 예외 발생, False면 로그만

        Returns:
            list[str]: 검증 경고/오류 메시지 목록

        Raises:
            ConfigurationError: strict=True이고 오류가 있을 때
        """
        errors = []
        warnings = []

        if self.debounce_seconds < 0:
            errors.append(f"잘못된 디바운스 시간: {self.debounce_seconds}초")
        elif self.debounce_seconds > 10:
            warnings.append(f"디바운스 시간이 너무 김: {self.debounce_seconds}초")

        try:
            codecs.lookup(self.encoding)
        except LookupError:
            errors.append(f"알 수 없는 인코딩: {self.encoding}")

        if not self.header:
            warnings.append("헤더가 비어 있음 - 관리 파일 식별이 어려울 수 있음")
        elif any("\n" in line for line in self.header):
            errors.append("헤더 줄에 줄바꿈 문자를 포함할 수 없음")

        for warning in warnings:
            logger.warning(f"[Settings] {warning}")

        if errors:
            for error in errors:
                logger.error(f"[Settings] {error}")
            if strict:
                raise ConfigurationError(
                    f"설정 검증 실패: {len(errors)}개 오류\n" + "\n".join(errors)
                )

        return errors + warnings
