"""
설정 파일 경로 템플릿 치환 유틸리티

문제:
- 문서 타입에는 "configs/{server}/settings.yml" 같은 경로 템플릿만 등록됨
- 실제 경로는 호출 시점의 값(서버 이름 등)으로 결정됨

해결:
- {name} 토큰을 호출자가 넘긴 치환 규칙으로 변환
- ${VAR} 토큰은 환경변수로 변환
- 치환 결과가 비거나 OS 경로로 쓸 수 없으면 ResolutionError
"""

import os
import re
from pathlib import Path
from typing import Any, NamedTuple

from .errors import ResolutionError

# Windows 파일명에 사용할 수 없는 문자
WINDOWS_INVALID_CHARS = set('<>:"|?*')


class Placeholder(NamedTuple):
    """경로 치환 규칙

    value는 문자열, 숫자 또는 인자 없는 callable (지연 평가).
    """

    name: str
    value: Any


class PathResolver:
    """경로 템플릿 치환기"""

    TOKEN_PATTERN = re.compile(r"(?<!\$)\{([A-Za-z_][A-Za-z0-9_.-]*)\}")
    ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

    def __init__(
        self,
        placeholders: list[Placeholder] | None = None,
        expand_env: bool = True,
    ):
        """
        Args:
            placeholders: 모든 resolve 호출에 적용할 기본 치환 규칙
            expand_env: ${VAR} 환경변수 치환 여부
        """
        self.placeholders = list(placeholders or [])
        self.expand_env = expand_env

    def resolve(
        self,
        template: str,
        *placeholders: Placeholder,
        **substitutions: Any,
    ) -> str:
        """경로 템플릿 → 실제 경로

        Args:
            template: 경로 템플릿 (예: configs/{server}/settings.yml)
            *placeholders: 호출별 치환 규칙
            **substitutions: 이름=값 형식의 치환 규칙

        Returns:
            치환된 경로 (예: configs/lobby1/settings.yml)

        Raises:
            ResolutionError: 치환 값이 없거나 비어 있는 경우, 결과가 잘못된 경로인 경우

        Examples:
            >>> PathResolver().resolve("configs/{server}/settings.yml", server="lobby1")
            'configs/lobby1/settings.yml'
        """
        if not template or not template.strip():
            raise ResolutionError("경로 템플릿이 비어 있음")

        rules = self._collect_rules(placeholders, substitutions)
        result = template

        if self.expand_env:
            result = self.ENV_PATTERN.sub(self._replace_env, result)

        def replace(match: re.Match) -> str:
            name = match.group(1)
            if name not in rules:
                raise ResolutionError(
                    f"플레이스홀더 '{name}'에 대한 치환 값이 없음: {template}"
                )
            value = self._evaluate(rules[name])
            if not value:
                raise ResolutionError(
                    f"플레이스홀더 '{name}'가 빈 값으로 치환됨: {template}"
                )
            return value

        result = self.TOKEN_PATTERN.sub(replace, result)

        # 백슬래시를 슬래시로 정규화
        result = result.replace("\\", "/")
        result = os.path.expanduser(result)

        if not result.strip():
            raise ResolutionError(f"치환 결과가 비어 있음: {template}")

        self._validate(result, template)
        return result

    def with_placeholders(
        self, *placeholders: Placeholder, **substitutions: Any
    ) -> "PathResolver":
        """기본 치환 규칙을 추가한 새 PathResolver 반환"""
        extra = list(placeholders) + [
            Placeholder(name, value) for name, value in substitutions.items()
        ]
        return PathResolver(self.placeholders + extra, expand_env=self.expand_env)

    def _collect_rules(
        self,
        placeholders: tuple[Placeholder, ...],
        substitutions: dict[str, Any],
    ) -> dict[str, Any]:
        # 나중 규칙이 우선: 기본값 < 위치 인자 < 키워드 인자
        rules: dict[str, Any] = {}
        for placeholder in [*self.placeholders, *placeholders]:
            rules[placeholder.name] = placeholder.value
        rules.update(substitutions)
        return rules

    @staticmethod
    def _evaluate(value: Any) -> str:
        if callable(value):
            value = value()
        if value is None:
            return ""
        return str(value)

    @staticmethod
    def _replace_env(match: re.Match) -> str:
        # 미설정 환경변수는 그대로 둠
        return os.getenv(match.group(1), match.group(0))

    @staticmethod
    def _validate(path: str, template: str) -> None:
        if "\x00" in path:
            raise ResolutionError(f"경로에 NUL 문자가 포함됨: {template}")

        try:
            parts = Path(path).parts
        except (TypeError, ValueError) as e:
            raise ResolutionError(f"잘못된 경로: {path} - {e}") from e

        if os.name == "nt":
            # 드라이브(C:\) 부분은 제외하고 검사
            for part in parts[1:] if Path(path).drive else parts:
                if any(char in WINDOWS_INVALID_CHARS for char in part):
                    raise ResolutionError(f"경로에 사용할 수 없는 문자 포함: {path}")


def resolve_path(
    template: str,
    *placeholders: Placeholder,
    **substitutions: Any,
) -> str:
    """기본 PathResolver로 경로 템플릿 치환

    Examples:
        >>> resolve_path("configs/{server}/settings.yml", Placeholder("server", "lobby1"))
        'configs/lobby1/settings.yml'
    """
    return PathResolver().resolve(template, *placeholders, **substitutions)
