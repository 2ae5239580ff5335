"""
YAML 문서 노드 트리

원본 텍스트와 타입 객체 사이의 직렬화 경계.

- 키 순서 유지
- 문서 상단 헤더 주석은 그대로 보존 (없으면 기본 헤더 기록)
- 매핑 키 바로 위의 주석 줄은 해당 키 노드에 붙여 저장 시 다시 기록
- 스타일(BLOCK/FLOW)은 트리 생성 시 고정

주석 보존은 BLOCK 스타일에서만 적용됩니다. 값 뒤에 붙는 인라인 주석과
시퀀스 항목 내부의 주석은 보존하지 않습니다.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable

import yaml

from .errors import ParseError
from .schema import NodeStyle


@dataclass
class ConfigNode:
    """트리 노드

    value는 스칼라, dict[키, ConfigNode] (매핑) 또는 list[ConfigNode] (시퀀스).
    """

    value: Any = None
    comment: list[str] = field(default_factory=list)

    @property
    def is_mapping(self) -> bool:
        return isinstance(self.value, dict)

    @property
    def is_sequence(self) -> bool:
        return isinstance(self.value, list)

    @property
    def is_scalar(self) -> bool:
        return not (self.is_mapping or self.is_sequence)

    @classmethod
    def from_value(cls, value: Any, comment: Iterable[str] = ()) -> "ConfigNode":
        """일반 값 → 노드 (재귀)"""
        if isinstance(value, ConfigNode):
            return value
        if isinstance(value, dict):
            value = {key: cls.from_value(item) for key, item in value.items()}
        elif isinstance(value, (list, tuple)):
            value = [cls.from_value(item) for item in value]
        return cls(value=value, comment=list(comment))

    def to_value(self) -> Any:
        """노드 → 일반 값 (재귀)"""
        if self.is_mapping:
            return {key: node.to_value() for key, node in self.value.items()}
        if self.is_sequence:
            return [node.to_value() for node in self.value]
        return self.value

    def replace_value(self, value: Any) -> None:
        """주석은 유지하고 값만 교체"""
        self.value = ConfigNode.from_value(value).value


class NodeTree:
    """YAML 문서 트리

    사용법:
        ```python
        tree = NodeTree.parse(text, NodeStyle.BLOCK, default_header=DEFAULT_HEADER)
        tree.root.value["motd"].replace_value("Hello")
        text = tree.dump()
        ```
    """

    def __init__(
        self,
        root: ConfigNode | None = None,
        style: NodeStyle = NodeStyle.BLOCK,
        header: Iterable[str] = (),
    ):
        self.root = root if root is not None else ConfigNode({})
        self._style = NodeStyle(style)
        self.header = list(header)

    @property
    def style(self) -> NodeStyle:
        """노드 스타일 (생성 후 변경 불가)"""
        return self._style

    @classmethod
    def parse(
        cls,
        text: str,
        style: NodeStyle = NodeStyle.BLOCK,
        default_header: Iterable[str] = (),
        source: str | None = None,
    ) -> "NodeTree":
        """YAML 텍스트 → 트리

        Args:
            text: 문서 원문
            style: 트리 스타일
            default_header: 문서에 헤더 주석이 없을 때 사용할 헤더
            source: 에러 메시지용 파일 경로

        Raises:
            ParseError: YAML 문법 오류 (줄/열 포함)
        """
        lines = text.splitlines()
        header, header_end = _split_header(lines)

        loader = yaml.SafeLoader(text)
        try:
            node = loader.get_single_node()
            data = loader.construct_document(node) if node is not None else None
        except yaml.MarkedYAMLError as e:
            mark = e.problem_mark or e.context_mark
            raise ParseError(
                e.problem or str(e),
                path=source,
                line=mark.line + 1 if mark else None,
                column=mark.column + 1 if mark else None,
            ) from e
        except yaml.YAMLError as e:
            raise ParseError(str(e), path=source) from e
        finally:
            loader.dispose()

        # 빈 문서 또는 null 문서는 빈 매핑
        root = ConfigNode.from_value({} if data is None else data)
        if node is not None and root.is_mapping:
            key_lines = _collect_key_lines(node, yaml.constructor.SafeConstructor())
            _attach_comments(root, (), key_lines, lines, header_end)

        return cls(root, style, header or default_header)

    def dump(self) -> str:
        """트리 → YAML 텍스트 (헤더 포함, 결정적 출력)"""
        out = [f"# {line}" if line else "#" for line in self.header]
        if out:
            out.append("")

        if self.root.is_mapping and self.root.value and self._style == NodeStyle.BLOCK:
            _emit_mapping(self.root.value, 0, out)
        else:
            body = yaml.safe_dump(
                self.root.to_value(),
                default_flow_style=self._style == NodeStyle.FLOW,
                sort_keys=False,
                allow_unicode=True,
            )
            out.extend(body.splitlines())

        return "\n".join(out) + "\n"

    def to_value(self) -> Any:
        return self.root.to_value()

    def get(self, key: Any) -> ConfigNode | None:
        """최상위 키 노드 조회"""
        if not self.root.is_mapping:
            return None
        return self.root.value.get(key)


def _split_header(lines: list[str]) -> tuple[list[str], int]:
    """문서 상단 연속 주석 줄을 헤더로 분리

    Returns:
        (헤더 줄 목록, 헤더 다음 줄 인덱스)
    """
    header = []
    index = 0
    for index, line in enumerate(lines):
        stripped = line.strip()
        if not stripped.startswith("#"):
            return header, index
        header.append(_comment_text(stripped))
    return header, len(lines)


def _comment_text(stripped: str) -> str:
    text = stripped[1:]
    return text[1:] if text.startswith(" ") else text


def _collect_key_lines(
    node: yaml.Node,
    constructor: yaml.constructor.SafeConstructor,
    path: tuple = (),
) -> dict[tuple, int]:
    """매핑 키 경로 → 키가 시작하는 줄 (0부터)

    키는 파싱 결과와 같은 값(true → True, 1.0 → 1.0)으로 만들어 비교합니다.
    """
    result: dict[tuple, int] = {}
    if not isinstance(node, yaml.MappingNode):
        return result
    for key_node, value_node in node.value:
        if not isinstance(key_node, yaml.ScalarNode):
            continue
        try:
            key = constructor.construct_object(key_node, deep=True)
        except yaml.YAMLError:
            # 병합 키(<<) 등 일반 키가 아닌 노드
            continue
        key_path = path + (key,)
        result[key_path] = key_node.start_mark.line
        result.update(_collect_key_lines(value_node, constructor, key_path))
    return result


def _attach_comments(
    node: ConfigNode,
    path: tuple,
    key_lines: dict[tuple, int],
    lines: list[str],
    header_end: int,
) -> None:
    for key, child in node.value.items():
        key_path = path + (key,)
        line_no = key_lines.get(key_path)
        if line_no is not None:
            child.comment = _comments_above(lines, line_no, header_end)
        if child.is_mapping:
            _attach_comments(child, key_path, key_lines, lines, header_end)


def _comments_above(lines: list[str], line_no: int, header_end: int) -> list[str]:
    comments: list[str] = []
    index = line_no - 1
    while index >= header_end:
        stripped = lines[index].strip()
        if not stripped.startswith("#"):
            break
        comments.append(_comment_text(stripped))
        index -= 1
    comments.reverse()
    return comments


def _render_key(key: Any) -> str:
    # "key: null" → "key"
    line = yaml.safe_dump({key: None}, allow_unicode=True).splitlines()[0]
    return line[: -len(": null")]


def _emit_mapping(mapping: dict, indent: int, out: list[str]) -> None:
    pad = " " * indent
    for key, child in mapping.items():
        for comment in child.comment:
            out.append(f"{pad}# {comment}" if comment else f"{pad}#")

        if child.is_mapping and child.value:
            out.append(f"{pad}{_render_key(key)}:")
            _emit_mapping(child.value, indent + 2, out)
            continue

        chunk = yaml.safe_dump(
            {key: child.to_value()},
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
        out.extend(pad + line if line else line for line in chunk.splitlines())
