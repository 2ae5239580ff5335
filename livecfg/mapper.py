"""
노드 트리 ↔ 문서 인스턴스 매핑

필드 명세와 코덱 세트만으로 변환합니다.

- 트리에 없는 필드는 기본값으로 채우고 트리에도 기록 (copy defaults forward)
- 디코딩할 수 없는 값은 경고 로그 후 기본값으로 교체
- 문서 타입에 선언되지 않은 키는 트리에 그대로 남김
"""

import logging
from typing import Any, TypeVar

from .errors import LoadError
from .node_tree import ConfigNode, NodeTree
from .schema import ConfigDocument, ConfigField
from .serializers import SerializerRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=ConfigDocument)


class DocumentMapper:
    """문서 매퍼"""

    def __init__(self, serializers: SerializerRegistry):
        self.serializers = serializers

    def load(self, tree: NodeTree, document_type: type[T]) -> tuple[T, bool]:
        """트리 → 인스턴스

        Returns:
            (인스턴스, 기본값 보충으로 트리가 변경되었는지 여부)

        Raises:
            LoadError: 문서 루트가 매핑이 아닌 경우 (인스턴스를 만들 수 없음)
        """
        if not tree.root.is_mapping:
            raise LoadError(
                f"{document_type.__name__} 문서 루트가 매핑이 아님: "
                f"{type(tree.root.value).__name__}"
            )
        return self._load_mapping(tree.root.value, document_type, document_type.__name__)

    def store(self, instance: ConfigDocument, tree: NodeTree) -> None:
        """인스턴스 → 트리 (기존 주석과 미선언 키 유지)"""
        if not tree.root.is_mapping:
            tree.root = ConfigNode({})
        self._store_mapping(instance, tree.root.value)

    def encode(self, instance: ConfigDocument) -> dict[str, Any]:
        """인스턴스 → 일반 딕셔너리"""
        return {
            config_field.name: self._encode_field(
                config_field, getattr(instance, config_field.name)
            )
            for config_field in instance.FIELDS
        }

    def _load_mapping(
        self,
        mapping: dict,
        document_type: type[T],
        location: str,
    ) -> tuple[T, bool]:
        values: dict[str, Any] = {}
        changed = False

        for config_field in document_type.FIELDS:
            node = mapping.get(config_field.name)
            field_location = f"{location}.{config_field.name}"

            if node is None or (node.value is None and not self._allows_null(config_field)):
                value = config_field.make_default()
                comment = [config_field.comment] if config_field.comment else []
                encoded = self._encode_field(config_field, value)
                if node is None:
                    mapping[config_field.name] = ConfigNode.from_value(encoded, comment)
                else:
                    node.replace_value(encoded)
                values[config_field.name] = value
                changed = True
                continue

            try:
                value, sub_changed = self._decode_field(config_field, node, field_location)
            except (TypeError, ValueError) as e:
                logger.warning(
                    f"[Mapper] 값 변환 실패, 기본값 사용: {field_location} - {e}"
                )
                value = config_field.make_default()
                node.replace_value(self._encode_field(config_field, value))
                changed = True
            else:
                changed = changed or sub_changed

            values[config_field.name] = value

        return document_type(**values), changed

    @staticmethod
    def _allows_null(config_field: ConfigField) -> bool:
        # 기본값이 None인 선택 필드는 null을 그대로 허용
        return (
            config_field.default is None
            and config_field.default_factory is None
            and config_field.document is None
            and config_field.container is None
        )

    def _decode_field(
        self,
        config_field: ConfigField,
        node: ConfigNode,
        location: str,
    ) -> tuple[Any, bool]:
        if config_field.document is not None:
            return self._decode_documents(config_field, node, location)

        codec = self.serializers.resolve(
            config_field.codec,
            None if config_field.container else self._hint(config_field),
        )
        raw = node.to_value()

        if config_field.container == "list":
            if not isinstance(raw, list):
                raise TypeError(f"리스트가 아닌 값: {type(raw).__name__}")
            return [codec.decode(item) for item in raw], False

        if config_field.container == "map":
            if not isinstance(raw, dict):
                raise TypeError(f"매핑이 아닌 값: {type(raw).__name__}")
            return {key: codec.decode(item) for key, item in raw.items()}, False

        return codec.decode(raw), False

    def _decode_documents(
        self,
        config_field: ConfigField,
        node: ConfigNode,
        location: str,
    ) -> tuple[Any, bool]:
        document_type = config_field.document

        if config_field.container is None:
            if not node.is_mapping:
                raise TypeError(f"매핑이 아닌 값: {type(node.value).__name__}")
            return self._load_mapping(node.value, document_type, location)

        if config_field.container == "list":
            if not node.is_sequence:
                raise TypeError(f"리스트가 아닌 값: {type(node.value).__name__}")
            items = []
            changed = False
            for index, item in enumerate(node.value):
                if not item.is_mapping:
                    raise TypeError(f"{location}[{index}] 항목이 매핑이 아님")
                instance, sub_changed = self._load_mapping(
                    item.value, document_type, f"{location}[{index}]"
                )
                items.append(instance)
                changed = changed or sub_changed
            return items, changed

        if not node.is_mapping:
            raise TypeError(f"매핑이 아닌 값: {type(node.value).__name__}")
        entries = {}
        changed = False
        for key, item in node.value.items():
            if not item.is_mapping:
                raise TypeError(f"{location}.{key} 항목이 매핑이 아님")
            instance, sub_changed = self._load_mapping(
                item.value, document_type, f"{location}.{key}"
            )
            entries[key] = instance
            changed = changed or sub_changed
        return entries, changed

    def _store_mapping(self, instance: ConfigDocument, mapping: dict) -> None:
        for config_field in instance.FIELDS:
            value = getattr(instance, config_field.name)
            existing = mapping.get(config_field.name)

            # 중첩 문서는 기존 노드에 재귀 기록하여 내부 주석 유지
            if (
                config_field.document is not None
                and config_field.container is None
                and isinstance(value, ConfigDocument)
                and existing is not None
                and existing.is_mapping
            ):
                self._store_mapping(value, existing.value)
                continue

            encoded = self._encode_field(config_field, value)
            if existing is None:
                comment = [config_field.comment] if config_field.comment else []
                mapping[config_field.name] = ConfigNode.from_value(encoded, comment)
            else:
                existing.replace_value(encoded)

    def _encode_field(self, config_field: ConfigField, value: Any) -> Any:
        if value is None:
            return None

        if config_field.document is not None:
            if config_field.container == "list":
                return [self.encode(item) for item in value]
            if config_field.container == "map":
                return {key: self.encode(item) for key, item in value.items()}
            return self.encode(value)

        if config_field.container == "list":
            codec = self.serializers.resolve(config_field.codec)
            return [codec.encode(item) for item in value]
        if config_field.container == "map":
            codec = self.serializers.resolve(config_field.codec)
            return {key: codec.encode(item) for key, item in value.items()}

        codec = self.serializers.resolve(config_field.codec, value)
        return codec.encode(value)

    @staticmethod
    def _hint(config_field: ConfigField) -> Any:
        if config_field.default is not None:
            return config_field.default
        if config_field.default_factory is not None:
            return config_field.default_factory()
        return None
