"""
DocumentMapper 테스트

기본값 보충, 잘못된 값 처리, 미선언 키 유지, 중첩 문서 테스트.
"""

import pytest

from livecfg.errors import LoadError
from livecfg.mapper import DocumentMapper
from livecfg.node_tree import NodeTree
from livecfg.serializers import SerializerRegistry
from tests.sample_data import (
    VALID_POOL,
    Location,
    Rank,
    RewardItem,
    RewardPool,
    ServerSettings,
)


@pytest.fixture
def mapper(serializers: SerializerRegistry) -> DocumentMapper:
    return DocumentMapper(serializers)


class TestLoad:
    """트리 → 인스턴스"""

    def test_empty_tree_backfilled(self, mapper: DocumentMapper):
        """빈 트리는 모든 필드 기본값, 트리에도 기록"""
        tree = NodeTree.parse("")

        instance, changed = mapper.load(tree, ServerSettings)

        assert changed is True
        assert instance == ServerSettings()
        assert tree.to_value()["max_players"] == 20
        assert tree.to_value()["default_rank"] == "member"
        assert tree.to_value()["spawn"] == {"world": "world", "x": 0.0, "y": 64.0, "z": 0.0}
        assert tree.get("motd").comment == ["Message shown in the server list"]

    def test_complete_tree_unchanged(self, mapper: DocumentMapper):
        """모든 필드가 있으면 변경 없음"""
        tree = NodeTree.parse("")
        mapper.load(tree, ServerSettings)

        _, changed = mapper.load(tree, ServerSettings)

        assert changed is False

    def test_values_decoded(self, mapper: DocumentMapper):
        """값 디코딩"""
        tree = NodeTree.parse(
            "max_players: '50'\nwhitelist: yes\ndefault_rank: VIP\n"
            "spawn:\n  world: hub\n  x: 10\nbanned_words: [spam]\n"
        )

        instance, _ = mapper.load(tree, ServerSettings)

        assert instance.max_players == 50
        assert instance.whitelist is True
        assert instance.default_rank is Rank.VIP
        assert instance.spawn == Location(world="hub", x=10.0)
        assert instance.banned_words == ["spam"]

    def test_invalid_value_uses_default(self, mapper: DocumentMapper):
        """변환할 수 없는 값은 기본값으로 교체"""
        tree = NodeTree.parse("max_players: lots\ndefault_rank: owner\n")

        instance, changed = mapper.load(tree, ServerSettings)

        assert changed is True
        assert instance.max_players == 20
        assert instance.default_rank is Rank.MEMBER
        assert tree.to_value()["max_players"] == 20

    def test_null_required_field_backfilled(self, mapper: DocumentMapper):
        """기본값이 있는 필드의 null은 누락으로 취급"""
        tree = NodeTree.parse("motd: ~\n")

        instance, changed = mapper.load(tree, ServerSettings)

        assert changed is True
        assert instance.motd == "Welcome to the server"

    def test_null_optional_field_kept(self, mapper: DocumentMapper):
        """기본값이 None인 필드는 null 허용"""
        tree = NodeTree.parse("")
        mapper.load(tree, ServerSettings)

        instance, changed = mapper.load(tree, ServerSettings)

        assert instance.description is None
        assert changed is False

    def test_unknown_keys_kept(self, mapper: DocumentMapper):
        """미선언 키는 트리에 남음"""
        tree = NodeTree.parse("legacy_option: true\nmax_players: 5\n")

        instance, _ = mapper.load(tree, ServerSettings)
        mapper.store(instance, tree)

        assert tree.to_value()["legacy_option"] is True
        assert not hasattr(instance, "legacy_option")

    def test_non_mapping_root(self, mapper: DocumentMapper):
        """매핑이 아닌 루트"""
        with pytest.raises(LoadError):
            mapper.load(NodeTree.parse("- a\n- b\n"), ServerSettings)

    def test_nested_document_list(self, mapper: DocumentMapper):
        """문서 리스트 필드 (항목별 기본값 보충)"""
        tree = NodeTree.parse(VALID_POOL)

        pool, changed = mapper.load(tree, RewardPool)

        assert changed is True
        assert pool.name == "daily"
        assert pool.enabled is True
        assert pool.rewards == [RewardItem(item="minecraft:diamond", amount=2)]
        assert pool.ranks == [Rank.VIP]
        assert tree.to_value()["rewards"][0]["weight"] == 1.0

    def test_nested_list_wrong_type(self, mapper: DocumentMapper):
        """리스트 필드에 스칼라 값"""
        tree = NodeTree.parse("rewards: nothing\n")

        pool, changed = mapper.load(tree, RewardPool)

        assert pool.rewards == []
        assert changed is True


class TestStore:
    """인스턴스 → 트리"""

    def test_store_round_trip(self, mapper: DocumentMapper):
        """저장 후 다시 로드하면 같은 인스턴스"""
        original = ServerSettings(
            motd="Hi",
            max_players=5,
            whitelist=True,
            default_rank=Rank.ADMIN,
            spawn=Location(world="hub", x=1.5),
            banned_words=["spam", "scam"],
            description="test server",
        )
        tree = NodeTree()

        mapper.store(original, tree)
        loaded, changed = mapper.load(NodeTree.parse(tree.dump()), ServerSettings)

        assert loaded == original
        assert changed is False

    def test_store_keeps_nested_comments(self, mapper: DocumentMapper):
        """중첩 문서의 기존 주석 유지"""
        tree = NodeTree.parse("spawn:\n  # hub world\n  world: hub\n")
        instance, _ = mapper.load(tree, ServerSettings)

        instance.spawn.world = "arena"
        mapper.store(instance, tree)

        assert tree.get("spawn").value["world"].comment == ["hub world"]
        assert tree.get("spawn").value["world"].value == "arena"

    def test_encode(self, mapper: DocumentMapper):
        """일반 딕셔너리 변환"""
        encoded = mapper.encode(RewardPool(name="weekly", ranks=[Rank.ADMIN]))

        assert encoded == {"name": "weekly", "enabled": True, "rewards": [], "ranks": ["admin"]}

    def test_missing_codec_falls_back(self, reporter):
        """등록되지 않은 코덱은 기본 처리"""
        mapper = DocumentMapper(SerializerRegistry(reporter=reporter))
        tree = NodeTree.parse("default_rank: vip\n")

        instance, _ = mapper.load(tree, ServerSettings)

        assert instance.default_rank == "vip"
        assert not isinstance(instance.default_rank, Rank)
