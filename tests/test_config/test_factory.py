"""
ConfigFactory 테스트

등록 테이블 기반 단일/디렉토리 로드, save_as, 코덱 실패 처리 테스트.
"""

from pathlib import Path

import pytest

from livecfg import (
    ConfigFactory,
    DefaultConfig,
    DocumentRegistry,
    ErrorKind,
    LoadError,
    NodeStyle,
    Placeholder,
    ResolutionError,
)
from tests.sample_data import BrokenCodec, Rank, RankCodec, RewardPool, ServerSettings


@pytest.fixture
def factory(registry, watcher, settings, reporter):
    factory = ConfigFactory(registry, watcher=watcher, settings=settings, reporter=reporter)
    yield factory
    factory.close()


class TestLoadSingle:
    """단일 설정 로드 테스트"""

    def test_lobby_settings_created(self, factory: ConfigFactory, tmp_path: Path):
        """플레이스홀더 치환 경로에 기본 설정 생성"""
        settings = factory.load_single(ServerSettings, server="lobby1")

        path = tmp_path / "configs" / "lobby1" / "settings.yml"
        assert path.exists()
        assert settings == ServerSettings()
        assert settings.reference.path == path

    def test_unregistered_path(self, factory: ConfigFactory):
        """경로 템플릿이 없는 문서 타입"""
        with pytest.raises(LoadError):
            factory.load_single(RewardPool)

    def test_missing_placeholder(self, factory: ConfigFactory):
        """치환 값 누락"""
        with pytest.raises(ResolutionError):
            factory.load_single(ServerSettings)

    def test_reference_tracked_and_watched(self, factory: ConfigFactory, watcher):
        reference = factory.load_reference(ServerSettings, server="lobby1")

        assert factory.references == [reference]
        assert watcher.registered_paths == [reference.path.resolve()]

    def test_close_releases_watches(self, factory: ConfigFactory, watcher):
        factory.load_single(ServerSettings, server="lobby1")

        factory.close()

        assert watcher.registered_paths == []
        assert factory.references == []

    def test_custom_codec_used(self, factory: ConfigFactory, tmp_path: Path):
        path = tmp_path / "configs" / "lobby1" / "settings.yml"
        path.parent.mkdir(parents=True)
        path.write_text("default_rank: admin\n", encoding="utf-8")

        settings = factory.load_single(ServerSettings, server="lobby1")

        assert settings.default_rank is Rank.ADMIN


class TestCodecFailures:
    """코덱 등록 실패 테스트"""

    def test_broken_codec_does_not_abort(self, watcher, settings, reporter, tmp_path: Path):
        """코덱 생성 실패는 리포트 후 나머지 코덱으로 로드"""
        registry = DocumentRegistry()
        registry.register(
            ServerSettings,
            path=str(tmp_path / "settings.yml"),
            codecs=[BrokenCodec, RankCodec],
        )

        with ConfigFactory(registry, watcher=watcher, settings=settings, reporter=reporter) as factory:
            loaded = factory.load_single(ServerSettings)

        assert loaded.default_rank is Rank.MEMBER
        assert reporter.has_errors(ErrorKind.CODEC_REGISTRATION)

    def test_missing_codec_falls_back(self, watcher, settings, reporter, tmp_path: Path):
        """코덱 미등록 시 기본 처리로 폴백"""
        registry = DocumentRegistry()
        registry.register(ServerSettings, path=str(tmp_path / "settings.yml"))

        with ConfigFactory(registry, watcher=watcher, settings=settings, reporter=reporter) as factory:
            loaded = factory.load_single(ServerSettings)

        assert loaded.default_rank == "member"
        assert not isinstance(loaded.default_rank, Rank)


class TestLoadDirectory:
    """디렉토리 로드 테스트"""

    def test_load_directory_with_defaults(self, factory: ConfigFactory, tmp_path: Path):
        pools = factory.load_directory(
            RewardPool,
            str(tmp_path / "rewards" / "{season}"),
            DefaultConfig("daily.yml", lambda: RewardPool(name="daily")),
            season="winter",
        )

        assert [pool.name for pool in pools] == ["daily"]
        assert (tmp_path / "rewards" / "winter" / "daily.yml").exists()
        assert len(factory.references) == 1

    def test_load_directory_with_placeholder(self, factory: ConfigFactory, tmp_path: Path):
        """Placeholder 위치 인자로 디렉토리 경로 치환"""
        pools = factory.load_directory(
            RewardPool,
            str(tmp_path / "rewards" / "{season}"),
            Placeholder("season", "summer"),
            DefaultConfig("daily.yml", lambda: RewardPool(name="daily")),
        )

        assert [pool.name for pool in pools] == ["daily"]
        assert (tmp_path / "rewards" / "summer" / "daily.yml").exists()

    def test_load_directory_rejects_unknown_argument(self, factory: ConfigFactory, tmp_path: Path):
        with pytest.raises(TypeError):
            factory.load_directory(RewardPool, str(tmp_path / "rewards"), "daily.yml")


class TestSaveAs:
    """save_as 테스트"""

    def test_save_as_binds_instance(self, factory: ConfigFactory, tmp_path: Path):
        """저장 후 인스턴스 바인딩, 이후 save()로 갱신"""
        path = tmp_path / "generated" / "custom.yml"
        pool = RewardPool(name="custom", ranks=[Rank.VIP])

        saved = factory.save_as(path, pool)

        assert saved == path
        assert "name: custom\n" in path.read_text(encoding="utf-8")
        assert pool.reference is not None

        pool.enabled = False
        pool.save()

        assert "enabled: false\n" in path.read_text(encoding="utf-8")

    def test_save_as_keeps_existing_comments(self, factory: ConfigFactory, tmp_path: Path):
        """기존 파일의 주석 유지"""
        path = tmp_path / "custom.yml"
        path.write_text("# keep me\n\n# pool name\nname: old\n", encoding="utf-8")

        factory.save_as(path, RewardPool(name="new"))

        text = path.read_text(encoding="utf-8")
        assert text.startswith("# keep me\n\n# pool name\nname: new\n")

    def test_flow_style(self, watcher, settings, reporter, tmp_path: Path):
        """FLOW 스타일 등록"""
        registry = DocumentRegistry()
        registry.register(RewardPool, style=NodeStyle.FLOW, codecs=[RankCodec])
        path = tmp_path / "flow.yml"

        with ConfigFactory(registry, watcher=watcher, settings=settings, reporter=reporter) as factory:
            factory.save_as(path, RewardPool(name="flow"))

        body = [line for line in path.read_text(encoding="utf-8").splitlines() if line and not line.startswith("#")]
        assert body[0].startswith("{")


class TestDocumentRegistry:
    """DocumentRegistry 테스트"""

    def test_decorator_registration(self):
        registry = DocumentRegistry()

        @registry.document(path="configs/{name}.yml")
        class Example(RewardPool):
            pass

        assert Example in registry
        assert registry.get(Example).path == "configs/{name}.yml"

    def test_unregistered_type_defaults(self):
        spec = DocumentRegistry().get(RewardPool)

        assert spec.path is None
        assert spec.style == NodeStyle.BLOCK

    def test_register_non_document(self):
        with pytest.raises(TypeError):
            DocumentRegistry().register(dict)
