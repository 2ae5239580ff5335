"""
Pytest 설정 및 공통 Fixture
"""

from unittest.mock import MagicMock

import pytest

from livecfg import (
    DocumentRegistry,
    ErrorReporter,
    SerializerRegistry,
    StoreSettings,
    WatcherContext,
)


@pytest.fixture
def reporter() -> ErrorReporter:
    """테스트용 에러 채널"""
    return ErrorReporter()


@pytest.fixture
def settings() -> StoreSettings:
    """테스트용 StoreSettings

    환경변수 대신 짧은 디바운스 사용.
    """
    return StoreSettings(debounce_seconds=0.05)


@pytest.fixture
def serializers(reporter: ErrorReporter) -> SerializerRegistry:
    """Rank 코덱이 등록된 코덱 세트"""
    from tests.sample_data import RankCodec

    return SerializerRegistry([RankCodec], reporter=reporter)


@pytest.fixture
def mock_observer() -> MagicMock:
    """watchdog Observer 대역"""
    return MagicMock()


@pytest.fixture
def watcher(settings: StoreSettings, reporter: ErrorReporter, mock_observer: MagicMock):
    """mock Observer를 사용하는 WatcherContext"""
    context = WatcherContext(settings, reporter, observer_factory=lambda: mock_observer)
    yield context
    context.stop()


@pytest.fixture
def registry(tmp_path) -> DocumentRegistry:
    """샘플 문서 타입 등록 테이블"""
    from tests.sample_data import RankCodec, RewardPool, ServerSettings

    registry = DocumentRegistry()
    registry.register(
        ServerSettings,
        path=str(tmp_path / "configs" / "{server}" / "settings.yml"),
        codecs=[RankCodec],
    )
    registry.register(RewardPool, codecs=[RankCodec])
    return registry
