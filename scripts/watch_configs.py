#!/usr/bin/env python
"""
설정 디렉토리 감시 스크립트

디렉토리(또는 단일 파일)의 YAML 설정을 로드하고
외부 변경을 감지할 때마다 리로드 결과를 로그로 출력합니다.
편집 중인 설정 파일이 올바르게 파싱되는지 확인하는 용도입니다.

사용법:
    # 디렉토리 감시
    python scripts/watch_configs.py configs/rewards

    # 단일 파일 감시
    python scripts/watch_configs.py configs/lobby1/settings.yml --file

    # 디버그 모드
    python scripts/watch_configs.py configs --env dev --log-level DEBUG
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path

from dotenv import load_dotenv

# 프로젝트 루트를 Python 경로에 추가
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from livecfg import (  # noqa: E402
    ConfigDocument,
    ConfigReference,
    ConfigStoreError,
    DirectoryLoader,
    ErrorReporter,
    StoreSettings,
    WatcherContext,
)

logger = logging.getLogger("watch_configs")


class RawDocument(ConfigDocument):
    """필드 선언 없는 문서 (모든 키를 트리에 그대로 유지)"""

    FIELDS = ()


def setup_logging(level: str = "INFO") -> None:
    """로깅 설정"""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_env_file(env: str) -> None:
    """환경별 .env 파일 로드"""
    env_files = [
        PROJECT_ROOT / f".env.{env}",
        PROJECT_ROOT / ".env.local",
        PROJECT_ROOT / ".env",
    ]

    for env_file in env_files:
        if env_file.exists():
            load_dotenv(env_file)
            logger.info(f"[Config] 환경 파일 로드: {env_file}")
            break


def describe(reference: ConfigReference) -> str:
    """로드된 문서 요약 (최상위 키 목록)"""
    value = reference.tree.to_value()
    keys = ", ".join(str(key) for key in value) if isinstance(value, dict) else "-"
    return f"{reference.path} [{keys}]"


def run(target: Path, single_file: bool, settings: StoreSettings) -> int:
    """감시 루프 실행

    Returns:
        종료 코드
    """
    reporter = ErrorReporter()
    shutdown_event = threading.Event()

    def signal_handler(sig, frame):
        logger.info(f"[Watch] 종료 신호 수신: {sig}")
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    with WatcherContext(settings, reporter) as watcher:
        try:
            if single_file:
                references = [
                    ConfigReference.load(
                        target,
                        RawDocument,
                        watcher=watcher,
                        settings=settings,
                        reporter=reporter,
                    )
                ]
            else:
                loader = DirectoryLoader(watcher=watcher, settings=settings, reporter=reporter)
                references = loader.load(target, RawDocument)
        except ConfigStoreError as e:
            logger.error(f"[Watch] 로드 실패: {e}")
            return 1

        for reference in references:
            logger.info(f"[Watch] 로드: {describe(reference)}")
            reference.on_reload(lambda ref: logger.info(f"[Watch] 리로드: {describe(ref)}"))

        if watcher.degraded:
            logger.warning("[Watch] 파일 감시 불가 - 1회 로드 결과만 출력")
            return 0

        logger.info(f"[Watch] 감시 시작 ({len(references)}개 파일, Ctrl+C로 종료)")
        shutdown_event.wait()

    if reporter.has_errors():
        logger.info(f"[Watch] 감시 중 에러 {len(reporter.reports)}건")
    return 0


def main() -> None:
    """메인 함수"""
    parser = argparse.ArgumentParser(
        description="YAML 설정 디렉토리 감시",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("target", help="감시할 디렉토리 또는 파일 경로")
    parser.add_argument(
        "--file",
        action="store_true",
        help="target을 단일 설정 파일로 취급",
    )
    parser.add_argument(
        "--env",
        choices=["dev", "staging", "prod"],
        default="dev",
        help="환경 (.env 파일 선택, 기본: dev)",
    )
    parser.add_argument(
        "--debounce",
        type=float,
        default=None,
        help="디바운스 시간(초), 미지정 시 LIVECFG_DEBOUNCE_SECONDS",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="로그 레벨 (기본: INFO)",
    )

    args = parser.parse_args()

    setup_logging(args.log_level)
    load_env_file(args.env)

    try:
        settings = StoreSettings.from_env()
        if args.debounce is not None:
            settings.debounce_seconds = args.debounce
        settings.validate(strict=True)
    except ConfigStoreError as e:
        logger.error(f"[Config] {e}")
        sys.exit(2)

    sys.exit(run(Path(args.target), args.file, settings))


if __name__ == "__main__":
    main()
