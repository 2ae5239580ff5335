"""
에러 정의 및 리포팅 채널 테스트
"""

from livecfg.errors import (
    CodecRegistrationError,
    ConfigStoreError,
    ErrorKind,
    LoadError,
    ParseError,
    WatchError,
)
from livecfg.reporting import ErrorReport, ErrorReporter


class TestErrors:
    """예외 계층 테스트"""

    def test_hierarchy(self):
        """모든 예외는 ConfigStoreError 하위"""
        for error_class in (LoadError, ParseError, WatchError, CodecRegistrationError):
            assert issubclass(error_class, ConfigStoreError)

    def test_kinds(self):
        """예외별 ErrorKind"""
        assert LoadError("x").kind == ErrorKind.LOAD
        assert ParseError("x").kind == ErrorKind.PARSE
        assert WatchError("x").kind == ErrorKind.WATCH
        assert CodecRegistrationError("x").kind == ErrorKind.CODEC_REGISTRATION

    def test_parse_error_location(self):
        """ParseError 메시지에 경로/줄/열 포함"""
        error = ParseError("bad indent", path="settings.yml", line=2, column=5)

        assert str(error) == "settings.yml:2:5: bad indent"
        assert error.line == 2
        assert error.column == 5

    def test_parse_error_without_location(self):
        """위치 정보 없는 ParseError"""
        assert str(ParseError("bad")) == "<document>: bad"

    def test_error_kind_is_str(self):
        """ErrorKind는 문자열 비교 가능"""
        assert ErrorKind.RELOAD == "reload"


class TestErrorReporter:
    """ErrorReporter 테스트"""

    def test_report_recorded(self, reporter: ErrorReporter):
        """리포트 기록"""
        error = LoadError("boom", path="a.yml")
        report = reporter.report(ErrorKind.LOAD, error)

        assert isinstance(report, ErrorReport)
        assert report.path == "a.yml"
        assert report.message == "boom"
        assert reporter.reports == [report]

    def test_has_errors_by_kind(self, reporter: ErrorReporter):
        """종류별 리포트 존재 여부"""
        assert not reporter.has_errors()

        reporter.report(ErrorKind.WATCH, WatchError("no watch"))

        assert reporter.has_errors()
        assert reporter.has_errors(ErrorKind.WATCH)
        assert not reporter.has_errors(ErrorKind.RELOAD)

    def test_listener_called(self, reporter: ErrorReporter):
        """리스너 통지"""
        received = []
        reporter.on_report(received.append)

        reporter.report(ErrorKind.RELOAD, ValueError("bad"), path="b.yml")

        assert len(received) == 1
        assert received[0].kind == ErrorKind.RELOAD
        assert received[0].path == "b.yml"

    def test_listener_failure_not_raised(self, reporter: ErrorReporter):
        """리스너 예외는 전파되지 않음"""

        def broken_listener(report):
            raise RuntimeError("listener failure")

        reporter.on_report(broken_listener)

        reporter.report(ErrorKind.LOAD, LoadError("boom"))

        assert len(reporter.reports) == 1

    def test_remove_listener(self, reporter: ErrorReporter):
        """리스너 제거"""
        received = []
        reporter.on_report(received.append)
        reporter.remove_listener(received.append)

        reporter.report(ErrorKind.LOAD, LoadError("boom"))

        assert received == []

    def test_max_reports(self):
        """보관 개수 제한"""
        reporter = ErrorReporter(max_reports=3)
        for index in range(5):
            reporter.report(ErrorKind.LOAD, LoadError(f"error {index}"))

        assert [report.message for report in reporter.reports] == [
            "error 2",
            "error 3",
            "error 4",
        ]

    def test_format_message(self, reporter: ErrorReporter):
        """라벨이 포함된 메시지"""
        report = reporter.report(ErrorKind.RELOAD, ParseError("bad", line=1), path="c.yml")

        message = ErrorReporter.format_message(report)

        assert message.startswith("[리로드 실패] ParseError:")
        assert "(c.yml)" in message

    def test_clear(self, reporter: ErrorReporter):
        """리포트 초기화"""
        reporter.report(ErrorKind.LOAD, LoadError("boom"))
        reporter.clear()

        assert reporter.reports == []
