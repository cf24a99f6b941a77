"""Tests for wiring Graphite exports from settings."""

import logging
from datetime import timedelta

import pytest

from conftest import StaticSource
from graphite_bridge.bootstrap import (
    BOOTSTRAP_FAILURE_CONTEXT,
    INVALID_CONFIGURATION_MESSAGE,
    BootstrapStatus,
    bootstrap_graphite,
    validate_settings,
    with_graphite,
    with_graphite_from_config,
    with_pickled_graphite,
    with_tcp_graphite,
    with_udp_graphite,
)
from graphite_bridge.config import INTERVAL_SETTING, URI_SETTING
from graphite_bridge.errors import ConfigurationInvalid, InvalidEndpoint, MetricsErrorHandler
from graphite_bridge.exporter.base import SenderOptions
from graphite_bridge.exporter.pickled import PickledBatchSender
from graphite_bridge.exporter.tcp import TcpLineSender
from graphite_bridge.exporter.udp import UdpLineSender
from graphite_bridge.reports import MAX_INTERVAL_SECONDS, BindingState, MetricsReports


@pytest.fixture
def reports():
    host = MetricsReports()
    yield host
    host.stop(timeout=2.0)


@pytest.fixture
def handled():
    errors = []
    handler = MetricsErrorHandler()
    handler.add_handler(lambda error, context: errors.append((error, context)))
    return handler, errors


def settings(uri, interval):
    return {URI_SETTING: uri, INTERVAL_SETTING: interval}


def warnings(caplog):
    return [r for r in caplog.records if r.name == "graphite_bridge.bootstrap" and r.levelno == logging.WARNING]


class TestFromConfig:
    def test_udp_binding(self, reports, handled, caplog):
        caplog.set_level(logging.DEBUG, logger="graphite_bridge")
        handler, errors = handled
        binding = with_graphite_from_config(
            reports, StaticSource(), settings("net.udp://host:2003", "10"), error_handler=handler
        )

        assert binding is not None
        assert binding.state is BindingState.BOUND
        assert binding.interval == timedelta(seconds=10)
        assert isinstance(binding.sender, UdpLineSender)
        assert (binding.sender.host, binding.sender.port) == ("host", 2003)
        assert len(reports.tasks) == 1
        assert errors == []
        assert warnings(caplog) == []
        assert any(
            r.levelno == logging.DEBUG and "net.udp://host:2003" in r.getMessage() for r in caplog.records
        )

    def test_options_reach_the_sender(self, reports):
        binding = with_graphite_from_config(
            reports,
            StaticSource(),
            settings("net.pickled://host:2004", "10"),
            options=SenderOptions(pickle_jar_size=7),
        )
        assert isinstance(binding.sender, PickledBatchSender)
        assert binding.sender.jar_size == 7

    @pytest.mark.parametrize(
        "interval",
        ["0", "-5", "ten", "1.5", "", "1_0", "+-5", "\u00b2", "10000000000", "99999999999999999999"],
    )
    def test_bad_interval(self, reports, handled, caplog, interval):
        caplog.set_level(logging.DEBUG, logger="graphite_bridge")
        handler, errors = handled
        binding = with_graphite_from_config(
            reports, StaticSource(), settings("net.tcp://host:2003", interval), error_handler=handler
        )
        assert binding is None
        assert reports.tasks == []
        assert [r.getMessage() for r in warnings(caplog)] == [INVALID_CONFIGURATION_MESSAGE]
        assert errors == []

    @pytest.mark.parametrize("uri", ["", None, "   "])
    @pytest.mark.parametrize("interval", ["10", "0", None])
    def test_missing_uri(self, reports, handled, caplog, uri, interval):
        caplog.set_level(logging.DEBUG, logger="graphite_bridge")
        handler, errors = handled
        binding = with_graphite_from_config(reports, StaticSource(), settings(uri, interval), error_handler=handler)
        assert binding is None
        assert reports.tasks == []
        assert len(warnings(caplog)) == 1
        assert errors == []

    def test_missing_keys(self, reports, caplog):
        caplog.set_level(logging.DEBUG, logger="graphite_bridge")
        assert with_graphite_from_config(reports, StaticSource(), {}) is None
        assert len(warnings(caplog)) == 1

    def test_malformed_uri_same_message_as_missing(self, reports, caplog):
        caplog.set_level(logging.DEBUG, logger="graphite_bridge")
        with_graphite_from_config(reports, StaticSource(), settings("net.tcp://host:notaport", "10"))
        with_graphite_from_config(reports, StaticSource(), settings("", "10"))
        messages = [r.getMessage() for r in warnings(caplog)]
        assert len(messages) == 2
        assert messages[0] == messages[1]
        assert URI_SETTING in messages[0] and INTERVAL_SETTING in messages[0]

    def test_unknown_scheme_goes_to_error_handler(self, reports, handled):
        handler, errors = handled
        binding = with_graphite_from_config(
            reports, StaticSource(), settings("http://host:2003", "10"), error_handler=handler
        )
        assert binding is None
        assert len(errors) == 1
        error, context = errors[0]
        assert isinstance(error, InvalidEndpoint)
        assert context == BOOTSTRAP_FAILURE_CONTEXT

    def test_unexpected_exception_never_escapes(self, reports, handled):
        class ExplodingSettings(dict):
            def get(self, key, default=None):
                raise RuntimeError("settings store unavailable")

        handler, errors = handled
        binding = with_graphite_from_config(reports, StaticSource(), ExplodingSettings(), error_handler=handler)
        assert binding is None
        assert len(errors) == 1
        assert isinstance(errors[0][0], RuntimeError)
        assert errors[0][1] == BOOTSTRAP_FAILURE_CONTEXT

    def test_failing_error_handler_never_escapes(self, reports):
        class BrokenHandler(MetricsErrorHandler):
            def handle(self, error, context=""):
                raise RuntimeError("handler down")

        binding = with_graphite_from_config(
            reports, StaticSource(), settings("http://host:2003", "10"), error_handler=BrokenHandler()
        )
        assert binding is None


class TestBootstrapResult:
    def test_bound(self, reports):
        result = bootstrap_graphite(reports, StaticSource(), settings("net.tcp://host:2003", "5"))
        assert result.status is BootstrapStatus.BOUND
        assert result.endpoint.port == 2003
        assert result.binding.state is BindingState.BOUND

    def test_invalid(self, reports):
        result = bootstrap_graphite(reports, StaticSource(), settings("net.tcp://host:2003", "-1"))
        assert result.status is BootstrapStatus.INVALID
        assert isinstance(result.error, ConfigurationInvalid)
        assert result.binding is None

    def test_failed(self, reports):
        result = bootstrap_graphite(reports, StaticSource(), settings("ftp://host:21", "5"))
        assert result.status is BootstrapStatus.FAILED
        assert isinstance(result.error.cause, InvalidEndpoint)

    def test_validate_settings_accepts_signed_integer(self):
        assert validate_settings(settings("net.udp://host:2003", "+10")).interval == timedelta(seconds=10)

    def test_validate_settings_accepts_max_interval(self):
        endpoint = validate_settings(settings("net.udp://host:2003", str(MAX_INTERVAL_SECONDS)))
        assert endpoint.interval == timedelta(seconds=MAX_INTERVAL_SECONDS)

    def test_validate_settings_strips_whitespace(self):
        endpoint = validate_settings(settings(" net.udp://host:2003 ", " 10 "))
        assert endpoint.interval == timedelta(seconds=10)


class TestProgrammatic:
    def test_with_graphite_unknown_scheme_raises(self, reports):
        with pytest.raises(InvalidEndpoint):
            with_graphite(reports, StaticSource(), "net.http://host:2003", 10)
        assert reports.tasks == []

    def test_with_graphite(self, reports):
        binding = with_graphite(reports, StaticSource(), "NET.TCP://host:2003", timedelta(seconds=3))
        assert isinstance(binding.sender, TcpLineSender)
        assert binding.interval == timedelta(seconds=3)

    def test_transport_helpers(self, reports):
        source = StaticSource()
        assert isinstance(with_tcp_graphite(reports, source, "host", 2003, 10).sender, TcpLineSender)
        assert isinstance(with_udp_graphite(reports, source, "host", 2003, 10).sender, UdpLineSender)
        pickled = with_pickled_graphite(reports, source, "host", 2004, 10, batch_size=20)
        assert isinstance(pickled.sender, PickledBatchSender)
        assert pickled.sender.jar_size == 20
        assert len(reports.tasks) == 3
