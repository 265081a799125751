"""Tests for the vs-exporter command line."""

from textwrap import dedent

import httpx
import pytest
import respx

from vs_exporter import cli
from vs_exporter.core.errors import ExitCode
from vs_exporter.kube.models import VirtualService

CONFIG = dedent(
    """
    listenAddress: ":8090"
    internalMetricsAddress: ":9000"
    virtualServiceInterval: "1m"
    productMetrics:
      - name: product-a
        interval: "30s"
        port: 8080
        path: /metrics
        namespaceSelector: product=a
        podSelector: app=product-a
    """
)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG)
    return path


@pytest.fixture
def patched_cli(monkeypatch, cluster):
    """Run the CLI against the in-memory cluster without touching logging setup."""
    monkeypatch.setattr(cli, "configure_logging", lambda level: None)
    monkeypatch.setattr(cli, "load_kube_config", lambda kubeconfig, context: None)
    monkeypatch.setattr(cli, "ClusterClient", lambda api_client, timeout: cluster)
    cluster.namespaces["product=a"] = ["shop"]
    cluster.namespaces["product"] = ["shop"]
    cluster.add_pod("shop", "web-0", "10.0.0.1")
    cluster.virtual_services["shop"] = [VirtualService("shop", "web")]
    return cluster


class TestParser:
    def test_defaults(self):
        args = cli.build_parser().parse_args([])

        assert args.config is None
        assert args.once is False

    def test_flags(self):
        args = cli.build_parser().parse_args(
            ["--config", "/etc/x.yaml", "--log-level", "DEBUG", "--context", "prod", "--once"]
        )

        assert args.config == "/etc/x.yaml"
        assert args.log_level == "DEBUG"
        assert args.context == "prod"
        assert args.once is True


class TestMain:
    def test_missing_config_exits_with_config_error(self, tmp_path, monkeypatch):
        monkeypatch.setattr(cli, "configure_logging", lambda level: None)

        code = cli.main(["--config", str(tmp_path / "missing.yaml")])

        assert code == ExitCode.CONFIG_ERROR

    def test_invalid_config_exits_with_config_error(self, tmp_path, monkeypatch):
        monkeypatch.setattr(cli, "configure_logging", lambda level: None)
        path = tmp_path / "config.yaml"
        path.write_text("listenAddress: ':8090'\n")

        assert cli.main(["--config", str(path)]) == ExitCode.CONFIG_ERROR

    def test_once_prints_exposition(self, config_file, patched_cli, capsys):
        with respx.mock:
            respx.get("http://10.0.0.1:8080/metrics").mock(
                return_value=httpx.Response(200, text="orders_pending 4\n")
            )
            code = cli.main(["--config", str(config_file), "--once"])

        out = capsys.readouterr().out
        assert code == ExitCode.SUCCESS
        assert 'orders_pending{namespace="shop"} 4.0' in out
        assert "istio_virtual_service_info" in out

    def test_once_reports_errors(self, config_file, patched_cli, capsys):
        with respx.mock:
            respx.get("http://10.0.0.1:8080/metrics").mock(return_value=httpx.Response(502))
            code = cli.main(["--config", str(config_file), "--once"])

        captured = capsys.readouterr()
        assert code == ExitCode.PROVIDER_ERROR
        assert "unexpected status code 502" in captured.err
        assert "istio_virtual_service_gateway_compatible" in captured.out
