"""
Tests for the HTTP server of prometheus-hetzner-sd using quart's test client.
"""
import pytest

from prometheus_hetzner_sd.adapter import Adapter
from prometheus_hetzner_sd.config import Config, ConfigError, Credential
from prometheus_hetzner_sd.discoverer import Discoverer
from prometheus_hetzner_sd.server import build_adapter, create_app, hypercorn_config
from prometheus_hetzner_sd.target_file import TargetFile


def make_config(tmp_path, path="/metrics") -> Config:
    config = Config()
    config.server.path = path
    config.target.file = str(tmp_path / "sd" / "hetzner.json")
    config.target.credentials.append(Credential(project="p", username="u", password="x"))
    return config


def make_adapter(tmp_path) -> Adapter:
    return Adapter(Discoverer([]), TargetFile(str(tmp_path / "hetzner.json")))


@pytest.mark.asyncio
async def test_metrics(tmp_path):
    """The metrics path exposes the discovery metrics"""
    app = create_app(make_config(tmp_path), make_adapter(tmp_path))
    response = await app.test_client().get("/metrics")
    body = await response.get_data(as_text=True)

    assert response.status_code == 200
    assert response.mimetype == "text/plain"
    assert "prometheus_hetzner_sd_build_info" in body


@pytest.mark.asyncio
async def test_custom_metrics_path(tmp_path):
    """The metrics are only served on the configured path"""
    app = create_app(make_config(tmp_path, path="/sd/metrics"), make_adapter(tmp_path))
    test_client = app.test_client()

    assert (await test_client.get("/sd/metrics")).status_code == 200
    assert (await test_client.get("/metrics")).status_code == 404


@pytest.mark.asyncio
async def test_healthz(tmp_path):
    app = create_app(make_config(tmp_path), make_adapter(tmp_path))
    response = await app.test_client().get("/healthz")

    assert response.status_code == 200
    assert await response.get_data(as_text=True) == "OK"


@pytest.mark.asyncio
async def test_readyz(tmp_path):
    """Ready once the first refresh completed"""
    adapter = make_adapter(tmp_path)
    test_client = create_app(make_config(tmp_path), adapter).test_client()

    assert (await test_client.get("/readyz")).status_code == 503

    await adapter.run_once()

    assert (await test_client.get("/readyz")).status_code == 200


@pytest.mark.asyncio
async def test_index_links_to_metrics(tmp_path):
    app = create_app(make_config(tmp_path, path="/sd/metrics"), make_adapter(tmp_path))
    response = await app.test_client().get("/")
    body = await response.get_data(as_text=True)

    assert response.status_code == 200
    assert 'href="/sd/metrics"' in body


def test_build_adapter_prepares_output_directory(tmp_path):
    config = make_config(tmp_path)
    adapter = build_adapter(config)

    assert (tmp_path / "sd").is_dir()
    assert adapter.refresh == config.target.refresh
    assert adapter.discoverer.credentials == config.target.credentials


def test_build_adapter_unusable_output_directory(tmp_path):
    (tmp_path / "sd").write_text("in the way")

    with pytest.raises(ConfigError):
        build_adapter(make_config(tmp_path))


def test_hypercorn_config(tmp_path):
    config = make_config(tmp_path)
    config.server.addr = "127.0.0.1:9123"
    config.logs.level = "warn"

    result = hypercorn_config(config)

    assert result.bind == ["127.0.0.1:9123"]
    assert result.loglevel == "WARNING"
