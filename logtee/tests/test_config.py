"""Tests for logtee.config module."""

import os

import pytest

from logtee.buffer import BackpressurePolicy
from logtee.config import PipelineConfig, load_config
from logtee.errors import ConfigError
from logtee.record import Severity


class TestPipelineConfig:
    """Tests for PipelineConfig."""

    def test_defaults_are_valid(self):
        config = PipelineConfig().validate()
        assert config.backpressure_policy is BackpressurePolicy.DROP_OLDEST
        assert config.max_batch_size <= config.max_queue_capacity

    def test_from_dict_accepts_camel_case(self):
        config = PipelineConfig.from_dict({
            "remoteEndpoint": "collector:4318",
            "insecureTransport": "true",
            "maxBatchSize": 50,
            "lingerInterval": 0.5,
            "maxQueueCapacity": 1000,
            "backpressurePolicy": "drop-newest",
            "maxRetryAttempts": 7,
            "shutdownDeadline": 3,
        })
        assert config.remote_endpoint == "collector:4318"
        assert config.insecure_transport is True
        assert config.max_batch_size == 50
        assert config.linger_interval == 0.5
        assert config.max_queue_capacity == 1000
        assert config.backpressure_policy is BackpressurePolicy.DROP_NEWEST
        assert config.max_retry_attempts == 7
        assert config.shutdown_deadline == 3.0
        assert config.endpoint_url == "http://collector:4318"

    def test_from_dict_ignores_unknown_keys(self):
        config = PipelineConfig.from_dict({"colour": "blue", "max_batch_size": 3})
        assert config.max_batch_size == 3

    @pytest.mark.parametrize("data,option", [
        ({"max_batch_size": 0}, "max_batch_size"),
        ({"max_batch_size": "lots"}, "max_batch_size"),
        ({"linger_interval": 0}, "linger_interval"),
        ({"backpressure_policy": "drop-random"}, "backpressure_policy"),
        ({"insecure_transport": "maybe"}, "insecure_transport"),
        ({"shutdown_deadline": -1}, "shutdown_deadline"),
        ({"min_severity": "loud"}, "min_severity"),
    ])
    def test_invalid_values(self, data, option):
        with pytest.raises(ConfigError) as exc_info:
            PipelineConfig.from_dict(data)
        assert exc_info.value.option == option

    def test_endpoint_url_requires_endpoint(self):
        with pytest.raises(ConfigError):
            PipelineConfig().endpoint_url

    def test_headers_from_string(self):
        config = PipelineConfig.from_dict({"headers": "X-Api-Key=abc, X-Tenant=t1"})
        assert config.headers == {"X-Api-Key": "abc", "X-Tenant": "t1"}

    def test_merged(self):
        config = PipelineConfig().merged(max_batch_size="25", min_severity="error")
        assert config.max_batch_size == 25
        assert config.min_severity is Severity.ERROR


class TestFromEnv:
    """Tests for environment-based configuration."""

    def test_reads_prefixed_variables(self):
        config = PipelineConfig.from_env({
            "LOGTEE_REMOTE_ENDPOINT": "https://collector.example.com/logs",
            "LOGTEE_MAX_BATCH_SIZE": "128",
            "LOGTEE_BACKPRESSURE_POLICY": "block",
            "LOGTEE_BLOCK_TIMEOUT": "0.25",
            "LOGTEE_MIN_SEVERITY": "info",
            "UNRELATED": "x",
        })
        assert config.remote_endpoint == "https://collector.example.com/logs"
        assert config.max_batch_size == 128
        assert config.backpressure_policy is BackpressurePolicy.BLOCK
        assert config.block_timeout == 0.25
        assert config.min_severity is Severity.INFO

    def test_uses_process_environment(self):
        os.environ["LOGTEE_SERVICE_NAME"] = "billing"
        assert PipelineConfig.from_env().service_name == "billing"


class TestLoadConfig:
    """Tests for load_config()."""

    def test_explicit_path(self, temp_dir):
        path = temp_dir / "custom.yaml"
        path.write_text(
            "logtee:\n"
            "  remote_endpoint: collector:4318\n"
            "  insecure_transport: true\n"
            "  max_batch_size: 64\n"
            "  backpressure_policy: drop-newest\n"
        )
        config = load_config(str(path))
        assert config.remote_endpoint == "collector:4318"
        assert config.insecure_transport is True
        assert config.max_batch_size == 64
        assert config.backpressure_policy is BackpressurePolicy.DROP_NEWEST

    def test_env_var_path(self, temp_dir):
        path = temp_dir / "from-env.yaml"
        path.write_text("max_retry_attempts: 9\n")
        os.environ["LOGTEE_CONFIG"] = str(path)
        assert load_config().max_retry_attempts == 9

    def test_walks_up_from_cwd(self, temp_dir, monkeypatch):
        (temp_dir / "logtee.yaml").write_text("linger_interval: 2.5\n")
        nested = temp_dir / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        assert load_config().linger_interval == 2.5

    def test_environment_overrides_file(self, temp_dir):
        path = temp_dir / "logtee.yaml"
        path.write_text("max_batch_size: 64\nservice_name: from-file\n")
        os.environ["LOGTEE_MAX_BATCH_SIZE"] = "16"
        config = load_config(str(path))
        assert config.max_batch_size == 16
        assert config.service_name == "from-file"

    def test_non_mapping_file(self, temp_dir):
        path = temp_dir / "list.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_missing_explicit_path(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_config(str(temp_dir / "nope.yaml"))
