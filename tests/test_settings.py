from pathlib import Path

import pytest

from coderunner.settings import load_settings

ENV_KEYS = ["MAX_OUTPUT_SIZE", "MAX_EXECUTION_TIME", "PORT", "SANDBOX_DIR", "RUNTIMES", "RATE_LIMIT_MAX", "RATE_LIMIT_WINDOW_S"]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for k in ENV_KEYS:
        monkeypatch.delenv(k, raising=False)
    monkeypatch.setenv("CODERUNNER_CONF", str(tmp_path / "missing.yaml"))
    return monkeypatch


def test_defaults(clean_env):
    s = load_settings()
    assert s.time_limit_ms == 5000
    assert s.output_cap_bytes == 1024 * 1024
    assert s.port == 4000


def test_env_sets_limits(clean_env):
    clean_env.setenv("MAX_OUTPUT_SIZE", "2")
    clean_env.setenv("MAX_EXECUTION_TIME", "750")
    s = load_settings()
    assert s.output_cap_bytes == 2048
    assert s.time_limit_ms == 750


def test_yaml_fills_what_env_does_not_set(clean_env, tmp_path):
    conf = tmp_path / "coderunner.yaml"
    conf.write_text(
        "sandbox_dir: /var/tmp/runs\n"
        "port: 9000\n"
        "limits:\n"
        "  max_output_size_kb: 8\n"
        "  max_execution_time_ms: 1500\n"
        "runtimes:\n"
        "  python3: /opt/py/bin/python3\n",
        encoding="utf-8",
    )
    clean_env.setenv("CODERUNNER_CONF", str(conf))
    clean_env.setenv("MAX_EXECUTION_TIME", "3000")
    s = load_settings()
    assert s.time_limit_ms == 3000  # env thắng
    assert s.output_cap_bytes == 8 * 1024
    assert s.port == 9000
    assert s.sandbox_dir == Path("/var/tmp/runs")
    assert s.runtimes == {"python3": "/opt/py/bin/python3"}


def test_broken_yaml_shape_is_ignored(clean_env, tmp_path):
    conf = tmp_path / "coderunner.yaml"
    conf.write_text("- just\n- a list\n", encoding="utf-8")
    clean_env.setenv("CODERUNNER_CONF", str(conf))
    assert load_settings().time_limit_ms == 5000


def test_rate_limit_from_yaml(clean_env, tmp_path):
    conf = tmp_path / "coderunner.yaml"
    conf.write_text("rate_limit:\n  max_requests: 10\n  window_s: 60\n", encoding="utf-8")
    clean_env.setenv("CODERUNNER_CONF", str(conf))
    s = load_settings()
    assert (s.rate_limit_max, s.rate_limit_window_s) == (10, 60)
    assert s.time_limit_ms == 5000
