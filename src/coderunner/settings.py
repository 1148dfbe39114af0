from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ---- giới hạn chạy (tên env giữ nguyên như bản cũ) ----
    max_output_size: int = 1024  # KB
    max_execution_time: int = 5000  # ms
    kill_grace_ms: int = 1000
    nofile_limit: int = 256

    # ---- service ----
    host: str = "0.0.0.0"
    port: int = 4000
    log_level: str = "INFO"
    rate_limit_max: int = 100  # request / IP / cửa sổ, 0 = tắt
    rate_limit_window_s: int = 900  # 15 phút

    # ---- sandbox ----
    sandbox_dir: Path = Path("/tmp/coderunner")
    exec_path: str = "/usr/bin:/bin:/usr/local/bin"
    runtimes: Dict[str, str] = {}  # tên tool -> binary, vd {"python3": "/usr/bin/python3.12"}

    model_config = SettingsConfigDict(extra="ignore")

    @property
    def output_cap_bytes(self) -> int:
        return self.max_output_size * 1024

    @property
    def time_limit_ms(self) -> int:
        return self.max_execution_time


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        data = {}
    return data if isinstance(data, dict) else {}


def load_settings() -> Settings:
    # 0) Nạp base từ env
    s = Settings()

    # 1) Đọc conf/coderunner.yaml (hoặc CODERUNNER_CONF); env luôn thắng YAML
    data = _read_yaml(os.environ.get("CODERUNNER_CONF", "conf/coderunner.yaml"))
    limits = data.get("limits") or {}
    if not isinstance(limits, dict):
        limits = {}
    rate = data.get("rate_limit") or {}
    if not isinstance(rate, dict):
        rate = {}
    runtimes = data.get("runtimes") or {}
    if not isinstance(runtimes, dict):
        runtimes = {}

    candidates = {
        "max_output_size": (limits.get("max_output_size_kb"), int),
        "max_execution_time": (limits.get("max_execution_time_ms"), int),
        "kill_grace_ms": (limits.get("kill_grace_ms"), int),
        "nofile_limit": (limits.get("nofile"), int),
        "host": (data.get("host"), str),
        "port": (data.get("port"), int),
        "log_level": (data.get("log_level"), str),
        "rate_limit_max": (rate.get("max_requests"), int),
        "rate_limit_window_s": (rate.get("window_s"), int),
        "sandbox_dir": (data.get("sandbox_dir"), lambda v: Path(str(v))),
        "exec_path": (data.get("exec_path"), str),
    }
    update: Dict[str, Any] = {
        name: cast(value)
        for name, (value, cast) in candidates.items()
        if value is not None and name not in s.model_fields_set
    }
    if runtimes and "runtimes" not in s.model_fields_set:
        update["runtimes"] = {str(k): str(v) for k, v in runtimes.items()}

    # 2) Merge vào Settings (dùng đúng kiểu Path/int/str)
    return s.model_copy(update=update)
