import json
import os
from typing import Any, Dict, Optional

_CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "config.json")


def _env_bool(name: str, default: Any) -> bool:
    return str(os.getenv(name, str(default))).lower() != "false"


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    cfg: Dict[str, Any] = {}
    config_path = path or _CONFIG_PATH
    base_dir = os.getcwd()
    if os.path.exists(config_path):
        base_dir = os.path.dirname(os.path.abspath(config_path))
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = json.load(f)

    # Environment overrides for the upstream API
    api = cfg.get("api", {})
    api["base_url"] = os.getenv("API_BASE_URL", api.get("base_url", "https://randomuser.me/api")).rstrip("/")
    api["results"] = int(os.getenv("API_RESULTS", api.get("results", 5000)))
    api["verify_ssl"] = _env_bool("API_VERIFY_SSL", api.get("verify_ssl", True))
    api["default_timeout"] = float(os.getenv("API_TIMEOUT", api.get("default_timeout", 30.0)))
    api["default_retries"] = int(os.getenv("API_RETRIES", api.get("default_retries", 3)))
    api["default_backoff_base"] = float(os.getenv("API_BACKOFF_BASE", api.get("default_backoff_base", 0.5)))
    api["chunk_size"] = int(os.getenv("API_CHUNK_SIZE", api.get("chunk_size", 65536)))

    # Output file; relative paths resolve against the config file, or the cwd without one
    output = cfg.get("output", {})
    out_path = os.getenv("OUTPUT_PATH", output.get("path", os.path.join("tmp", "output.csv")))
    if not os.path.isabs(out_path):
        out_path = os.path.join(base_dir, out_path)
    output["path"] = out_path
    output["quoting"] = os.getenv("CSV_QUOTING", output.get("quoting", "none")).lower()
    output["atomic"] = _env_bool("OUTPUT_ATOMIC", output.get("atomic", True))

    cfg["api"] = api
    cfg["output"] = output
    return cfg
