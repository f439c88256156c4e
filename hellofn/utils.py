import json
import os
from pathlib import Path
from typing import Dict


HELLOFN_HOME_ENV = "HELLOFN_HOME"
SYSTEM_CONFIG_PATH = Path("/etc/hellofn/config.json")

FUNCTION_JSON = "function.json"
HOST_JSON = "host.json"
LOCAL_SETTINGS_JSON = "local.settings.json"
DEFAULT_ROUTE_PREFIX = "api"


def get_home() -> Path:
    # 1) explicit environment wins
    home = os.environ.get(HELLOFN_HOME_ENV)
    if home:
        return Path(home).expanduser()
    # 2) system-wide config
    try:
        if SYSTEM_CONFIG_PATH.exists():
            cfg = read_json(SYSTEM_CONFIG_PATH)
            sys_home = cfg.get("home")
            if sys_home:
                return Path(str(sys_home)).expanduser()
    except (OSError, ValueError):
        # fall through to per-user default if config unreadable
        pass
    # 3) per-user default
    return Path.home() / ".hellofn"


def logs_dir() -> Path:
    return get_home() / "logs"


def ensure_dirs() -> None:
    logs_dir().mkdir(parents=True, exist_ok=True)


def log_path(name: str) -> Path:
    return logs_dir() / f"{name}.log"


def fn_dir(root: Path, name: str) -> Path:
    return Path(root) / name


def fn_config_path(root: Path, name: str) -> Path:
    return fn_dir(root, name) / FUNCTION_JSON


def read_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True)
        f.write("\n")
    os.replace(tmp, path)


def route_prefix(root: Path) -> str:
    """Route prefix from host.json (extensions.http.routePrefix), default "api"."""
    path = Path(root) / HOST_JSON
    if not path.exists():
        return DEFAULT_ROUTE_PREFIX
    cfg = read_json(path)
    prefix = ((cfg.get("extensions") or {}).get("http") or {}).get("routePrefix", DEFAULT_ROUTE_PREFIX)
    return str(prefix).strip("/")


def load_local_settings(root: Path) -> Dict[str, str]:
    """
    Export local.settings.json "Values" into the environment.

    Variables that are already set are left alone. Returns the values that
    were applied.
    """
    path = Path(root) / LOCAL_SETTINGS_JSON
    if not path.exists():
        return {}
    cfg = read_json(path)
    applied = {}
    for key, value in (cfg.get("Values") or {}).items():
        if key in os.environ:
            continue
        os.environ[key] = str(value)
        applied[key] = str(value)
    return applied
