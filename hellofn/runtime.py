import asyncio
import importlib.util
import inspect
import json
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple
from urllib.parse import urlencode

import azure.functions as func

from .utils import FUNCTION_JSON, fn_config_path, log_path, read_json


@dataclass
class FunctionSpec:
    name: str
    script_file: str = "__init__.py"
    entry_point: str = "main"
    auth_level: str = "function"
    methods: List[str] = field(default_factory=lambda: ["get", "post"])
    route: str = ""

    def allows(self, method: str) -> bool:
        return method.lower() in self.methods


_PY_CACHE_LOCK = threading.Lock()
_PY_MODULE_CACHE: Dict[str, Tuple[float, Callable]] = {}


def load_spec(root: Path, name: str) -> FunctionSpec:
    cfg = read_json(fn_config_path(root, name))
    bindings = cfg.get("bindings") or []
    trigger = next((b for b in bindings if b.get("type") == "httpTrigger" and b.get("direction", "in") == "in"), None)
    if trigger is None:
        raise RuntimeError(f"Function '{name}' has no httpTrigger input binding")
    if not any(b.get("type") == "http" and b.get("direction") == "out" for b in bindings):
        raise RuntimeError(f"Function '{name}' has no http output binding")
    return FunctionSpec(
        name=name,
        script_file=cfg.get("scriptFile", "__init__.py"),
        entry_point=cfg.get("entryPoint", "main"),
        auth_level=trigger.get("authLevel", "function"),
        methods=[m.lower() for m in trigger.get("methods") or ["get", "post"]],
        route=trigger.get("route") or name,
    )


def discover_functions(root: Path) -> List[FunctionSpec]:
    specs = []
    for p in sorted(Path(root).glob("*")):
        if p.is_dir() and (p / FUNCTION_JSON).exists():
            specs.append(load_spec(root, p.name))
    return specs


def _import_entry_point(base: Path, spec: FunctionSpec) -> Callable:
    file_path = base / spec.script_file
    mtime = file_path.stat().st_mtime
    cache_key = f"{file_path}:{spec.entry_point}"
    with _PY_CACHE_LOCK:
        cached = _PY_MODULE_CACHE.get(cache_key)
        if cached and cached[0] == mtime:
            return cached[1]
        # load fresh
        mod_spec = importlib.util.spec_from_file_location(f"hellofn_{spec.name}_{abs(hash(cache_key))}", str(file_path))
        if mod_spec is None or mod_spec.loader is None:
            raise RuntimeError(f"Cannot load module from {file_path}")
        mod = importlib.util.module_from_spec(mod_spec)
        sys.modules[mod_spec.name] = mod
        mod_spec.loader.exec_module(mod)  # type: ignore
        entry = getattr(mod, spec.entry_point, None)
        if entry is None:
            raise RuntimeError(f"{file_path} has no entry point '{spec.entry_point}'")
        _PY_MODULE_CACHE[cache_key] = (mtime, entry)
        return entry


def build_request(event: Dict[str, Any]) -> func.HttpRequest:
    query = event.get("query") or {}
    url = event.get("url") or "http://localhost/"
    if query and "?" not in url:
        url = f"{url}?{urlencode(query)}"
    body = event.get("body") or b""
    if isinstance(body, str):
        body = body.encode()
    return func.HttpRequest(
        method=event.get("method", "GET"),
        url=url,
        headers=event.get("headers") or {},
        params=query,
        route_params={},
        body=body,
    )


def invoke_function(spec: FunctionSpec, base_dir: Path, event: Dict[str, Any]) -> Tuple[int, Dict[str, str], bytes]:
    entry = _import_entry_point(base_dir, spec)
    req = build_request(event)
    if inspect.iscoroutinefunction(entry):
        result = asyncio.run(entry(req))
    else:
        result = entry(req)
    return normalize_result(result)


def normalize_result(result: Any) -> Tuple[int, Dict[str, str], bytes]:
    if not isinstance(result, func.HttpResponse):
        raise RuntimeError(f"Expected HttpResponse from entry point, got {type(result).__name__}")
    headers = dict(result.headers)
    if not any(k.lower() == "content-type" for k in headers):
        headers["Content-Type"] = result.mimetype
    return int(result.status_code), headers, result.get_body()


def write_log(name: str, record: Dict[str, Any]) -> None:
    path = log_path(name)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(record, sort_keys=True))
        f.write("\n")
