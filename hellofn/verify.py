"""
Project self-check.

Each section reads one or more project files and evaluates a list of named
boolean checks against their content. A file that is missing or cannot be
parsed fails its section with the error text instead of aborting the run.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple


REQUIRED_FILES = [
    "HelloWorld/__init__.py",
    "HelloWorld/function.json",
    "tests/test_hello_world.py",
    "setup.py",
    "requirements.txt",
    "Jenkinsfile",
    "README.md",
    "pytest.ini",
    "host.json",
    "local.settings.json",
]

PROJECT_NAME = "azure-function-hello-world"
MIN_TESTS = 3


@dataclass
class Section:
    title: str
    checks: List[Tuple[str, bool]] = field(default_factory=list)
    summary_ok: str = ""
    summary_fail: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and all(passed for _, passed in self.checks)

    @property
    def summary(self) -> str:
        return self.summary_ok if self.ok else self.summary_fail


def _read(root: Path, rel: str) -> str:
    return (root / rel).read_text(encoding="utf-8")


def check_required_files(root: Path) -> Section:
    section = Section("Checking Required Files", summary_ok="All required files present", summary_fail="Some files missing")
    for rel in REQUIRED_FILES:
        section.checks.append((rel, (root / rel).exists()))
    return section


def check_manifest(root: Path) -> Section:
    section = Section("Checking setup.py", summary_ok="setup.py structure correct", summary_fail="setup.py issues found")
    text = _read(root, "setup.py")
    section.checks = [
        (f"Name: {PROJECT_NAME}", re.search(rf"name\s*=\s*[\"']{re.escape(PROJECT_NAME)}[\"']", text) is not None),
        ("Azure Functions dependency", re.search(r"[\"']azure-functions\b", text) is not None),
        ("pytest test extra", "extras_require" in text and re.search(r"[\"']pytest\b", text) is not None),
        ("Console script", "hellofn=hellofn.cli:main" in text),
    ]
    return section


def check_function_code(root: Path) -> Section:
    section = Section("Checking Azure Function", summary_ok="Function code correct", summary_fail="Function code issues")
    entry = _read(root, "HelloWorld/__init__.py")
    core = _read(root, "hellofn/handler.py")
    host = _read(root, "hellofn/host.py")
    section.checks = [
        ("Exports main", re.search(r"\bmain\b", entry) is not None),
        ("Delegates to hellofn", "hellofn" in entry),
        ("Sets response", "HttpResponse" in host),
        ("Contains Hello greeting", "Hello, " in core and '"World"' in core),
        ("Returns 200 status", "status=200" in core),
    ]
    return section


def check_function_config(root: Path) -> Section:
    section = Section("Checking Function Configuration", summary_ok="Function config correct", summary_fail="Function config issues")
    cfg = json.loads(_read(root, "HelloWorld/function.json"))
    bindings = cfg.get("bindings") or []
    first = bindings[0] if len(bindings) > 0 else {}
    second = bindings[1] if len(bindings) > 1 else {}
    section.checks = [
        ("Has bindings", len(bindings) >= 2),
        ("HTTP trigger", first.get("type") == "httpTrigger"),
        ("Anonymous auth", first.get("authLevel") == "anonymous"),
        ("HTTP output", second.get("type") == "http"),
    ]
    return section


def check_tests(root: Path) -> Section:
    section = Section("Checking Test Cases", summary_ok=f"Meets requirement ({MIN_TESTS}+ tests)", summary_fail="Insufficient tests")
    text = _read(root, "tests/test_hello_world.py")
    test_count = len(re.findall(r"^\s*(?:async\s+)?def test_", text, re.MULTILINE))
    class_count = len(re.findall(r"^class Test", text, re.MULTILINE))
    section.checks = [
        (f"Test functions found: {test_count}", test_count >= MIN_TESTS),
        (f"Test classes found: {class_count}", True),
    ]
    return section


def check_pipeline(root: Path) -> Section:
    section = Section("Checking Jenkins Pipeline", summary_ok="Jenkinsfile complete", summary_fail="Jenkinsfile issues")
    text = _read(root, "Jenkinsfile")
    section.checks = [
        ("Pipeline structure", "pipeline" in text),
        ("Has stages", "stage" in text),
        ("Build stage", "Build" in text),
        ("Test stage", "Test" in text),
        ("Deploy stage", "Deploy" in text),
        ("pip install", "pip install" in text),
        ("pytest", "pytest" in text),
        ("Azure deployment", "az functionapp" in text),
    ]
    return section


def check_test_config(root: Path) -> Section:
    section = Section("Checking pytest Configuration", summary_ok="pytest config correct", summary_fail="pytest config issues")
    text = _read(root, "pytest.ini")
    section.checks = [
        ("[pytest] section", "[pytest]" in text),
        ("Test paths", re.search(r"^testpaths\s*=\s*tests\b", text, re.MULTILINE) is not None),
        ("Test file pattern", re.search(r"^python_files\s*=", text, re.MULTILINE) is not None),
        ("Coverage enabled", re.search(r"^addopts\s*=.*--cov=\S+", text, re.MULTILINE) is not None),
        ("Coverage directory", re.search(r"--cov-report=html:coverage\b", text) is not None),
    ]
    return section


CHECKS: List[Callable[[Path], Section]] = [
    check_required_files,
    check_manifest,
    check_function_code,
    check_function_config,
    check_tests,
    check_pipeline,
    check_test_config,
]


def run_checks(root: Path) -> List[Section]:
    root = Path(root)
    sections = []
    for check in CHECKS:
        try:
            sections.append(check(root))
        except (OSError, ValueError) as e:
            title = check.__name__[len("check_"):].replace("_", " ").capitalize()
            sections.append(Section(title, error=f"Error reading files: {e}"))
    return sections


def format_report(sections: List[Section]) -> str:
    lines = ["Project Verification", "====================", ""]
    for i, section in enumerate(sections, 1):
        lines.append(f"{i}. {section.title}:")
        if section.error is not None:
            lines.append(f"   ❌ {section.error}")
            lines.append("")
            continue
        for label, passed in section.checks:
            lines.append(f"   {'✅' if passed else '❌'} {label}")
        lines.append(f"   {'✅' if section.ok else '❌'} {section.summary}")
        lines.append("")
    lines.append("====================")
    ok = all(s.ok for s in sections)
    lines.append("Verification passed" if ok else "Verification failed")
    return "\n".join(lines)
