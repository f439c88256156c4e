import json
import shutil
import tempfile
from pathlib import Path

import hellofn.cli as cli
from hellofn.verify import REQUIRED_FILES, format_report, run_checks


ROOT = Path(__file__).resolve().parents[1]


def test_setup_py_declares_name_and_dependencies():
    text = (ROOT / "setup.py").read_text(encoding="utf-8")
    assert 'name="azure-function-hello-world"' in text
    assert '"azure-functions"' in text
    assert '"pytest"' in text
    assert "hellofn=hellofn.cli:main" in text


def test_function_json_configuration():
    cfg = json.loads((ROOT / "HelloWorld" / "function.json").read_text(encoding="utf-8"))
    bindings = cfg["bindings"]
    assert len(bindings) == 2
    assert bindings[0]["type"] == "httpTrigger"
    assert bindings[0]["authLevel"] == "anonymous"
    assert bindings[1]["type"] == "http"


def test_host_json_route_prefix():
    cfg = json.loads((ROOT / "host.json").read_text(encoding="utf-8"))
    assert cfg["version"] == "2.0"
    assert cfg["extensions"]["http"]["routePrefix"] == "api"


def test_verify_passes_on_this_project():
    sections = run_checks(ROOT)
    report = format_report(sections)
    print(report)
    assert all(s.ok for s in sections), report
    assert report.endswith("Verification passed")


def test_verify_reports_missing_files_without_aborting():
    with tempfile.TemporaryDirectory() as td:
        root = Path(td)
        sections = run_checks(root)
        print(format_report(sections))
        assert len(sections) == 7
        assert not any(s.ok for s in sections)
        files = sections[0]
        assert [label for label, _ in files.checks] == REQUIRED_FILES
        assert not any(passed for _, passed in files.checks)
        # every file-reading section fails with the error text instead of raising
        assert all(s.error is not None for s in sections[1:])


def test_verify_flags_bad_function_config_and_few_tests():
    with tempfile.TemporaryDirectory() as td:
        root = Path(td)
        for rel in REQUIRED_FILES + ["hellofn/handler.py", "hellofn/host.py"]:
            (root / rel).parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(ROOT / rel, root / rel)
        (root / "HelloWorld" / "function.json").write_text(json.dumps({
            "bindings": [{"type": "httpTrigger", "authLevel": "function"}, {"type": "http"}],
        }), encoding="utf-8")
        (root / "tests" / "test_hello_world.py").write_text("def test_one():\n    pass\n", encoding="utf-8")
        (root / "pytest.ini").write_text("[pytest]\ntestpaths = tests\npython_files = test_*.py\n", encoding="utf-8")

        sections = {s.title: s for s in run_checks(root)}
        print(format_report(list(sections.values())))
        assert sections["Checking Required Files"].ok
        config = sections["Checking Function Configuration"]
        assert not config.ok
        assert dict(config.checks)["Anonymous auth"] is False
        assert dict(config.checks)["HTTP trigger"] is True
        tests = sections["Checking Test Cases"]
        assert not tests.ok
        assert tests.summary == "Insufficient tests"
        test_config = sections["Checking pytest Configuration"]
        assert not test_config.ok
        assert dict(test_config.checks)["Test paths"] is True
        assert dict(test_config.checks)["Coverage enabled"] is False
        assert dict(test_config.checks)["Coverage directory"] is False


def test_verify_command_exit_codes(capsys):
    assert cli.main(["verify", "--root", str(ROOT)]) == 0
    assert "Verification passed" in capsys.readouterr().out
    with tempfile.TemporaryDirectory() as td:
        assert cli.main(["verify", "--root", td]) == 1
        assert "Verification failed" in capsys.readouterr().out
