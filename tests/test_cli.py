"""Tests for resharper_sonar/cli.py"""

import json
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from resharper_sonar.cli import cli

REPORT = """\
<?xml version="1.0" encoding="utf-8"?>
<Report ToolsVersion="8.1">
  <Issues>
    <Project Name="Core">
      <Issue TypeId="UnusedVariable" File="Core\\Foo.cs" Line="12" Message="Unused variable 'x'" />
      <Issue TypeId="MyInspection" File="Core\\Foo.cs" Line="14" Message="Custom" />
    </Project>
    <Project Name="Web">
      <Issue TypeId="UnusedVariable" File="Web\\Bar.cs" Line="1" Message="Other project" />
    </Project>
  </Issues>
  <IssueTypes>
    <IssueType Id="MyInspection" Category="Custom" Severity="HINT" />
  </IssueTypes>
</Report>
"""


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch) -> Path:
    for name in ("RESHARPER_INSTALL_DIR", "RESHARPER_REPORT_PATH", "SONAR_URL", "SONAR_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    (tmp_path / "App.sln").write_text("")
    (tmp_path / "Core").mkdir()
    (tmp_path / "report.xml").write_text(REPORT, encoding="utf-8")
    (tmp_path / "resharper-config.yaml").write_text(textwrap.dedent(f"""\
        solution: "{tmp_path / 'App.sln'}"
        report_path: "$(SolutionDir)/report.xml"
        projects:
          Core: "Core"
          Web: "Web"
        inspectcode:
          install_dir: "/opt/jb"
        """), encoding="utf-8")
    return tmp_path


def _invoke(workspace: Path, *args: str):
    runner = CliRunner()
    return runner.invoke(cli, ["--config", str(workspace / "resharper-config.yaml"), *args])


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------

def test_parse_emits_report(workspace):
    result = _invoke(workspace, "parse", "Core")
    assert result.exit_code == 0, result.output

    report = json.loads(result.stdout)
    assert report["project"] == "Core"
    assert report["missing_issue_types"] == ["MyInspection"]
    rules = [v["rule"] for v in report["violations"]]
    assert rules == ["UnusedVariable", "Sonar.UnknownIssueType"]
    assert report["violations"][0]["line"] == 12


def test_parse_verbose(workspace):
    result = _invoke(workspace, "--verbose", "parse", "Core")
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["project"] == "Core"


def test_parse_generic_format(workspace):
    result = _invoke(workspace, "parse", "Core", "--format", "generic")
    assert result.exit_code == 0, result.output
    issues = json.loads(result.stdout)["issues"]
    assert [i["ruleId"] for i in issues] == ["UnusedVariable"]


def test_parse_writes_output_file(workspace):
    out = workspace / "out.json"
    runner = CliRunner()
    result = runner.invoke(cli, [
        "--config", str(workspace / "resharper-config.yaml"),
        "--output", str(out), "--pretty", "parse", "Core",
    ])
    assert result.exit_code == 0, result.output
    assert json.loads(out.read_text(encoding="utf-8"))["summary"]["total"] == 2


def test_parse_unknown_project(workspace):
    result = _invoke(workspace, "parse", "Nope")
    assert result.exit_code == 1
    assert "Project error" in result.output


def test_parse_missing_report(workspace):
    result = _invoke(workspace, "parse", "Core", "--report", "missing.xml")
    assert result.exit_code == 1
    assert "Not found" in result.output


def test_parse_malformed_report(workspace):
    (workspace / "bad.xml").write_text("<Report><Issues>", encoding="utf-8")
    result = _invoke(workspace, "parse", "Core", "--report", "$(SolutionDir)/bad.xml")
    assert result.exit_code == 1
    assert "Report error" in result.output


def test_from_server_requires_server_config(workspace):
    result = _invoke(workspace, "rules", "--from-server")
    assert result.exit_code == 1
    assert "server.url" in result.output


# ---------------------------------------------------------------------------
# command / rules / init
# ---------------------------------------------------------------------------

def test_command_prints_argv(workspace):
    result = _invoke(workspace, "command", "Core")
    assert result.exit_code == 0, result.output
    argv = json.loads(result.stdout)
    assert argv[0] == str(Path("/opt/jb") / "inspectcode.exe")
    assert argv[1] == "/project=Core"
    assert argv[-1] == str(workspace / "App.sln")


def test_command_ambiguous_settings(workspace):
    (workspace / "Core" / "a.DotSettings").write_text("")
    (workspace / "Core" / "b.DotSettings").write_text("")
    config = workspace / "resharper-config.yaml"
    config.write_text(
        config.read_text(encoding="utf-8") + '  settings_file: "*.DotSettings"\n', encoding="utf-8"
    )
    result = _invoke(workspace, "command", "Core")
    assert result.exit_code == 1
    assert "Ambiguous settings" in result.output


def test_rules_lists_catalog(workspace):
    result = _invoke(workspace, "rules")
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["repository"] == "resharper-cs"
    assert data["total"] == len(data["rules"])


def test_init_writes_template(tmp_path):
    out = tmp_path / "cfg.yaml"
    result = CliRunner().invoke(cli, ["init", "--output", str(out)])
    assert result.exit_code == 0
    assert out.exists()


def test_missing_config(tmp_path):
    result = CliRunner().invoke(cli, ["--config", str(tmp_path / "none.yaml"), "rules"])
    assert result.exit_code == 1
    assert "Configuration error" in result.output
