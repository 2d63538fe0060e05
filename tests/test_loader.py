from __future__ import annotations

from pathlib import Path

import allure
import pytest

from simple_mcp.errors import ConfigurationError
from simple_mcp.loader import load_config, parse_config

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("YAML Loader"),
]

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def test_loads_legacy_context_items(write_config) -> None:
    path = write_config(
        """  contextItems:
    - name: TestTool
      command: echo test {{.arg1}}
      parameters: ["arg1"]
""",
    )

    definition = load_config(path)

    assert definition.name == "test-mcp"
    assert definition.api_version == "v1"
    assert [tool.name for tool in definition.tools] == ["TestTool"]
    assert definition.tools[0].parameters == ("arg1",)


def test_loads_tools_with_all_fields(write_config) -> None:
    path = write_config(
        """  tools:
    - name: Upgrade
      description: Upgrade packages
      command: zypper up
      async: true
      timeoutSeconds: 3600
""",
    )

    tool = load_config(path).tool("Upgrade")

    assert tool is not None
    assert tool.description == "Upgrade packages"
    assert tool.is_async
    assert tool.timeout_seconds == 3600
    assert tool.effective_timeout == 3600


def test_missing_timeout_defaults_to_thirty_seconds(write_config) -> None:
    path = write_config("  tools:\n    - name: Quick\n      command: uptime\n")

    tool = load_config(path).tool("Quick")

    assert tool is not None
    assert tool.effective_timeout == 30


def test_both_tool_keys_is_an_error(write_config) -> None:
    path = write_config(
        """  contextItems:
    - name: A
      command: echo a
  tools:
    - name: B
      command: echo b
""",
    )

    with pytest.raises(ConfigurationError, match="both 'contextItems' and 'tools' are defined"):
        load_config(path)


def test_invalid_yaml_reports_line() -> None:
    with pytest.raises(ConfigurationError, match="line"):
        parse_config("spec:\n  tools: [a, b\n")


def test_options_are_read_from_spec(write_config) -> None:
    path = write_config(
        """  listenAddr: ":9090"
  tmpDir: "/tmp/custom"
  verbose: true
  maxAsyncTasks: 5
  tools:
    - name: TestTool
      command: echo test
""",
    )

    options = load_config(path).options

    assert options.listen_addr == ":9090"
    assert options.tmp_dir == "/tmp/custom"
    assert options.verbose is True
    assert options.max_async_tasks == 5


def test_absent_options_stay_unset(write_config) -> None:
    options = load_config(write_config("  tools: []\n")).options

    assert options.listen_addr is None
    assert options.tmp_dir is None
    assert options.verbose is None
    assert options.max_async_tasks is None


@pytest.mark.parametrize(
    ("body", "message"),
    [
        ("  tools:\n    - command: echo\n", "has no name"),
        ("  tools:\n    - name: A\n", "has no command"),
        ("  tools:\n    - name: ping\n      command: echo\n", "built-in"),
        (
            "  tools:\n    - name: A\n      command: echo\n    - name: A\n      command: echo\n",
            "duplicate tool name",
        ),
        ("  tools:\n    - name: A\n      command: echo {{.x}}\n", "undeclared parameters: x"),
        ("  tools:\n    - name: A\n      command: echo {{.x\n      parameters: [x]\n", "unclosed"),
        ("  tools:\n    - name: A\n      command: echo\n      parameters: [bad-name]\n", "invalid"),
        ("  tools:\n    - name: A\n      command: echo\n      parameters: [_hidden]\n", "invalid"),
        ("  tools:\n    - name: A\n      command: echo\n      parameters: [x, x]\n", "twice"),
        ("  tools:\n    - name: A\n      command: echo\n      timeoutSeconds: soon\n", "integer"),
        ("  resources:\n    - description: no uri\n", "has no uri"),
        (
            "  resources:\n    - uri: a://b\n      content: x\n"
            "    - uri: a://b\n      content: y\n",
            "duplicate resource uri",
        ),
        ("  resources:\n    - uri: a://b\n      contentFile: missing.txt\n", "contentFile"),
        ("  resources:\n    - uri: a://b\n      directory: missing\n", "does not exist"),
        ("  verbose: sometimes\n", "boolean"),
    ],
)
def test_validation_errors(write_config, body: str, message: str) -> None:
    with pytest.raises(ConfigurationError, match=message):
        load_config(write_config(body))


def test_top_level_must_be_a_mapping() -> None:
    with pytest.raises(ConfigurationError, match="mapping"):
        parse_config("- just\n- a list\n")


def test_missing_file_is_a_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="failed to read config file"):
        load_config(tmp_path / "absent.yaml")


def test_content_file_is_relative_to_config(tmp_path: Path, write_config) -> None:
    (tmp_path / "overview.txt").write_text("from file\n")
    path = write_config(
        """  resources:
    - uri: simple-mcp://system/overview
      description: Overview
      contentFile: overview.txt
""",
    )

    (resource,) = load_config(path).resources

    assert resource.content == "from file\n"
    assert resource.description == "Overview"
    assert not resource.is_dynamic


def test_directory_resource_expands_recursively(tmp_path: Path, write_config) -> None:
    docs = tmp_path / "docs"
    (docs / "subdir").mkdir(parents=True)
    (docs / "file1.txt").write_text("content1")
    (docs / "subdir" / "file2.txt").write_text("content2")
    path = write_config(
        """  resources:
    - uri: "simple-mcp://docs"
      description: "Test Docs"
      directory: "docs"
""",
    )

    resources = {resource.uri: resource for resource in load_config(path).resources}

    assert set(resources) == {"simple-mcp://docs/file1.txt", "simple-mcp://docs/subdir/file2.txt"}
    assert resources["simple-mcp://docs/file1.txt"].content == "content1"
    assert resources["simple-mcp://docs/subdir/file2.txt"].content == "content2"


def test_directory_resource_accepts_absolute_path(tmp_path: Path, write_config) -> None:
    docs = tmp_path / "elsewhere"
    docs.mkdir()
    (docs / "info.txt").write_text("info content")
    path = write_config(
        f"""  resources:
    - uri: "simple-mcp://docs/"
      directory: "{docs}"
""",
    )

    (resource,) = load_config(path).resources

    assert resource.uri == "simple-mcp://docs/info.txt"
    assert resource.content == "info content"


def test_bundled_example_config_is_valid() -> None:
    definition = load_config(PROJECT_ROOT / "simple-mcp.yaml")

    assert definition.name == "dynamic-mcp-context"
    assert definition.tools
    overview = next(r for r in definition.resources if r.uri == "simple-mcp://system/overview")
    assert overview.content == (
        "This is a detailed overview of the system, loaded from an external file.\n"
    )
