"""CLI tests for the ``apinav`` Typer application.

Commands run through Typer's CliRunner inside an isolated config directory.
``--plain --no-color`` keeps the output free of Rich markup and wrapping.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from apinav import __version__
from apinav.app import app, main
from apinav.exceptions import SpecError, UnknownAPIError, UnknownProfileError

PLAIN = ["--plain", "--no-color"]


@pytest.fixture
def widgets_configured(config_dir: Path, widgets_path: Path) -> Path:
    """Global registry holding the widgets API backed by the fixture document."""
    path = config_dir / "apis.json"
    path.write_text(
        json.dumps(
            {
                "widgets": {
                    "base": "https://api.example.com/v1",
                    "spec_files": [str(widgets_path)],
                    "profiles": {
                        "staging": {"base": "https://staging.example.com/v1"},
                    },
                }
            }
        ),
        encoding="utf-8",
    )
    return path


class TestRoot:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"apinav {__version__}" in result.output

    def test_main_maps_errors_to_exit_codes(self) -> None:
        with patch("apinav.app._setup_signal_handlers"), patch(
            "apinav.app.app", side_effect=SpecError("broken document")
        ):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 7

    def test_main_unexpected_error(self) -> None:
        with patch("apinav.app._setup_signal_handlers"), patch(
            "apinav.app.app", side_effect=RuntimeError("boom")
        ):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1


class TestAPIList:
    def test_empty(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, PLAIN + ["api", "list"])
        assert result.exit_code == 0
        assert "No APIs configured" in result.output

    def test_lists_merged_view(self, cli_runner, widgets_configured: Path, isolated_config: Path) -> None:
        (isolated_config / "work" / ".apinav.yaml").write_text(
            "local:\n  base: https://local.example.com\n", encoding="utf-8"
        )
        result = cli_runner.invoke(app, PLAIN + ["api", "list"])
        assert result.exit_code == 0
        assert "Name\tBase\tSpec files\tProfiles" in result.output
        assert "widgets\thttps://api.example.com/v1\t" in result.output
        assert "\tstaging" in result.output
        assert "local\thttps://local.example.com\t-\t-" in result.output

    def test_config_option(self, cli_runner, isolated_config: Path) -> None:
        chosen = isolated_config / "chosen.json"
        chosen.write_text(json.dumps({"chosen": {"base": "https://c.example.com"}}))
        result = cli_runner.invoke(app, PLAIN + ["--config", str(chosen), "api", "list"])
        assert result.exit_code == 0
        assert "chosen\thttps://c.example.com" in result.output


class TestAPIShow:
    def test_show(self, cli_runner, widgets_configured: Path) -> None:
        result = cli_runner.invoke(app, ["--json", "--no-color", "api", "show", "widgets"])
        assert result.exit_code == 0
        assert '"base": "https://api.example.com/v1"' in result.output

    def test_unknown_api(self, cli_runner, widgets_configured: Path) -> None:
        result = cli_runner.invoke(app, PLAIN + ["api", "show", "missing"])
        assert isinstance(result.exception, UnknownAPIError)
        assert "widgets" in str(result.exception)


class TestAPIProfiles:
    def test_profiles(self, cli_runner, widgets_configured: Path) -> None:
        result = cli_runner.invoke(app, PLAIN + ["api", "profiles", "widgets"])
        assert result.exit_code == 0
        assert "staging\thttps://staging.example.com/v1\t-" in result.output

    def test_no_profiles(self, cli_runner, config_dir: Path) -> None:
        (config_dir / "apis.json").write_text(json.dumps({"bare": {"base": "https://b"}}))
        result = cli_runner.invoke(app, PLAIN + ["api", "profiles", "bare"])
        assert result.exit_code == 0
        assert "declares no profiles" in result.output


class TestAPISync:
    def test_lists_visible_operations(self, cli_runner, widgets_configured: Path) -> None:
        result = cli_runner.invoke(app, PLAIN + ["api", "sync", "widgets"])
        assert result.exit_code == 0, result.output
        assert "Widgets API (https://api.example.com/v1)" in result.output
        assert "list-widgets\tGET\thttps://api.example.com/v1/widgets\twidgets\t" in result.output
        assert "replace\tPUT\t" in result.output
        assert "delete-widgets-id" not in result.output

    def test_all_includes_hidden(self, cli_runner, widgets_configured: Path) -> None:
        result = cli_runner.invoke(app, PLAIN + ["api", "sync", "widgets", "--all"])
        assert result.exit_code == 0
        assert "delete-widgets-id\tDELETE\t" in result.output
        assert "\tdeprecated" in result.output

    def test_profile_base_reported(self, cli_runner, widgets_configured: Path) -> None:
        result = cli_runner.invoke(app, PLAIN + ["-p", "staging", "api", "sync", "widgets"])
        assert result.exit_code == 0
        assert "(https://staging.example.com/v1)" in result.output

    def test_unknown_profile(self, cli_runner, widgets_configured: Path) -> None:
        result = cli_runner.invoke(app, PLAIN + ["api", "sync", "widgets", "--profile", "prod"])
        assert isinstance(result.exception, UnknownProfileError)
        assert "staging" in str(result.exception)


class TestAPIDescribe:
    def test_by_name(self, cli_runner, widgets_configured: Path) -> None:
        result = cli_runner.invoke(app, PLAIN + ["api", "describe", "widgets", "create-widget"])
        assert result.exit_code == 0
        assert "POST https://api.example.com/v1/widgets" in result.output
        assert "Create a widget" in result.output
        assert "## Responses 200/201 (application/json)" in result.output
        assert "apinav widgets create-widget name: Sprocket, size.width: 3" in result.output

    def test_by_alias(self, cli_runner, widgets_configured: Path) -> None:
        result = cli_runner.invoke(app, PLAIN + ["api", "describe", "widgets", "getwidget"])
        assert result.exit_code == 0
        assert "GET https://api.example.com/v1/widgets/{id}" in result.output

    def test_unknown_operation(self, cli_runner, widgets_configured: Path) -> None:
        result = cli_runner.invoke(app, PLAIN + ["api", "describe", "widgets", "nope"])
        assert result.exit_code == 4
        assert "Operation 'nope' not found" in result.output


class TestAPIAdd:
    def test_add_applies_auto_config(
        self, cli_runner, config_dir: Path, widgets_path: Path
    ) -> None:
        result = cli_runner.invoke(
            app,
            PLAIN
            + [
                "api",
                "add",
                "widgets",
                "https://api.example.com/v1",
                "--spec",
                str(widgets_path),
                "--no-input",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "saved to" in result.output

        saved = json.loads((config_dir / "apis.json").read_text())
        entry = saved["widgets"]
        assert entry["spec_files"] == [str(widgets_path)]
        default = entry["profiles"]["default"]
        assert default["headers"] == {"Accept": "application/json"}
        assert default["auth"]["name"] == "oauth-authorization-code"
        assert default["auth"]["params"]["client_id"] == "abc123"
        assert default["auth"]["params"]["audience"] == "https://api.example.com"

    def test_add_prompts(self, cli_runner, config_dir: Path, widgets_path: Path) -> None:
        result = cli_runner.invoke(
            app,
            PLAIN + ["api", "add", "widgets", "https://api.example.com/v1", "-s", str(widgets_path)],
            input="my-client\n",
        )
        assert result.exit_code == 0, result.output
        saved = json.loads((config_dir / "apis.json").read_text())
        assert saved["widgets"]["profiles"]["default"]["auth"]["params"]["client_id"] == "my-client"

    def test_add_without_description(self, cli_runner, config_dir: Path) -> None:
        request = httpx.Request("GET", "https://foo.example.com/openapi.json")
        with patch(
            "apinav.openapi.loader.httpx.get",
            side_effect=httpx.ConnectError("offline", request=request),
        ):
            result = cli_runner.invoke(
                app, PLAIN + ["api", "add", "foo", "https://foo.example.com", "--no-input"]
            )
        assert result.exit_code == 0, result.output
        assert "Could not load the API description" in result.output
        saved = json.loads((config_dir / "apis.json").read_text())
        assert saved["foo"] == {"base": "https://foo.example.com"}

    def test_relative_spec_usable_from_other_directory(
        self, cli_runner, config_dir: Path, isolated_config: Path, widgets_path: Path, monkeypatch
    ) -> None:
        project = isolated_config / "proj"
        project.mkdir()
        (project / "openapi.yaml").write_text(widgets_path.read_text(encoding="utf-8"), encoding="utf-8")
        monkeypatch.chdir(project)
        result = cli_runner.invoke(
            app,
            PLAIN
            + ["api", "add", "w", "https://api.example.com/v1", "--spec", "openapi.yaml", "--no-input"],
        )
        assert result.exit_code == 0, result.output

        saved = json.loads((config_dir / "apis.json").read_text())
        (spec_file,) = saved["w"]["spec_files"]
        assert Path(spec_file).resolve() == (project / "openapi.yaml").resolve()

        elsewhere = isolated_config / "other"
        elsewhere.mkdir()
        monkeypatch.chdir(elsewhere)
        result = cli_runner.invoke(app, PLAIN + ["api", "sync", "w"])
        assert result.exit_code == 0, result.output
        assert "list-widgets\tGET\t" in result.output

    def test_duplicate_base(self, cli_runner, widgets_configured: Path) -> None:
        result = cli_runner.invoke(
            app, PLAIN + ["api", "add", "copy", "https://api.example.com/v1", "--no-input"]
        )
        assert result.exit_code != 0
        assert "same base URL" in str(result.exception)


class TestLinks:
    def test_header_and_body(self, cli_runner, isolated_config: Path) -> None:
        body = isolated_config / "body.json"
        body.write_text(json.dumps({"self": "/items", "things": [{"self": "/items/1"}]}))
        result = cli_runner.invoke(
            app,
            PLAIN
            + [
                "links",
                str(body),
                "-H",
                'Link: </items?page=2>; rel="next"',
                "--base",
                "https://api.example.com/",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "next\thttps://api.example.com/items?page=2" in result.output
        assert "self\thttps://api.example.com/items" in result.output
        assert "things-item\thttps://api.example.com/items/1" in result.output

    def test_stdin_yaml(self, cli_runner, isolated_config: Path) -> None:
        result = cli_runner.invoke(
            app, PLAIN + ["links", "-"], input="_links:\n  self:\n    href: /me\n"
        )
        assert result.exit_code == 0
        assert "self\t/me" in result.output

    def test_malformed_header_warns(self, cli_runner, isolated_config: Path) -> None:
        body = isolated_config / "body.json"
        body.write_text('{"self": "/s"}')
        result = cli_runner.invoke(app, PLAIN + ["links", str(body), "-H", "Link: bad value"])
        assert result.exit_code == 0
        assert "Warning: link-header: invalid link header entry 'bad value'" in result.output
        assert "self\t/s" in result.output

    def test_no_links(self, cli_runner, isolated_config: Path) -> None:
        body = isolated_config / "body.json"
        body.write_text("[]")
        result = cli_runner.invoke(app, PLAIN + ["links", str(body)])
        assert result.exit_code == 0
        assert "No links found." in result.output
