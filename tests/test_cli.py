"""Tests for CLI commands."""

import io
import json
import logging
from pathlib import Path
from textwrap import dedent

import pytest

from draftsmith.cli import main


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DRAFTSMITH_MODEL", raising=False)
    monkeypatch.delenv("DRAFTSMITH_MODELS_FILE", raising=False)
    yield
    # main() installs handlers bound to the captured streams
    root = logging.getLogger("draftsmith")
    root.handlers.clear()
    root.setLevel(logging.NOTSET)


def write(path: Path, text: str) -> str:
    path.write_text(text)
    return str(path)


class TestNormalize:
    """Tests for the normalize command."""

    def test_file(self, tmp_path: Path, capsys) -> None:
        """Should print the draft body."""
        reply = write(
            tmp_path / "reply.md", "<document>\n```md\n# Scene\n\nRain.\n```\n</document>"
        )

        main(["normalize", reply])

        assert capsys.readouterr().out == "# Scene\n\nRain.\n"

    def test_stdin(self, monkeypatch, capsys) -> None:
        """Should read stdin when no file is given."""
        monkeypatch.setattr("sys.stdin", io.StringIO("<draft>From stdin</draft>"))

        main(["normalize"])

        assert capsys.readouterr().out == "From stdin\n"

    def test_missing_file(self, capsys) -> None:
        """Should exit with an error for a missing file."""
        with pytest.raises(SystemExit) as exc_info:
            main(["normalize", "nope.md"])

        assert exc_info.value.code == 1
        assert "File not found" in capsys.readouterr().out


class TestDirectives:
    """Tests for the directives command."""

    REPLY = dedent(
        """\
        Here you go.

        ```draft-apply
        target: notes.md
        action: append
        ---
        - new note
        ```

        <document path="world/harbor.md">Salt.</document>
        """
    )

    def test_json(self, tmp_path: Path, capsys) -> None:
        """Should output directives as JSON."""
        main(["directives", write(tmp_path / "reply.md", self.REPLY), "--json"])

        data = json.loads(capsys.readouterr().out)
        assert [d["target"] for d in data["directives"]] == ["notes.md", "world/harbor.md"]
        assert data["directives"][0]["action"] == "append"
        assert data["directives"][1]["syntax"] == "tag"
        assert data["display_text"] == "Here you go."

    def test_table(self, tmp_path: Path, capsys) -> None:
        """Should list directives in a table."""
        main(["directives", write(tmp_path / "reply.md", self.REPLY)])

        out = capsys.readouterr().out
        assert "notes.md" in out
        assert "Total: 2 directives" in out


class TestFrontmatter:
    """Tests for the frontmatter command."""

    def test_json(self, tmp_path: Path, capsys) -> None:
        """Should output metadata and body as JSON."""
        doc = write(
            tmp_path / "doc.md", '---\ntitle: Storm\ntags: ["a", "b"]\nwords: 12\n---\n\nBody'
        )

        main(["frontmatter", doc, "--json"])

        data = json.loads(capsys.readouterr().out)
        assert data == {
            "metadata": {"title": "Storm", "tags": ["a", "b"], "words": 12},
            "body": "Body",
        }

    def test_no_header(self, tmp_path: Path, capsys) -> None:
        """Should say when there is no header."""
        main(["frontmatter", write(tmp_path / "doc.md", "Just a body")])

        assert "No metadata header" in capsys.readouterr().out


class TestConvert:
    """Tests for the convert command."""

    def test_round_trip(self, tmp_path: Path, capsys) -> None:
        """Should convert markdown to a tree and back."""
        main(["convert", write(tmp_path / "doc.md", "# Title\n\nSome **bold** text.")])
        tree_json = capsys.readouterr().out
        assert json.loads(tree_json)["type"] == "doc"

        main(["convert", "--to-markdown", write(tmp_path / "tree.json", tree_json)])

        assert capsys.readouterr().out == "# Title\n\nSome **bold** text.\n"

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Should exit with an error for invalid JSON."""
        with pytest.raises(SystemExit):
            main(["convert", "--to-markdown", write(tmp_path / "tree.json", "{nope")])


class TestCost:
    """Tests for the cost command."""

    def test_known_model(self, capsys) -> None:
        """Should price with the catalog rates."""
        main(["cost", "claude-sonnet-4-5-20250929", "1000", "500"])

        out = capsys.readouterr().out
        assert "standard pricing" in out
        assert "$0.0030" in out
        assert "$0.0075" in out
        assert "$0.01" in out

    def test_unknown_model(self, capsys) -> None:
        """Should fall back for unknown models."""
        main(["cost", "mystery-model", "1000000", "0"])

        out = capsys.readouterr().out
        assert "fallback pricing" in out
        assert "$3.00" in out

    def test_record(self, tmp_path: Path, capsys) -> None:
        """Should accumulate each recorded cost into the project total."""
        main(["cost", "claude-sonnet-4-5", "1000000", "0", "--record", str(tmp_path)])
        assert "Project total: $6.00" in capsys.readouterr().out

        main(["cost", "claude-sonnet-4-5", "1000000", "0", "--record", str(tmp_path)])

        assert json.loads((tmp_path / ".ai_cost.json").read_text()) == {"total": 12.0}
        assert "Project total: $12.00" in capsys.readouterr().out


class TestNextName:
    """Tests for the next-name command."""

    def test_next_version(self, tmp_path: Path, capsys) -> None:
        """Should print the next free versioned name."""
        (tmp_path / "overview.md").write_text("v1")
        (tmp_path / "overview_v3.md").write_text("v3")

        main(["next-name", str(tmp_path), "overview.md"])

        assert capsys.readouterr().out == "overview_v4.md\n"

    def test_missing_directory(self, tmp_path: Path, capsys) -> None:
        """Should return the base name when the directory is empty or absent."""
        main(["next-name", str(tmp_path / "nope"), "overview.md"])

        assert capsys.readouterr().out == "overview.md\n"


class TestModels:
    """Tests for the models command."""

    def test_json(self, capsys) -> None:
        """Should list the built-in catalog."""
        main(["models", "--json"])

        models = {m["id"]: m for m in json.loads(capsys.readouterr().out)}
        assert models["claude-sonnet-4-5"]["pricing"]["long_context"] == {
            "input": 6.0,
            "output": 22.5,
        }
        assert models["gpt-4o"]["pricing"]["long_context"] is None

    def test_models_file_from_config(self, tmp_path: Path, capsys) -> None:
        """Should add models from the configured pricing table."""
        write(
            tmp_path / "models.yaml",
            "models:\n  - id: house-model\n    pricing:\n      standard: {input: 1, output: 2}\n",
        )
        config = write(tmp_path / "draftsmith.yaml", f"models_file: {tmp_path / 'models.yaml'}\n")

        main(["-c", config, "models", "--json"])

        ids = [m["id"] for m in json.loads(capsys.readouterr().out)]
        assert "house-model" in ids
        assert "claude-sonnet-4-5" in ids

    def test_table(self, capsys) -> None:
        """Should render a table."""
        main(["models"])

        assert "Total:" in capsys.readouterr().out


class TestMain:
    def test_no_command_prints_help(self, capsys) -> None:
        main([])

        assert "usage:" in capsys.readouterr().out
