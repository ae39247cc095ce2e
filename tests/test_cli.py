"""
Tests for the command-line interface.
"""

import json
import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture
def fragments_file(tmp_path):
    from gradescan.utils.io import save_fragments
    from gradescan.utils.layout import BoundingBox, Fragment

    fragments = [
        Fragment("CREDITS", BoundingBox(100, 0, 170, 20)),
        Fragment("GRADE", BoundingBox(200, 0, 260, 20)),
        Fragment("4", BoundingBox(100, 40, 130, 60)),
        Fragment("AA", BoundingBox(200, 40, 240, 60)),
        Fragment("3", BoundingBox(100, 80, 130, 100)),
    ]
    return save_fragments(fragments, tmp_path / "fragments.json")


def run_cli(argv):
    from gradescan.cli import main

    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestCLI:
    """Test the gradescan command."""

    def test_fragments_input(self, fragments_file, tmp_path, capsys):
        output = tmp_path / "rows.json"

        code = run_cli(["-i", str(fragments_file), "-o", str(output)])

        assert code == 0
        data = json.loads(output.read_text())
        assert [(r["credits"], r["grade"]) for r in data["rows"]] == [(4, "AA"), (3, None)]
        assert data["review_indices"] == [1]

        printed = capsys.readouterr().out
        assert "GRADE TABLE" in printed
        assert "Rows: 2 (1 to review)" in printed

    def test_strategy_option(self, fragments_file, tmp_path):
        output = tmp_path / "rows.json"

        code = run_cli(["-i", str(fragments_file), "-o", str(output), "--strategy", "nearest"])

        assert code == 0
        data = json.loads(output.read_text())
        assert all(r["strategy"] == "nearest" for r in data["rows"])

    def test_dump_fragments(self, fragments_file, tmp_path):
        dump = tmp_path / "copy.json"

        assert run_cli(["-i", str(fragments_file), "--dump-fragments", str(dump)]) == 0

        assert len(json.loads(dump.read_text())["fragments"]) == 5

    def test_unknown_schema(self, fragments_file):
        assert run_cli(["-i", str(fragments_file), "-s", "NOPE"]) == 1

    def test_missing_input(self, tmp_path):
        assert run_cli(["-i", str(tmp_path / "missing.json")]) == 1

    def test_invalid_fragment_dump(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"fragments": [{"text": "", "box": {
            "left": 0, "top": 0, "right": 10, "bottom": 10}}]}))

        assert run_cli(["-i", str(path)]) == 1

    def test_invalid_credit_range(self, fragments_file):
        assert run_cli(["-i", str(fragments_file), "--credit-max", "-1"]) == 1

    def test_version(self, capsys):
        assert run_cli(["--version"]) == 0
        assert "1.0.0" in capsys.readouterr().out

    def test_debug_flag_sets_debug_mode(self, monkeypatch):
        monkeypatch.delenv("GRADESCAN_DEBUG", raising=False)
        from gradescan.cli import build_config, setup_argparser

        parser = setup_argparser()

        assert build_config(parser.parse_args(["-i", "scan.png", "--debug"])).debug_mode is True
        assert build_config(parser.parse_args(["-i", "scan.png"])).debug_mode is False


class TestFormatRows:
    """Test the printed row table."""

    def test_review_marker(self):
        from gradescan.cli import format_rows
        from gradescan.utils.assembler import Row

        table = format_rows([Row(4, "AA", 1.0), Row(None, "BB", 0.5)])
        lines = table.splitlines()

        assert len(lines) == 4
        assert not lines[2].rstrip().endswith("*")
        assert lines[3].rstrip().endswith("*")
        assert "-" in lines[3].split()[1]
