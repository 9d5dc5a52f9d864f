"""
Tests for the command-line interface.
"""

import json

import pytest

from ..cli import main, parse_script_line
from ..engine_core.command import Command, CommandType


SCRIPT = """\
# opening scene
consume_time 4
change_stat hope +5
submit_dialogue_choice hope:+5,sister:+10
start_memory 1
append_memory_text - She remembered the tower.
unlock_memory 1
{"command": "setPhase", "params": {"phase": "evening"}}
"""


class TestParseScriptLine:

    @pytest.mark.parametrize("line", ["", "   ", "# comment", "  # indented comment"])
    def test_blank_and_comment(self, line):
        assert parse_script_line(line) is None

    def test_no_parameters(self):
        assert parse_script_line("advance_day") == Command.advance_day()

    def test_positional_parameters(self):
        assert parse_script_line("change_stat hope +5") == Command.change_stat("hope", "+5")

    def test_last_parameter_takes_rest_of_line(self):
        command = parse_script_line("commit_choice \\CHOICE[Stay with her|hope:+5|sister>10]")
        assert command.params == {"markup": "\\CHOICE[Stay with her|hope:+5|sister>10]"}

    def test_active_memory_marker(self):
        command = parse_script_line("append_memory_text - The snow kept falling.")
        assert command.params == {"memory_id": None, "value": "The snow kept falling."}

    def test_json_form(self):
        command = parse_script_line('{"command": "consume_time", "params": {"amount": 3}}')
        assert command == Command.consume_time(3)

    def test_camel_case_name(self):
        assert parse_script_line("advanceDay").command_type is CommandType.ADVANCE_DAY

    @pytest.mark.parametrize("line", [
        "fly_away",
        "consume_time",
        "change_stat hope",
        '{"params": {}}',
        "{not json",
        '["advance_day"]',
    ])
    def test_invalid_lines(self, line):
        with pytest.raises(ValueError):
            parse_script_line(line)


class TestPlay:

    @pytest.fixture
    def script(self, tmp_path):
        path = tmp_path / "opening.txt"
        path.write_text(SCRIPT, encoding="utf-8")
        return path

    def test_play_prints_report(self, script, capsys):
        assert main(["play", str(script), "--seed", "3"]) == 0

        out = capsys.readouterr().out
        assert "Day 1 - Evening  (time 6/10)" in out
        assert "Relationships: Sister 10, NPC 0, Tower Dweller 0" in out
        assert "Memories unlocked: 1" in out
        assert "Ending so far: Bad Ending" in out
        assert "A memory surfaces from the depths of your mind..." in out

    def test_play_json(self, script, capsys):
        assert main(["play", str(script), "--json"]) == 0

        out = capsys.readouterr().out
        report = json.loads(out[:out.index("Ending so far")])
        assert report["phase"] == 2
        assert report["unlocked_memory_ids"] == [1]
        assert report["counters"]["total_dialogues"] == 1

    def test_save_and_load(self, script, tmp_path, capsys):
        saved = tmp_path / "run.json"
        assert main(["play", str(script), "--save", str(saved)]) == 0
        capsys.readouterr()

        assert main(["status", "--load", str(saved), "--json"]) == 0

        report = json.loads(capsys.readouterr().out)
        assert report["phase_name"] == "Evening"
        assert report["relationships"] == [10, 0, 0]

    def test_failed_line_stops(self, tmp_path, capsys):
        path = tmp_path / "bad.txt"
        path.write_text("consume_time 2\nchange_stat luck +5\nconsume_time 2\n", encoding="utf-8")

        assert main(["play", str(path), "--json"]) == 1

        err = capsys.readouterr().err
        assert "line 2:" in err
        assert "INVALID_COMMAND" in err

    def test_keep_going(self, tmp_path, capsys):
        path = tmp_path / "bad.txt"
        path.write_text("fly_away\nconsume_time 2\n", encoding="utf-8")

        assert main(["play", str(path), "--keep-going"]) == 1

        captured = capsys.readouterr()
        assert "line 1: Unknown command" in captured.err
        assert "(time 8/10)" in captured.out

    def test_missing_script(self, tmp_path, capsys):
        assert main(["play", str(tmp_path / "nope.txt")]) == 1
        assert "File not found" in capsys.readouterr().err

    def test_config_file(self, script, tmp_path, capsys):
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"max_time_per_day": 8}), encoding="utf-8")

        assert main(["--config", str(config), "play", str(script)]) == 0
        assert "(time 4/8)" in capsys.readouterr().out


class TestStatusAndLint:

    def test_status_fresh_run(self, capsys):
        assert main(["status"]) == 0

        out = capsys.readouterr().out
        assert out.splitlines()[0] == "Day 1 - Morning  (time 10/10)"
        assert "Fatigue 0  Corruption 0  Hope 50" in out

    def test_status_bad_save(self, tmp_path, capsys):
        path = tmp_path / "broken.json"
        path.write_text("{}", encoding="utf-8")

        assert main(["status", "--load", str(path)]) == 1
        assert "schema_version" in capsys.readouterr().err

    def test_lint_ok(self, tmp_path, capsys):
        path = tmp_path / "scene.txt"
        path.write_text("Aria waits.\n\\CHOICE[Go|hope:+1|hope>5]\n", encoding="utf-8")

        assert main(["lint", str(path)]) == 0
        assert capsys.readouterr().out.strip() == "OK"

    def test_lint_errors(self, tmp_path, capsys):
        path = tmp_path / "scene.txt"
        path.write_text("\\CHOICE[Go|hope:+1|luck>5]\n\\CHOICE[Stay|hope:2]\n", encoding="utf-8")

        assert main(["lint", str(path)]) == 1

        out = capsys.readouterr().out
        assert "line 2: Effect 'hope:2' has no sign; read as +2" in out
        assert "1 error(s)" in out

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
