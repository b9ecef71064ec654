import json
import os

import pytest

from bigeye import cli


def test_plain_tokens_are_used_as_argv(tmp_path):
    assert cli.parse_command(str(tmp_path), ["python", "-c", "print(1)"]) == [
        "python", "-c", "print(1)",
    ]


def test_single_token_is_split(tmp_path):
    assert cli.parse_command(str(tmp_path), ["make test -j4"]) == ["make", "test", "-j4"]


def test_shell_syntax_goes_through_sh(tmp_path):
    text = "g++ main.cpp && ./a.out"
    assert cli.parse_command(str(tmp_path), [text]) == ["sh", "-c", text]


def test_quoted_operator_tokens_go_through_sh(tmp_path):
    argv = cli.parse_command(str(tmp_path), ["make", "&&", "echo", "done it"])
    assert argv == ["sh", "-c", "make && echo 'done it'"]


def test_script_files_get_an_interpreter(tmp_path):
    (tmp_path / "app.js").write_text("console.log(1)\n")
    (tmp_path / "tool.py").write_text("print(1)\n")
    assert cli.parse_command(str(tmp_path), ["app.js", "--port", "3000"]) == [
        "node", "app.js", "--port", "3000",
    ]
    assert cli.parse_command(str(tmp_path), ["tool.py"]) == ["python3", "tool.py"]


def test_executable_scripts_run_directly(tmp_path):
    script = tmp_path / "run.py"
    script.write_text("#!/usr/bin/env python3\n")
    script.chmod(0o755)
    assert cli.parse_command(str(tmp_path), ["run.py"]) == ["run.py"]


def test_empty_command(tmp_path):
    assert cli.parse_command(str(tmp_path), []) == []
    assert cli.parse_command(str(tmp_path), ["   "]) == []


def test_default_command_uses_npm_start(tmp_path):
    assert cli.default_command(str(tmp_path)) == []
    (tmp_path / "package.json").write_text(json.dumps({"scripts": {"start": "node app.js"}}))
    assert cli.default_command(str(tmp_path)) == ["npm", "start"]


def test_default_command_ignores_broken_package_json(tmp_path):
    (tmp_path / "package.json").write_text("{not json")
    assert cli.default_command(str(tmp_path)) == []


def test_flags_to_options_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("BIGEYE_GRACE_PERIOD", raising=False)
    (tmp_path / ".gitignore").write_text("*.pyc\ndist/\n")
    args = cli.build_parser().parse_args(["make"])
    options = cli.flags_to_options(str(tmp_path), args)
    assert options["watch"] == [str(tmp_path)]
    assert options["ignore"] == ["*.pyc", "dist/"]
    assert options["lazy"] is False
    assert options["delay"] == "10"
    assert "grace_period" not in options


def test_flags_to_options_explicit(tmp_path, monkeypatch):
    monkeypatch.setenv("BIGEYE_GRACE_PERIOD", "1.5")
    (tmp_path / ".gitignore").write_text("*.pyc\n")
    args = cli.build_parser().parse_args(
        ["-w", "src,lib", "-w", "tests", "-i", "*.log", "-l", "-d", "200", "-q", "make"]
    )
    options = cli.flags_to_options(str(tmp_path), args)
    assert options["watch"] == [
        os.path.join(str(tmp_path), "src"),
        os.path.join(str(tmp_path), "lib"),
        os.path.join(str(tmp_path), "tests"),
    ]
    assert options["ignore"] == ["*.log"]
    assert options["lazy"] is True
    assert options["delay"] == "200"
    assert options["quiet"] is True
    assert options["grace_period"] == 1.5


def test_no_command_shows_usage(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    cli.main([])
    assert "usage: eye" in capsys.readouterr().out


def test_invalid_delay_exits_1(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit) as info:
        cli.main(["-d", "soon", "make"])
    assert info.value.code == 1
    assert "invalid delay" in capsys.readouterr().err


def test_missing_watch_path_exits_1(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit) as info:
        cli.main(["-w", "missing", "make"])
    assert info.value.code == 1
    assert "Path does not exist" in capsys.readouterr().err


def test_quiet_suppresses_banner(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit):
        cli.main(["-q", "-w", "missing", "make"])
    out = capsys.readouterr()
    assert "starting with config" not in out.out
    assert "Path does not exist" in out.err


def test_bad_gitignore_pattern_exits_1(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".gitignore").write_text("build/\n!\n")
    with pytest.raises(SystemExit) as info:
        cli.main(["-l", "true"])
    assert info.value.code == 1
    assert "invalid ignore pattern" in capsys.readouterr().err


def test_bad_ignore_flag_exits_1(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit) as info:
        cli.main(["-i", "!", "true"])
    assert info.value.code == 1
    assert "invalid ignore pattern" in capsys.readouterr().err


def test_non_utf8_gitignore_reaches_startup(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".gitignore").write_bytes(b"caf\xe9/\n")
    with pytest.raises(SystemExit) as info:
        cli.main(["-w", "missing", "true"])
    assert info.value.code == 1
    assert "Path does not exist" in capsys.readouterr().err


def test_malformed_grace_period_exits_1(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BIGEYE_GRACE_PERIOD", "five")
    with pytest.raises(SystemExit) as info:
        cli.main(["-l", "true"])
    assert info.value.code == 1
    assert "BIGEYE_GRACE_PERIOD" in capsys.readouterr().err
