#!/usr/bin/env python3
"""
TFDIFF TEST SUITE - Command Line
--------------------------------
stdout carries only the targeting line (no trailing newline); errors and
reports go to stderr with distinct exit codes.
"""

import shutil
import subprocess

import pytest

from tfdiff.cli.main import EXIT_OK, EXIT_PARSE_ERROR, EXIT_SOURCE_ERROR, TfDiffCLI


@pytest.fixture
def dirs(tmp_path):
    base = tmp_path / "base"
    target = tmp_path / "target"
    base.mkdir()
    target.mkdir()
    (base / "main.tf").write_text('resource "aws_instance" "a" { ami = "x" }\n')
    (target / "main.tf").write_text(
        'resource "aws_instance" "a" { ami = "y" }\nresource "aws_instance" "b" { ami = "z" }\n'
    )
    return base, target


def run(*argv):
    return TfDiffCLI().run(list(argv))


def test_prints_targets(dirs, capsys):
    base, target = dirs

    code = run("--base-dir", str(base), "--target-dir", str(target))

    assert code == EXIT_OK
    assert capsys.readouterr().out == "-target aws_instance.a -target aws_instance.b "


def test_prints_noop_flag(dirs, capsys):
    base, _ = dirs

    code = run("--base-dir", str(base), "--target-dir", str(base))

    assert code == EXIT_OK
    assert capsys.readouterr().out == "-refresh=false"


def test_report_goes_to_stderr(dirs, capsys):
    base, target = dirs

    code = run("--base-dir", str(base), "--target-dir", str(target), "--report")

    captured = capsys.readouterr()
    assert code == EXIT_OK
    assert captured.out == "-target aws_instance.a -target aws_instance.b "
    assert "aws_instance.b" in captured.err
    assert "added" in captured.err


def test_parse_error_exit_code(dirs, capsys):
    base, target = dirs
    (target / "broken.tf").write_text('resource "aws_instance" "c" {\n')

    code = run("--base-dir", str(base), "--target-dir", str(target))

    captured = capsys.readouterr()
    assert code == EXIT_PARSE_ERROR
    assert captured.out == ""
    assert "broken.tf" in captured.err


def test_source_error_exit_code(dirs, tmp_path, capsys):
    base, _ = dirs

    code = run("--base-dir", str(base), "--target-dir", str(tmp_path / "missing"))

    captured = capsys.readouterr()
    assert code == EXIT_SOURCE_ERROR
    assert captured.out == ""
    assert "Source error" in captured.err


def test_pattern_option(dirs, capsys):
    base, target = dirs
    (target / "extra.hcl").write_text('module "extra" {}\n')

    code = run("--base-dir", str(target), "--target-dir", str(target), "--pattern", "*.hcl")

    assert code == EXIT_OK
    assert capsys.readouterr().out == "-refresh=false"


def test_config_file(dirs, tmp_path, capsys):
    base, target = dirs
    config = tmp_path / "settings.yml"
    config.write_text('target_flag: "--target"\nnoop_flag: "--skip"\n')

    code = run("--base-dir", str(base), "--target-dir", str(target), "--config", str(config))

    assert code == EXIT_OK
    assert capsys.readouterr().out == "--target aws_instance.a --target aws_instance.b "


def test_invalid_config_file(dirs, tmp_path, capsys):
    base, target = dirs
    config = tmp_path / "settings.yml"
    config.write_text("colour: blue\n")

    code = run("--base-dir", str(base), "--target-dir", str(target), "--config", str(config))

    assert code == EXIT_SOURCE_ERROR
    assert "colour" in capsys.readouterr().err


def test_track_references_flag(tmp_path, capsys):
    base = tmp_path / "base"
    target = tmp_path / "target"
    base.mkdir()
    target.mkdir()
    (base / "main.tf").write_text('resource "t" "a" {\n  subnet = var.a\n}\n')
    (target / "main.tf").write_text('resource "t" "a" {\n  subnet = var.b\n}\n')

    assert run("--base-dir", str(base), "--target-dir", str(target)) == EXIT_OK
    assert capsys.readouterr().out == "-refresh=false"

    assert run("--base-dir", str(base), "--target-dir", str(target), "--track-references") == EXIT_OK
    assert capsys.readouterr().out == "-target t.a "


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
def test_default_compares_working_copy_with_base_branch(tmp_path, monkeypatch, capsys):
    def git(*args):
        subprocess.run(
            ["git", "-c", "user.name=tfdiff", "-c", "user.email=tfdiff@example.com",
             "-c", "commit.gpgsign=false", *args],
            cwd=tmp_path, check=True, capture_output=True
        )

    git("init", "-q")
    git("symbolic-ref", "HEAD", "refs/heads/main")
    (tmp_path / "main.tf").write_text('resource "aws_instance" "a" {\n  ami = "x"\n}\n')
    git("add", ".")
    git("commit", "-q", "-m", "initial")
    git("checkout", "-q", "-b", "feature")
    (tmp_path / "main.tf").write_text('resource "aws_instance" "a" {\n  ami = "y"\n}\n')

    monkeypatch.chdir(tmp_path)

    assert run() == EXIT_OK
    assert capsys.readouterr().out == "-target aws_instance.a "

    assert run("-b", "feature") == EXIT_OK
    assert capsys.readouterr().out == "-target aws_instance.a "

    git("commit", "-q", "-am", "change ami")
    assert run("-b", "feature") == EXIT_OK
    assert capsys.readouterr().out == "-refresh=false"
