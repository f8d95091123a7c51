# tests/test_cli.py

from pynemo.__main__ import build_parser, main
from pynemo.constants import DEFAULT_SOLVER, DEFAULT_VARSTOSAVE


def test_parser_defaults():
    args = build_parser().parse_args(["utopia.sqlite"])
    assert args.dbpath == "utopia.sqlite"
    assert args.varstosave == ",".join(DEFAULT_VARSTOSAVE)
    assert args.numprocs == 0
    assert args.restrictvars is True
    assert args.solver == DEFAULT_SOLVER
    assert not args.quiet


def test_parser_flags():
    args = build_parser().parse_args(["utopia.sqlite", "--no-restrictvars", "--reportzeros",
                                      "--targetprocs", "1,2", "--solver", "cbc"])
    assert args.restrictvars is False
    assert args.reportzeros is True
    assert args.targetprocs == "1,2"
    assert args.solver == "cbc"


def test_main_missing_database(tmp_path, capsys):
    code = main([str(tmp_path / "missing.sqlite"), "--numprocs", "1", "--logdir", str(tmp_path / "logs")])
    assert code == 1
    assert capsys.readouterr().out.strip() == "error"
    assert (tmp_path / "logs" / "cli_missing.log").exists()
