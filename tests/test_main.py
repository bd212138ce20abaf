import pytest

from main import EXIT_BAD_INPUT, EXIT_FAILED, EXIT_SOLVED, create_arg_parser, main


def test_parser_defaults():
    args = create_arg_parser().parse_args([])
    assert args.scramble is None and args.random is None
    assert not args.debug


def test_solves_given_scramble(capsys):
    assert main(["--scramble", "F F"]) == EXIT_SOLVED
    assert "Solved in 2 moves" in capsys.readouterr().out


def test_no_scramble_is_solved():
    assert main([]) == EXIT_SOLVED


def test_bad_token_is_bad_input():
    assert main(["--scramble", "R Q"]) == EXIT_BAD_INPUT


def test_bad_limits_are_bad_input():
    assert main(["--max-moves", "0"]) == EXIT_BAD_INPUT
    assert main(["--animate", "-1"]) == EXIT_BAD_INPUT


def test_ceiling_is_failure(capsys):
    assert main(["--scramble", "R U F L D", "--max-moves", "1"]) == EXIT_FAILED
    assert "Failed after" in capsys.readouterr().out


def test_animated_run_and_show(capsys):
    assert main(["--scramble", "F2", "--animate", "0.1", "--show"]) == EXIT_SOLVED
    out = capsys.readouterr().out
    assert "U:" in out


def test_random_scramble_runs():
    assert main(["--random", "8", "--seed", "3", "--max-moves", "2000"]) in (EXIT_SOLVED, EXIT_FAILED)


def test_verify_flag():
    pytest.importorskip("kociemba")
    assert main(["--scramble", "R U", "--verify"]) == EXIT_SOLVED
