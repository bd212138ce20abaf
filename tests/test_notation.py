import pytest

from app_types import Axis, RotationRequest
from notation import (MOVES, format_sequence, invert_sequence, invert_token, parse_sequence,
                      random_scramble, request_for)


@pytest.mark.parametrize("token,expected", [
    ("R", RotationRequest(Axis.X, 1, 90)),
    ("R'", RotationRequest(Axis.X, 1, -90)),
    ("L", RotationRequest(Axis.X, -1, -90)),
    ("U", RotationRequest(Axis.Y, 1, 90)),
    ("D", RotationRequest(Axis.Y, -1, -90)),
    ("F", RotationRequest(Axis.Z, 1, 90)),
    ("B'", RotationRequest(Axis.Z, -1, 90)),
    ("M", RotationRequest(Axis.X, 0, -90)),
    ("E", RotationRequest(Axis.Y, 0, -90)),
    ("S", RotationRequest(Axis.Z, 0, 90)),
])
def test_move_table(token, expected):
    assert request_for(token) == expected


def test_vocabulary_size():
    assert len(MOVES) == 18


def test_parse_expands_double_turns():
    assert parse_sequence("R U2 R'") == ["R", "U", "U", "R'"]
    assert parse_sequence(["F2", "B"]) == ["F", "F", "B"]
    assert parse_sequence("") == []


@pytest.mark.parametrize("bad", ["X", "R3", "r", "U''"])
def test_unknown_token_raises(bad):
    with pytest.raises(ValueError):
        parse_sequence(bad)


def test_invert():
    assert invert_token("R") == "R'"
    assert invert_token("R'") == "R"
    assert invert_sequence("R U' F2") == ["F'", "F'", "U", "R'"]


def test_random_scramble_reproducible_and_no_face_repeats():
    a = random_scramble(40, seed=7)
    assert a == random_scramble(40, seed=7)
    assert len(a) == 40
    faces = [t[0] for t in a]
    assert all(x != y for x, y in zip(faces, faces[1:]))
    parse_sequence(a)


def test_format_sequence_folds_repeats():
    assert format_sequence(["R", "U", "U", "R'"]) == "R U2 R'"
    assert format_sequence([]) == ""
