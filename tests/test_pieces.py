import pytest

from app_types import CubeInvariantError, Face, Piece, SymbolicColor
from color_oracle import classify
from pieces import PIECE_COUNT, VALID_CELLS, PieceRegistry, PositionIndex, is_valid_cell


def test_registry_has_26_pieces_with_stable_ids():
    reg = PieceRegistry()
    assert len(reg) == PIECE_COUNT
    assert [p.id for p in reg] == list(range(PIECE_COUNT))
    assert set(reg.positions().values()) == VALID_CELLS


def test_each_color_appears_nine_times():
    counts = PieceRegistry().sticker_counts()
    for c in "WYBGRO":
        assert counts[SymbolicColor(c)] == 9
    # 26 pieces * 6 slots - 54 visible stickers
    assert counts[SymbolicColor.BLANK] == 26 * 6 - 54


def test_initial_stickers_follow_axis_convention():
    reg = PieceRegistry()
    corner = next(p for p in reg if p.position == (1, 1, 1))
    assert classify(corner.sticker(Face.UP)) is SymbolicColor.YELLOW
    assert classify(corner.sticker(Face.RIGHT)) is SymbolicColor.RED
    assert classify(corner.sticker(Face.FRONT)) is SymbolicColor.BLUE
    assert classify(corner.sticker(Face.DOWN)) is SymbolicColor.BLANK
    bottom = next(p for p in reg if p.position == (0, -1, 0))
    assert classify(bottom.sticker(Face.DOWN)) is SymbolicColor.WHITE


def test_verify_detects_broken_bijection():
    reg = PieceRegistry()
    reg.verify()
    reg.piece(0).position = reg.piece(1).position
    with pytest.raises(CubeInvariantError):
        reg.verify()


def test_verify_detects_broken_conservation():
    reg = PieceRegistry()
    p = next(p for p in reg if p.position == (1, 1, 1))
    p.stickers[int(Face.UP)] = (1.0, 1.0, 1.0)
    with pytest.raises(CubeInvariantError):
        reg.verify()


def test_unknown_piece_id_raises():
    with pytest.raises(CubeInvariantError):
        PieceRegistry().piece(26)


def test_index_rebuild_and_lookup():
    reg = PieceRegistry()
    index = PositionIndex()
    index.rebuild(reg)
    assert len(index) == PIECE_COUNT
    assert index.lookup((1, 1, 1)) == next(p.id for p in reg if p.position == (1, 1, 1))
    assert index.lookup((0, 0, 0)) is None


def test_index_rejects_duplicate_positions():
    pieces = [Piece(0, (1, 1, 1)), Piece(1, (1, 1, 1))]
    with pytest.raises(CubeInvariantError):
        PositionIndex().rebuild(pieces)


@pytest.mark.parametrize("pos,ok", [
    ((1, 1, 1), True),
    ((0, -1, 0), True),
    ((0, 0, 0), False),
    ((2, 0, 0), False),
    (None, False),
])
def test_is_valid_cell(pos, ok):
    assert is_valid_cell(pos) is ok
