import pytest

import phases
from app_types import Face
from notation import invert_sequence, parse_sequence
from phases import (ALG_OLL, ALG_PLL_CORNERS, ALG_PLL_EDGES, ALG_PLL_EDGES_OPPOSITE, FRAMES, PAIR_TABLE,
                    CornerPerm, CornerTwist, CrossCase, CrossPhase, EdgePerm, EdgeSpot, F2LCase, F2LPhase,
                    OllShape, UB, UF, UL, UR, center_turns, classify_cross, classify_f2l, classify_oll,
                    classify_pll_corners, classify_pll_edges, corner_twists, cross_done, cross_step, f2l_done,
                    frame_where, pair_key, pair_setup, rotation_scores, slot_done, solve_pair, top_corners_placed,
                    u_turns)


def scrambled(cube, seq):
    cube.apply_sequence(seq)
    return cube


# ---------------- frames ----------------

def test_frames_round_trip():
    for fr in FRAMES:
        assert fr.to_abs((1, -1, 1)) in {(1, -1, 1), (1, -1, -1), (-1, -1, -1), (-1, -1, 1)}
        for rel in [(1, 0, 1), (0, 1, 1), (-1, -1, 0)]:
            assert fr.to_rel(fr.to_abs(rel)) == rel


def test_frame_translation_substitutes_faces():
    assert FRAMES[0].translate("R U R'") == ["R", "U", "R'"]
    assert FRAMES[1].translate("R U R'") == ["B", "U", "B'"]
    assert FRAMES[3].translate("F' L2") == ["L'", "B", "B"]


def test_frame_where_and_u_turns():
    assert frame_where((-1, 0, 1), (1, 0, 1)) == FRAMES[3]
    assert u_turns((1, 1, 0), (0, 1, 1)) == ["U"]
    assert u_turns((0, 1, -1), (0, 1, 1)) == ["U", "U"]
    assert u_turns((-1, 1, 0), (0, 1, 1)) == ["U'"]
    assert u_turns((1, 1, 1), (1, 1, 1)) == []


# ---------------- cross ----------------

def test_cross_solved_on_fresh_cube(view):
    assert cross_done(view)
    assert classify_cross(view, 0)[0] is CrossCase.SOLVED


def test_cross_top_white_up(cube, view):
    scrambled(cube, "F F")
    case, fr, _ = classify_cross(view, 0)
    assert case is CrossCase.TOP_WHITE_UP
    assert cross_step(view, CrossPhase(0)).moves == ["F", "F"]


def test_cross_top_white_side(cube, view):
    scrambled(cube, "R' F' R U")
    assert classify_cross(view, 0)[0] is CrossCase.TOP_WHITE_SIDE
    assert cross_step(view, CrossPhase(0)).moves == ["U'", "R'", "F", "R"]


def test_cross_bottom_flipped(cube, view):
    scrambled(cube, "R' F' R U F F")
    assert classify_cross(view, 0)[0] is CrossCase.BOTTOM_FLIPPED
    assert cross_step(view, CrossPhase(0)).moves == ["F", "F"]


def test_cross_middle_uses_holding_frame(cube, view):
    scrambled(cube, "F")
    case, fr, _ = classify_cross(view, 0)
    assert case is CrossCase.MIDDLE
    assert fr == FRAMES[3]
    assert cross_step(view, CrossPhase(0)).moves == ["F", "U", "F'"]


def test_cross_top_unaligned(cube, view):
    scrambled(cube, "F F U")
    case, _, align = classify_cross(view, 0)
    assert case is CrossCase.TOP_UNALIGNED
    assert align == ["U'"]


def test_cross_bottom_free_turns_bottom_layer(cube, view):
    scrambled(cube, "D")
    assert classify_cross(view, 0)[0] is CrossCase.BOTTOM_FREE
    assert cross_step(view, CrossPhase(0)).moves == ["D"]


def test_cross_bottom_misplaced_lifts_without_bottom_turn(cube, view):
    scrambled(cube, "F F U U B B")
    case, fr, _ = classify_cross(view, 0)
    assert case is CrossCase.BOTTOM_MISPLACED
    assert fr == FRAMES[2]
    assert cross_step(view, CrossPhase(0)).moves == ["B", "B"]


def test_cross_verification_resets_when_disturbed(cube, view):
    scrambled(cube, "F")
    step = cross_step(view, CrossPhase(4))
    assert not step.complete
    assert step.state == CrossPhase(0)
    assert cross_step(phases.CubeView(type(cube)()), CrossPhase(4)).complete


# ---------------- first two layers ----------------

def test_f2l_done_on_fresh_cube(view):
    assert f2l_done(view)
    assert all(slot_done(view, s) for s in range(4))


def test_f2l_step_skips_finished_slot(view):
    step = phases.f2l_step(view, F2LPhase(0))
    assert step.moves == [] and step.state == F2LPhase(1)


def test_corner_in_other_bottom_slot_is_extracted(cube, view):
    scrambled(cube, "D")
    case, fr, key = classify_f2l(view, 0)
    assert case is F2LCase.CORNER_OUT and key is None
    assert fr == FRAMES[1]
    assert phases.f2l_step(view, F2LPhase(0)).moves == ["B", "U", "B'"]


def test_edge_in_wrong_middle_slot_is_extracted(cube, view):
    scrambled(cube, "R R")
    case, fr, _ = classify_f2l(view, 0)
    assert case is F2LCase.EDGE_OUT
    assert fr == FRAMES[1]
    assert phases.f2l_step(view, F2LPhase(0)).moves == ["U", "B", "U'", "B'", "U'", "R'", "U", "R"]


def test_corner_is_aligned_above_slot(cube, view):
    scrambled(cube, "R U R'")
    assert cross_done(view)
    assert classify_f2l(view, 0)[0] is F2LCase.ALIGN
    assert phases.f2l_step(view, F2LPhase(0)).moves == ["U'"]


def test_pair_table_covers_every_twist_and_spot():
    assert set(PAIR_TABLE) == {(t, s) for t in CornerTwist for s in EdgeSpot}
    assert all(PAIR_TABLE.values())


def test_pair_setup_matches_its_key():
    for t in CornerTwist:
        for s in EdgeSpot:
            assert pair_key(pair_setup(t, s)) == (t, s)
            assert not pair_setup(t, s).solved


@pytest.mark.parametrize("twist", list(CornerTwist))
@pytest.mark.parametrize("spot", list(EdgeSpot))
def test_pair_insertion_entry(cube, view, twist, spot):
    alg = PAIR_TABLE[(twist, spot)]
    scrambled(cube, invert_sequence(alg))
    assert cross_done(view)
    assert all(slot_done(view, s) for s in (1, 2, 3))
    assert classify_f2l(view, 0) == (F2LCase.INSERT, FRAMES[0], (twist, spot))
    step = phases.f2l_step(view, F2LPhase(0))
    assert step.moves == parse_sequence(alg)
    cube.apply_sequence(step.moves)
    assert f2l_done(view)


def test_pair_insertion_in_other_frame(cube, view):
    alg = PAIR_TABLE[(CornerTwist.WHITE_RIGHT, EdgeSpot.UB_F)]
    scrambled(cube, invert_sequence(FRAMES[2].translate(alg)))
    case, fr, key = classify_f2l(view, 2)
    assert case is F2LCase.INSERT and fr == FRAMES[2]
    assert key == (CornerTwist.WHITE_RIGHT, EdgeSpot.UB_F)
    cube.apply_sequence(phases.f2l_step(view, F2LPhase(2)).moves)
    assert f2l_done(view)


def test_beginner_inserts_compose_into_table():
    assert PAIR_TABLE[(CornerTwist.WHITE_RIGHT, EdgeSpot.UB_F)].startswith("R U R'")
    assert solve_pair(pair_setup(CornerTwist.WHITE_FRONT, EdgeSpot.SLOT_OK))[:3] == ["F'", "U'", "F"]


# ---------------- last layer ----------------

def test_oll_cross_on_fresh(view):
    assert classify_oll(view)[0] is OllShape.CROSS


def test_oll_line_ready(cube, view):
    scrambled(cube, invert_sequence(ALG_OLL))
    shape, lit = classify_oll(view)
    assert shape is OllShape.LINE
    assert lit == {UL, UR}
    assert phases.oll_step(view, phases.OLLPhase()).moves == parse_sequence(ALG_OLL)


def test_oll_l_shape_ready_and_unaligned(cube, view):
    scrambled(cube, invert_sequence(ALG_OLL + " " + ALG_OLL))
    shape, lit = classify_oll(view)
    assert shape is OllShape.L_SHAPE
    assert lit == {UB, UL}
    cube.apply_move("U")
    shape, lit = classify_oll(view)
    assert shape is OllShape.L_SHAPE and lit == {UR, UB}
    assert phases.oll_step(view, phases.OLLPhase()).moves == ["U"]


def test_oll_vertical_line_rotates(cube, view):
    scrambled(cube, invert_sequence(ALG_OLL) + ["U"])
    shape, lit = classify_oll(view)
    assert shape is OllShape.LINE and lit == {UF, UB}
    assert phases.oll_step(view, phases.OLLPhase()).moves == ["U"]


def test_oll_dot(cube, view):
    scrambled(cube, " ".join([ALG_OLL, "U U", ALG_OLL, ALG_OLL]))
    assert f2l_done(view)
    shape, lit = classify_oll(view)
    assert shape is OllShape.DOT and lit == frozenset()
    assert phases.oll_step(view, phases.OLLPhase()).moves == parse_sequence(ALG_OLL)


def test_pll_edges_adjacent(cube, view):
    scrambled(cube, invert_sequence(ALG_PLL_EDGES))
    case, fr = classify_pll_edges(view)
    assert case is EdgePerm.ADJACENT
    assert fr == FRAMES[0]


def test_pll_edges_rotate_picks_direction_by_color(cube, view):
    scrambled(cube, "U")
    assert classify_pll_edges(view)[0] is EdgePerm.ROTATE
    assert rotation_scores(view) == {0: 0, 1: 0, 2: 0, 3: 4}
    assert phases.pll_edges_step(view, phases.PLLEdgesPhase()).moves == ["U'"]
    cube.apply_move("U")
    assert phases.pll_edges_step(view, phases.PLLEdgesPhase()).moves == ["U", "U"]


def test_pll_edges_opposite_swap(cube, view):
    scrambled(cube, invert_sequence(ALG_PLL_EDGES_OPPOSITE))
    assert phases.top_edges_aligned(view) == [False, True, False, True]
    case, fr = classify_pll_edges(view)
    assert case is EdgePerm.OPPOSITE and fr == FRAMES[0]
    step = phases.pll_edges_step(view, phases.PLLEdgesPhase())
    assert step.moves == parse_sequence(ALG_PLL_EDGES_OPPOSITE)
    cube.apply_sequence(step.moves)
    assert phases.pll_edges_done(view)


def test_pll_edges_opposite_frame(view, monkeypatch):
    monkeypatch.setattr(phases, "top_edges_aligned", lambda v: [True, False, True, False])
    case, fr = classify_pll_edges(view)
    assert case is EdgePerm.OPPOSITE
    assert fr == FRAMES[1]


def test_pll_corners_one_placed(cube, view):
    scrambled(cube, invert_sequence(ALG_PLL_CORNERS))
    assert cross_done(view) and f2l_done(view)
    case, fr = classify_pll_corners(view)
    assert case is CornerPerm.ONE
    assert fr == FRAMES[0]


def test_pll_corners_none_placed(cube, view):
    scrambled(cube, "U")
    assert top_corners_placed(view) == [False] * 4
    case, fr = classify_pll_corners(view)
    assert case is CornerPerm.OTHER and fr == FRAMES[0]
    step = phases.pll_corners_step(view, phases.PLLCornersPhase())
    assert step.moves == parse_sequence(ALG_PLL_CORNERS)


def test_pll_corners_complete_on_solved_cube(cube, view):
    assert classify_pll_corners(view)[0] is CornerPerm.ALL
    step = phases.pll_corners_step(view, phases.PLLCornersPhase())
    assert step.complete and step.moves == []


def test_corner_twists_on_oriented_layer_only_turns_u(cube):
    assert corner_twists(cube) == ["U"] * 4


def test_corner_twists_orient_and_restore(cube):
    twist = "R' D' R D"
    cube.apply_sequence(" ".join([twist] * 2 + ["U"] + [twist] * 4 + ["U'"]))
    assert not cube.is_solved()
    moves = corner_twists(cube)
    assert len(moves) == 6 * 4 + 4
    cube.apply_sequence(moves)
    assert cube.is_solved()


def test_phase_index_lookup():
    assert phases.phase_index(CrossPhase()) == 0
    assert phases.phase_index(phases.PLLCornersPhase()) == 4
    assert phases.phase_index(None) == -1
    assert [p.name for p in phases.PHASES] == ["cross", "f2l", "oll", "pll_edges", "pll_corners"]


# ---------------- centers ----------------

def test_center_turns_empty_when_home(view):
    assert center_turns(view) == []


@pytest.mark.parametrize("seq,expected", [
    ("M", ["M'"]),
    ("E'", ["E"]),
    ("S", ["S'"]),
])
def test_center_turns_undo_single_slice(cube, view, seq, expected):
    scrambled(cube, seq)
    assert center_turns(view) == expected


@pytest.mark.parametrize("seq", ["M M", "M E", "S E' M", "R M U E' F S"])
def test_center_turns_bring_centers_home(cube, view, seq):
    scrambled(cube, seq)
    turns = center_turns(view)
    assert 0 < len(turns) <= 3
    cube.apply_sequence(turns)
    assert center_turns(view) == []
    for face in Face:
        piece = cube.piece_at(face.normal)
        assert cube.solved_positions()[piece.id] == face.normal
