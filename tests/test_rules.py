import itertools
import random
import pytest
from sipdice.game.errors import InvalidDiceSet
from sipdice.game.models import Die, SpecialRollType
from sipdice.game.rules import (
    calculate_score,
    create_roll_with_kept,
    detect_special_roll,
    is_safe_roll,
    is_super_stairs_valid,
    make_dice_set,
    resolve_special_roll,
    roll_dice,
    three_of_a_kind_sips,
)

def test_score_uses_face_points():
    assert calculate_score([1, 2, 4]) == 106
    assert calculate_score([2, 3, 5]) == 10
    assert calculate_score([6, 6, 6]) == 180
    assert calculate_score([1, 1, 1]) == 300

def test_score_accepts_dice_models():
    assert calculate_score([Die(value=6), Die(value=1, kept=True), Die(value=2)]) == 162

def test_classify_examples():
    assert detect_special_roll([1, 1, 1]) == SpecialRollType.THREE_OF_A_KIND
    assert detect_special_roll([1, 2, 3]) == SpecialRollType.STAIRS
    assert detect_special_roll([3, 1, 2]) == SpecialRollType.STAIRS
    assert detect_special_roll([4, 5, 6]) == SpecialRollType.SUPER_STAIRS
    assert detect_special_roll([2, 3, 4]) == SpecialRollType.SHIT_STAIRS
    assert detect_special_roll([3, 4, 5]) == SpecialRollType.SHIT_STAIRS
    assert detect_special_roll([1, 3, 5]) == SpecialRollType.NONE
    assert detect_special_roll([1, 1, 2]) == SpecialRollType.NONE

def test_classify_is_invariant_under_permutation():
    for faces in itertools.product(range(1, 7), repeat=3):
        expected = detect_special_roll(sorted(faces))
        for perm in itertools.permutations(faces):
            assert detect_special_roll(perm) == expected

def test_safety_by_category():
    assert is_safe_roll(SpecialRollType.THREE_OF_A_KIND) is True
    assert is_safe_roll(SpecialRollType.STAIRS) is True
    assert is_safe_roll(SpecialRollType.SUPER_STAIRS) is True
    assert is_safe_roll(SpecialRollType.SHIT_STAIRS) is False
    assert is_safe_roll(SpecialRollType.NONE) is False

def test_safety_rejects_unknown_category():
    with pytest.raises(ValueError):
        is_safe_roll("jackpot")

def test_three_of_a_kind_sips():
    assert three_of_a_kind_sips(1) == 7
    assert three_of_a_kind_sips(6) == 6
    for face in range(2, 6):
        assert three_of_a_kind_sips(face) == face

def test_super_stairs_needs_previous_stairs():
    assert is_super_stairs_valid([6, 4, 5], SpecialRollType.STAIRS) is True
    assert is_super_stairs_valid([4, 5, 6], SpecialRollType.NONE) is False
    assert is_super_stairs_valid([4, 5, 6], SpecialRollType.SUPER_STAIRS) is False
    assert is_super_stairs_valid([4, 5, 6], None) is False
    assert is_super_stairs_valid([1, 2, 3], SpecialRollType.STAIRS) is False

def test_unearned_super_stairs_is_downgraded():
    assert resolve_special_roll([4, 5, 6], SpecialRollType.STAIRS) == SpecialRollType.SUPER_STAIRS
    assert resolve_special_roll([4, 5, 6], SpecialRollType.THREE_OF_A_KIND) == SpecialRollType.NONE
    assert resolve_special_roll([4, 5, 6], None) == SpecialRollType.NONE
    # Other categories ignore the context
    assert resolve_special_roll([2, 2, 2], None) == SpecialRollType.THREE_OF_A_KIND
    assert resolve_special_roll([2, 3, 4], SpecialRollType.STAIRS) == SpecialRollType.SHIT_STAIRS

def test_make_dice_set_validates_boundary_input():
    dice = make_dice_set([6, 1, 3])
    assert [d.value for d in dice] == [6, 1, 3]
    assert all(not d.kept for d in dice)

    with pytest.raises(InvalidDiceSet):
        make_dice_set([1, 2])
    with pytest.raises(InvalidDiceSet):
        make_dice_set([1, 2, 3, 4])
    with pytest.raises(InvalidDiceSet):
        make_dice_set([0, 2, 3])
    with pytest.raises(InvalidDiceSet):
        make_dice_set([1, 2, 7])
    with pytest.raises(InvalidDiceSet):
        make_dice_set([1, True, 3])

def test_roll_dice_is_seedable():
    assert roll_dice(rng=random.Random(42)) == roll_dice(rng=random.Random(42))
    values = roll_dice(count=500, rng=random.Random(7))
    assert set(values) == {1, 2, 3, 4, 5, 6}

def test_create_roll_with_kept_only_rerolls_selected_dice():
    previous = make_dice_set([6, 6, 2])
    dice = create_roll_with_kept(previous, [2], rng=random.Random(3))

    assert [d.value for d in dice[:2]] == [6, 6]
    assert dice[0].kept and dice[1].kept
    assert dice[2].kept is False
    assert 1 <= dice[2].value <= 6

def test_create_roll_with_kept_rejects_bad_index():
    with pytest.raises(InvalidDiceSet):
        create_roll_with_kept(make_dice_set([1, 2, 3]), [3])
