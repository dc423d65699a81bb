import random
from typing import Iterable, Sequence
from sipdice.game.errors import InvalidDiceSet
from sipdice.game.models import Die, SpecialRollType

DICE_PER_ROLL = 3
MAX_ROLLS_PER_TURN = 3

# Point value of each die face
DICE_POINTS = {1: 100, 2: 2, 3: 3, 4: 4, 5: 5, 6: 60}

STAIRS = [1, 2, 3]
SUPER_STAIRS = [4, 5, 6]
SHIT_STAIRS = ([2, 3, 4], [3, 4, 5])

def _face_values(dice: Iterable[Die | int]) -> list[int]:
    return [d.value if isinstance(d, Die) else d for d in dice]

def make_dice_set(values: Sequence[Die | int]) -> list[Die]:
    """
    Validates raw faces at the event-creation boundary and returns a Dice Set.
    """
    if len(values) != DICE_PER_ROLL:
        raise InvalidDiceSet(f"A roll needs exactly {DICE_PER_ROLL} dice, got {len(values)}")

    dice = []
    for v in values:
        if isinstance(v, Die):
            dice.append(v)
            continue
        if isinstance(v, bool) or not isinstance(v, int) or not 1 <= v <= 6:
            raise InvalidDiceSet(f"Die face must be an integer between 1 and 6, got {v!r}")
        dice.append(Die(value=v))
    return dice

def calculate_score(dice: Iterable[Die | int]) -> int:
    return sum(DICE_POINTS[v] for v in _face_values(dice))

def detect_special_roll(dice: Iterable[Die | int]) -> SpecialRollType:
    """
    Classifies a roll without any context. A [4,5,6] result is reported as
    SUPER_STAIRS on pattern alone; see resolve_special_roll for validity.
    """
    values = sorted(_face_values(dice))

    if values[0] == values[1] == values[2]:
        return SpecialRollType.THREE_OF_A_KIND
    if values == STAIRS:
        return SpecialRollType.STAIRS
    if values == SUPER_STAIRS:
        return SpecialRollType.SUPER_STAIRS
    if values in SHIT_STAIRS:
        return SpecialRollType.SHIT_STAIRS
    return SpecialRollType.NONE

def is_safe_roll(special_roll_type: SpecialRollType) -> bool:
    match special_roll_type:
        case SpecialRollType.THREE_OF_A_KIND | SpecialRollType.STAIRS | SpecialRollType.SUPER_STAIRS:
            return True
        case SpecialRollType.SHIT_STAIRS | SpecialRollType.NONE:
            return False
        case _:
            raise ValueError(f"Unknown special roll type: {special_roll_type!r}")

def three_of_a_kind_sips(face: int) -> int:
    """
    Sips added to the round penalty by a three of a kind: ones count 7,
    every other face counts its own value.
    """
    if face == 1:
        return 7
    return face

def is_super_stairs_valid(
    dice: Iterable[Die | int],
    previous_turn_category: SpecialRollType | None
) -> bool:
    """
    A [4,5,6] only counts as super stairs right after a turn that ended in stairs.
    """
    return sorted(_face_values(dice)) == SUPER_STAIRS and previous_turn_category == SpecialRollType.STAIRS

def resolve_special_roll(
    dice: Iterable[Die | int],
    previous_turn_category: SpecialRollType | None
) -> SpecialRollType:
    """
    Category of a turn's last roll once the previous turn is taken into account.
    An unearned [4,5,6] is downgraded to NONE.
    """
    dice = list(dice)
    category = detect_special_roll(dice)
    if category == SpecialRollType.SUPER_STAIRS and not is_super_stairs_valid(dice, previous_turn_category):
        return SpecialRollType.NONE
    return category

def roll_dice(count: int = DICE_PER_ROLL, rng: random.Random | None = None) -> list[int]:
    rng = rng or random.Random()
    return [rng.randint(1, 6) for _ in range(count)]

def create_roll_with_kept(
    previous_dice: Sequence[Die],
    dice_to_reroll: Iterable[int],
    rng: random.Random | None = None
) -> list[Die]:
    """
    Re-rolls the dice at the given indices and keeps the others from the previous roll.
    """
    reroll = set(dice_to_reroll)
    for index in reroll:
        if not 0 <= index < len(previous_dice):
            raise InvalidDiceSet(f"No die at index {index}")

    new_values = iter(roll_dice(len(reroll), rng))
    return [
        Die(value=next(new_values), kept=False) if i in reroll else Die(value=die.value, kept=True)
        for i, die in enumerate(previous_dice)
    ]
