import random
from typing import List, Sequence, TypeVar
from sipdice.game.errors import MalformedPlayerOrder

T = TypeVar("T")

def shuffle_list(items: Sequence[T], rng: random.Random | None = None) -> List[T]:
    """
    Returns a shuffled copy (Fisher-Yates): walk from the last index down to 1,
    swapping each element with a uniformly chosen one at or before it.
    """
    rng = rng or random.Random()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled

def create_player_order(
    starting_participant_id: int,
    all_participant_ids: Sequence[int],
    randomize: bool,
    rng: random.Random | None = None
) -> List[int]:
    """
    Puts the starting participant first and keeps the others in input order,
    or shuffles them when randomize is set.
    """
    if not all_participant_ids:
        raise MalformedPlayerOrder("Cannot order an empty participant list")
    if len(set(all_participant_ids)) != len(all_participant_ids):
        raise MalformedPlayerOrder(f"Duplicate participants in {list(all_participant_ids)}")
    if starting_participant_id not in all_participant_ids:
        raise MalformedPlayerOrder(
            f"Starting participant {starting_participant_id} is not one of {list(all_participant_ids)}"
        )

    remaining = [pid for pid in all_participant_ids if pid != starting_participant_id]
    if randomize:
        remaining = shuffle_list(remaining, rng)
    return [starting_participant_id, *remaining]

def validate_player_order(player_order: Sequence[int], participant_ids: Sequence[int]) -> None:
    """
    Checks that a stored player order is a permutation of the session's participants.
    """
    if not player_order:
        raise MalformedPlayerOrder("Player order is empty")
    if len(set(player_order)) != len(player_order):
        raise MalformedPlayerOrder(f"Duplicate participants in player order {list(player_order)}")
    if set(player_order) != set(participant_ids):
        raise MalformedPlayerOrder(
            f"Player order {list(player_order)} does not match participants {sorted(participant_ids)}"
        )
