from datetime import datetime
from typing import Sequence
from sipdice.game.models import (
    GameHistory,
    GameStatus,
    GameSummary,
    Roll,
    RollSummary,
    RoundHistory,
    RoundStatus,
    RoundSummary,
    SpecialRollType,
    TurnHistory,
    TurnSummary,
)
from sipdice.game.rules import (
    MAX_ROLLS_PER_TURN,
    calculate_score,
    detect_special_roll,
    is_safe_roll,
    resolve_special_roll,
    three_of_a_kind_sips,
)

# Reducers are pure: inputs arrive already sorted (rolls by roll_number,
# turns by turn_order, rounds by round_number) and are never reordered here.

def reduce_roll(roll: Roll) -> RollSummary:
    return RollSummary(
        id=roll.id,
        roll_number=roll.roll_number,
        dice=roll.dice,
        rolled_at=roll.rolled_at,
        score=calculate_score(roll.dice),
        special_roll_type=detect_special_roll(roll.dice),
    )

def reduce_turn(
    history: TurnHistory,
    previous_category: SpecialRollType | None = None,
    now: datetime | None = None
) -> TurnSummary:
    """
    Folds a turn's rolls into its summary. Only the last roll counts; its
    category is resolved against the previous turn's category.
    A turn without rolls is unsafe with score 0 and completes "now".
    """
    rolls = [reduce_roll(r) for r in history.rolls]
    last_roll = rolls[-1] if rolls else None

    if last_roll:
        category = resolve_special_roll(last_roll.dice, previous_category)
        completed_at = last_roll.rolled_at
    else:
        category = SpecialRollType.NONE
        completed_at = now or datetime.now()

    is_safe = is_safe_roll(category)
    final_score = None
    if not is_safe:
        final_score = last_roll.score if last_roll else 0

    turn = history.turn
    return TurnSummary(
        id=turn.id,
        round_id=turn.round_id,
        participant_id=turn.participant_id,
        turn_order=turn.turn_order,
        rolls=rolls,
        total_rolls_used=len(rolls),
        final_score=final_score,
        is_safe=is_safe,
        special_roll_type=category,
        completed_at=completed_at,
    )

def is_round_complete(player_order: Sequence[int], turn_count: int) -> bool:
    return turn_count == len(player_order)

def max_rolls_from_first_turn(turns: Sequence[TurnSummary]) -> int:
    """
    The starting player sets the roll ceiling for everyone else in the round.
    """
    if not turns:
        return MAX_ROLLS_PER_TURN
    return turns[0].total_rolls_used or MAX_ROLLS_PER_TURN

def turn_penalty_bonus(turn: TurnSummary) -> int:
    if turn.special_roll_type != SpecialRollType.THREE_OF_A_KIND:
        return 0
    # All three faces are equal
    return three_of_a_kind_sips(turn.rolls[-1].dice[0].value)

def calculate_penalty_from_turns(turns: Sequence[TurnSummary]) -> int:
    penalty_sips = 1
    for turn in turns:
        penalty_sips += turn_penalty_bonus(turn)
    return penalty_sips

def find_loser_from_turns(turns: Sequence[TurnSummary]) -> int | None:
    """
    Returns the participant with the lowest score among unsafe turns, or None
    when everyone is safe. Equal lowest scores go to the earliest turn.
    """
    losing_turn = None
    for turn in turns:
        if turn.is_safe:
            continue
        if losing_turn is None or turn.final_score < losing_turn.final_score:
            losing_turn = turn
    return losing_turn.participant_id if losing_turn else None

def reduce_round(history: RoundHistory, now: datetime | None = None) -> RoundSummary:
    """
    Derives round status, penalty and loser from the round's player order
    and its recorded turns.
    """
    rnd = history.round

    turns = []
    penalty_sips = 1
    previous_category = None
    for turn_history in history.turns:
        turn = reduce_turn(turn_history, previous_category, now)
        penalty_sips += turn_penalty_bonus(turn)
        previous_category = turn.special_roll_type
        turns.append(turn)

    is_complete = is_round_complete(rnd.player_order, len(turns))

    return RoundSummary(
        id=rnd.id,
        session_id=rnd.session_id,
        round_number=rnd.round_number,
        player_order=rnd.player_order,
        started_at=rnd.started_at,
        turns=turns,
        status=RoundStatus.COMPLETED if is_complete else RoundStatus.IN_PROGRESS,
        starting_participant_id=rnd.player_order[0],
        max_rolls_allowed=max_rolls_from_first_turn(turns),
        current_penalty_sips=penalty_sips,
        final_penalty_sips=penalty_sips if is_complete else None,
        losing_participant_id=find_loser_from_turns(turns) if is_complete else None,
        completed_at=turns[-1].completed_at if is_complete and turns else None,
    )

def game_status(completed_at: datetime | None, round_count: int) -> GameStatus:
    if completed_at:
        return GameStatus.COMPLETED
    if round_count > 0:
        return GameStatus.IN_PROGRESS
    return GameStatus.WAITING

def reduce_game(history: GameHistory, now: datetime | None = None) -> GameSummary:
    session = history.session
    rounds = [reduce_round(r, now) for r in history.rounds]

    return GameSummary(
        id=session.id,
        owner_id=session.owner_id,
        config=session.config,
        created_at=session.created_at,
        completed_at=session.completed_at,
        participants=history.participants,
        rounds=rounds,
        status=game_status(session.completed_at, len(rounds)),
        started_at=rounds[0].started_at if rounds else None,
    )
