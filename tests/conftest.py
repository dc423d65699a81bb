import itertools
from datetime import datetime, timedelta
import pytest
from sipdice.game.models import (
    Die,
    GameHistory,
    GameSession,
    Participant,
    PlayerTurn,
    PlayerType,
    Roll,
    Round,
    RoundHistory,
    TurnHistory,
)
from sipdice.sessions.service import GameService
from sipdice.storage.json_store import JsonEventStore

BASE_TIME = datetime(2025, 6, 1, 20, 0, 0)

def make_turn(turn_id: int, participant_id: int, turn_order: int, *rolls: list[int], round_id: int = 1) -> TurnHistory:
    """
    Builds a turn whose rolls are the given face lists, in order.
    """
    return TurnHistory(
        turn=PlayerTurn(
            id=turn_id,
            session_id=1,
            round_id=round_id,
            participant_id=participant_id,
            turn_order=turn_order,
        ),
        rolls=[
            Roll(
                id=turn_id * 10 + n,
                session_id=1,
                turn_id=turn_id,
                roll_number=n,
                dice=[Die(value=v) for v in faces],
                rolled_at=BASE_TIME + timedelta(minutes=turn_id, seconds=n),
            )
            for n, faces in enumerate(rolls, start=1)
        ],
    )

def make_round(player_order: list[int], *rolls_per_turn: list[list[int]], round_id: int = 1, round_number: int = 1) -> RoundHistory:
    """
    Builds a round where the n-th entry of rolls_per_turn holds the rolls of
    the participant at player_order[n].
    """
    turns = [
        make_turn(round_id * 100 + i, player_order[i], i + 1, *rolls, round_id=round_id)
        for i, rolls in enumerate(rolls_per_turn)
    ]
    return RoundHistory(
        round=Round(
            id=round_id,
            session_id=1,
            round_number=round_number,
            player_order=player_order,
            started_at=BASE_TIME + timedelta(hours=round_number),
        ),
        turns=turns,
    )

def make_game(participant_ids: list[int], *rounds: RoundHistory, completed: bool = False, player_ids: dict[int, int] | None = None) -> GameHistory:
    player_ids = player_ids or {}
    return GameHistory(
        session=GameSession(
            id=1,
            owner_id="owner",
            created_at=BASE_TIME,
            completed_at=BASE_TIME + timedelta(days=1) if completed else None,
        ),
        participants=[
            Participant(
                id=pid,
                session_id=1,
                player_id=player_ids.get(pid),
                player_type=PlayerType.REGISTERED if pid in player_ids else PlayerType.GUEST,
                guest_name=None if pid in player_ids else f"guest{pid}",
                joined_at=BASE_TIME,
            )
            for pid in participant_ids
        ],
        rounds=list(rounds),
    )

@pytest.fixture
def store(tmp_path):
    ticks = itertools.count()
    return JsonEventStore(str(tmp_path / "data"), clock=lambda: BASE_TIME + timedelta(seconds=next(ticks)))

@pytest.fixture
def service(store):
    return GameService(store)
