import json
import logging
from collections import defaultdict
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence
from pydantic import BaseModel
from sipdice.config import resolve_session_config
from sipdice.game.errors import (
    DuplicateRecord,
    OutOfOrderRoll,
    OutOfOrderTurn,
    RecordNotFound,
    RollLimitExceeded,
    SessionAlreadyCompleted,
)
from sipdice.game.models import (
    Die,
    GameHistory,
    GameSession,
    Participant,
    Player,
    PlayerTurn,
    PlayerType,
    Roll,
    Round,
    RoundHistory,
    TurnHistory,
)
from sipdice.game.rules import MAX_ROLLS_PER_TURN, make_dice_set
from sipdice.game.turn_order import validate_player_order

logger = logging.getLogger(__name__)

class GameLog(BaseModel):
    """
    Everything recorded for one session, stored as flat, append-only lists.
    Participant, round, turn and roll ids are unique within the session.
    """
    session: GameSession
    participants: list[Participant] = []
    rounds: list[Round] = []
    turns: list[PlayerTurn] = []
    rolls: list[Roll] = []

    @staticmethod
    def next_id(records: Sequence[BaseModel]) -> int:
        return max((r.id for r in records), default=0) + 1

class JsonEventStore:
    """
    Event store backed by JSON files: one file per game session plus a
    players file. Reads hand back records already ordered and joined for
    the reducers; writes validate every new event before appending it.
    """

    def __init__(self, base_path: str = "data", clock: Callable[[], datetime] = datetime.now):
        self.base_path = Path(base_path)
        self.games_path = self.base_path / "games"
        self.players_path = self.base_path / "players.json"
        self.clock = clock

        # Ensure directories exist
        self.games_path.mkdir(parents=True, exist_ok=True)

    # --- Files ---

    def _game_file(self, session_id: int) -> Path:
        return self.games_path / f"game_{session_id}.json"

    def _session_ids(self) -> List[int]:
        ids = []
        for file in self.games_path.glob("game_*.json"):
            suffix = file.stem.split("_", 1)[1]
            if suffix.isdigit():
                ids.append(int(suffix))
        return sorted(ids)

    def _load_log(self, session_id: int) -> Optional[GameLog]:
        file_path = self._game_file(session_id)
        if not file_path.exists():
            return None
        with open(file_path, 'r') as f:
            return GameLog.model_validate(json.load(f))

    def _save_log(self, log: GameLog):
        with open(self._game_file(log.session.id), 'w') as f:
            f.write(log.model_dump_json(indent=2))

    def _require_log(self, session_id: int) -> GameLog:
        log = self._load_log(session_id)
        if log is None:
            raise RecordNotFound(f"Game session {session_id} not found")
        return log

    def _require_open_log(self, session_id: int) -> GameLog:
        log = self._require_log(session_id)
        if log.session.completed_at is not None:
            raise SessionAlreadyCompleted(f"Game session {session_id} is already completed")
        return log

    def _load_players(self) -> List[Player]:
        if not self.players_path.exists():
            return []
        with open(self.players_path, 'r') as f:
            return [Player.model_validate(p) for p in json.load(f)]

    def _save_players(self, players: List[Player]):
        with open(self.players_path, 'w') as f:
            json.dump([p.model_dump(mode="json") for p in players], f, indent=2)

    # --- Read side ---

    def get_player(self, player_id: int) -> Optional[Player]:
        return next((p for p in self._load_players() if p.id == player_id), None)

    def get_player_by_username(self, username: str) -> Optional[Player]:
        return next((p for p in self._load_players() if p.username == username), None)

    def list_players(self) -> List[Player]:
        return self._load_players()

    def get_session(self, session_id: int) -> Optional[GameSession]:
        log = self._load_log(session_id)
        return log.session if log else None

    def list_sessions(self, owner_id: str | None = None) -> List[GameSession]:
        sessions = []
        for session_id in self._session_ids():
            log = self._load_log(session_id)
            if log and (owner_id is None or log.session.owner_id == owner_id):
                sessions.append(log.session)
        return sessions

    def participants_for_session(self, session_id: int) -> List[Participant]:
        log = self._load_log(session_id)
        if not log:
            return []
        return sorted(log.participants, key=lambda p: (p.joined_at, p.id))

    def rounds_for_session(self, session_id: int) -> List[Round]:
        log = self._load_log(session_id)
        if not log:
            return []
        return sorted(log.rounds, key=lambda r: r.round_number)

    def get_round(self, session_id: int, round_id: int) -> Optional[Round]:
        return next((r for r in self.rounds_for_session(session_id) if r.id == round_id), None)

    def get_latest_round(self, session_id: int) -> Optional[Round]:
        rounds = self.rounds_for_session(session_id)
        return rounds[-1] if rounds else None

    def turns_for_round(self, session_id: int, round_id: int) -> List[PlayerTurn]:
        log = self._load_log(session_id)
        if not log:
            return []
        return sorted((t for t in log.turns if t.round_id == round_id), key=lambda t: t.turn_order)

    def get_turn(self, session_id: int, turn_id: int) -> Optional[PlayerTurn]:
        log = self._load_log(session_id)
        if not log:
            return None
        return next((t for t in log.turns if t.id == turn_id), None)

    def rolls_for_turn(self, session_id: int, turn_id: int) -> List[Roll]:
        log = self._load_log(session_id)
        if not log:
            return []
        return sorted((r for r in log.rolls if r.turn_id == turn_id), key=lambda r: r.roll_number)

    def participations_for_player(self, player_id: int) -> Iterator[Participant]:
        for session_id in self._session_ids():
            for participant in self.participants_for_session(session_id):
                if participant.player_id == player_id:
                    yield participant

    # --- Joins ---

    @staticmethod
    def _join(log: GameLog) -> GameHistory:
        rolls_by_turn: Dict[int, List[Roll]] = defaultdict(list)
        for roll in sorted(log.rolls, key=lambda r: r.roll_number):
            rolls_by_turn[roll.turn_id].append(roll)

        turns_by_round: Dict[int, List[TurnHistory]] = defaultdict(list)
        for turn in sorted(log.turns, key=lambda t: t.turn_order):
            turns_by_round[turn.round_id].append(TurnHistory(turn=turn, rolls=rolls_by_turn[turn.id]))

        return GameHistory(
            session=log.session,
            participants=sorted(log.participants, key=lambda p: (p.joined_at, p.id)),
            rounds=[
                RoundHistory(round=rnd, turns=turns_by_round[rnd.id])
                for rnd in sorted(log.rounds, key=lambda r: r.round_number)
            ],
        )

    def load_game_history(self, session_id: int) -> Optional[GameHistory]:
        log = self._load_log(session_id)
        return self._join(log) if log else None

    def load_round_history(self, session_id: int, round_id: int) -> Optional[RoundHistory]:
        history = self.load_game_history(session_id)
        if not history:
            return None
        return next((r for r in history.rounds if r.round.id == round_id), None)

    def iter_player_histories(self, player_id: int) -> Iterator[tuple[Participant, GameHistory]]:
        """
        Yields (participant, history) for each session the player joined,
        loading one session file at a time.
        """
        for session_id in self._session_ids():
            log = self._load_log(session_id)
            if not log:
                continue
            participant = next((p for p in log.participants if p.player_id == player_id), None)
            if participant:
                yield participant, self._join(log)

    # --- Write side ---

    def create_player(
        self,
        username: str,
        user_id: str | None = None,
        display_name: str | None = None
    ) -> Player:
        players = self._load_players()
        if any(p.username == username for p in players):
            raise DuplicateRecord(f"Username '{username}' is already taken")
        user_id = user_id or username
        if any(p.user_id == user_id for p in players):
            raise DuplicateRecord(f"User '{user_id}' already has a player")

        player = Player(
            id=GameLog.next_id(players),
            user_id=user_id,
            username=username,
            display_name=display_name,
            created_at=self.clock(),
        )
        players.append(player)
        self._save_players(players)
        logger.info(f"Created player {player.id} ({username})")
        return player

    def create_session(self, owner_id: str, config: dict[str, Any] | None = None) -> GameSession:
        ids = self._session_ids()
        session = GameSession(
            id=(ids[-1] if ids else 0) + 1,
            owner_id=owner_id,
            config=resolve_session_config(config),
            created_at=self.clock(),
        )
        self._save_log(GameLog(session=session))
        logger.info(f"Created game session {session.id} '{session.config.name}' for {owner_id}")
        return session

    def update_session_config(self, session_id: int, **changes: Any) -> GameSession:
        log = self._require_log(session_id)
        log.session.config = resolve_session_config(changes, log.session.config)
        self._save_log(log)
        return log.session

    def complete_session(self, session_id: int) -> GameSession:
        log = self._require_open_log(session_id)
        log.session.completed_at = self.clock()
        self._save_log(log)
        logger.info(f"Completed game session {session_id}")
        return log.session

    def delete_session(self, session_id: int) -> bool:
        file_path = self._game_file(session_id)
        if not file_path.exists():
            return False
        file_path.unlink()
        logger.info(f"Deleted game session {session_id}")
        return True

    def add_participant(
        self,
        session_id: int,
        player_id: int | None = None,
        guest_name: str | None = None
    ) -> Participant:
        if (player_id is None) == (guest_name is None):
            raise ValueError("A participant is either a registered player or a guest")

        log = self._require_open_log(session_id)
        if player_id is not None:
            if self.get_player(player_id) is None:
                raise RecordNotFound(f"Player {player_id} not found")
            if any(p.player_id == player_id for p in log.participants):
                raise DuplicateRecord(f"Player {player_id} already joined game session {session_id}")

        participant = Participant(
            id=GameLog.next_id(log.participants),
            session_id=session_id,
            player_id=player_id,
            player_type=PlayerType.REGISTERED if player_id is not None else PlayerType.GUEST,
            guest_name=guest_name,
            joined_at=self.clock(),
        )
        log.participants.append(participant)
        self._save_log(log)
        return participant

    def insert_round(self, session_id: int, player_order: Sequence[int]) -> Round:
        """
        Persists a new round with a fixed player order; the order must be a
        permutation of the session's participants.
        """
        log = self._require_open_log(session_id)
        validate_player_order(player_order, [p.id for p in log.participants])

        rnd = Round(
            id=GameLog.next_id(log.rounds),
            session_id=session_id,
            round_number=max((r.round_number for r in log.rounds), default=0) + 1,
            player_order=list(player_order),
            started_at=self.clock(),
        )
        log.rounds.append(rnd)
        self._save_log(log)
        logger.info(f"Session {session_id}: round {rnd.round_number} order {rnd.player_order}")
        return rnd

    def create_turn(self, session_id: int, round_id: int, participant_id: int, turn_order: int) -> PlayerTurn:
        log = self._require_open_log(session_id)
        rnd = next((r for r in log.rounds if r.id == round_id), None)
        if rnd is None:
            raise RecordNotFound(f"Round {round_id} not found in game session {session_id}")

        taken = sum(1 for t in log.turns if t.round_id == round_id)
        if taken >= len(rnd.player_order):
            raise OutOfOrderTurn(f"Round {round_id} already has a turn for every participant")
        if turn_order != taken + 1:
            raise OutOfOrderTurn(f"Round {round_id} expects turn {taken + 1}, got {turn_order}")
        if rnd.player_order[turn_order - 1] != participant_id:
            raise OutOfOrderTurn(
                f"Turn {turn_order} of round {round_id} belongs to participant "
                f"{rnd.player_order[turn_order - 1]}, not {participant_id}"
            )

        turn = PlayerTurn(
            id=GameLog.next_id(log.turns),
            session_id=session_id,
            round_id=round_id,
            participant_id=participant_id,
            turn_order=turn_order,
        )
        log.turns.append(turn)
        self._save_log(log)
        return turn

    def append_roll(
        self,
        session_id: int,
        turn_id: int,
        dice: Sequence[Die | int],
        roll_number: int | None = None
    ) -> Roll:
        dice_set = make_dice_set(dice)

        log = self._require_open_log(session_id)
        turn = next((t for t in log.turns if t.id == turn_id), None)
        if turn is None:
            raise RecordNotFound(f"Turn {turn_id} not found in game session {session_id}")
        if any(t.round_id == turn.round_id and t.turn_order > turn.turn_order for t in log.turns):
            raise OutOfOrderRoll(f"Turn {turn_id} is closed: the next player has started")
        round_number = next(r.round_number for r in log.rounds if r.id == turn.round_id)
        if any(r.round_number > round_number for r in log.rounds):
            raise OutOfOrderRoll(f"Turn {turn_id} is closed: a later round has started")

        expected = sum(1 for r in log.rolls if r.turn_id == turn_id) + 1
        if expected > MAX_ROLLS_PER_TURN:
            raise RollLimitExceeded(f"Turn {turn_id} already used all {MAX_ROLLS_PER_TURN} rolls")
        if roll_number is not None and roll_number != expected:
            raise OutOfOrderRoll(f"Turn {turn_id} expects roll {expected}, got {roll_number}")

        roll = Roll(
            id=GameLog.next_id(log.rolls),
            session_id=session_id,
            turn_id=turn_id,
            roll_number=expected,
            dice=dice_set,
            rolled_at=self.clock(),
        )
        log.rolls.append(roll)
        self._save_log(log)
        logger.debug(f"Turn {turn_id} roll {expected}: {roll.values}")
        return roll
