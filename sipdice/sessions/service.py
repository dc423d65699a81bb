import logging
import random
from typing import Dict, Iterator, Optional, Sequence, Tuple
from sipdice.config import resolve_randomize_turn_order
from sipdice.game.errors import OutOfOrderTurn, RecordNotFound, RollLimitExceeded
from sipdice.game.models import (
    Die,
    GameSession,
    GameSummary,
    ParticipantStats,
    PlayerGlobalStats,
    PlayerTurn,
    Roll,
    Round,
    RoundStatus,
    RoundSummary,
    SpecialRollType,
)
from sipdice.game.reducers import reduce_game, reduce_round
from sipdice.game.rules import MAX_ROLLS_PER_TURN, create_roll_with_kept, is_super_stairs_valid, roll_dice
from sipdice.game.turn_order import create_player_order
from sipdice.ranking.leaderboard import Leaderboard
from sipdice.ranking.stats import participant_stats, player_global_stats, session_stats
from sipdice.storage.json_store import JsonEventStore

logger = logging.getLogger(__name__)

class GameService:
    """
    Reads event history from the store, derives game state with the
    reducers, and records new events for player actions.
    """

    def __init__(self, store: JsonEventStore):
        self.store = store

    # --- Derived views ---

    def get_complete_game(self, session_id: int) -> Optional[GameSummary]:
        history = self.store.load_game_history(session_id)
        if history is None:
            return None
        return reduce_game(history)

    def get_round(self, session_id: int, round_id: int) -> Optional[RoundSummary]:
        history = self.store.load_round_history(session_id, round_id)
        if history is None:
            return None
        return reduce_round(history)

    def get_latest_round(self, session_id: int) -> Optional[RoundSummary]:
        latest = self.store.get_latest_round(session_id)
        if latest is None:
            return None
        return self.get_round(session_id, latest.id)

    def get_current_round(self, session_id: int) -> Optional[RoundSummary]:
        """
        The latest round while it is still in progress, otherwise None.
        """
        latest = self.get_latest_round(session_id)
        if latest and latest.status == RoundStatus.IN_PROGRESS:
            return latest
        return None

    def get_next_participant(self, session_id: int, round_id: int) -> Optional[int]:
        rnd = self.get_round(session_id, round_id)
        if rnd is None or len(rnd.turns) >= len(rnd.player_order):
            return None
        return rnd.player_order[len(rnd.turns)]

    def was_previous_turn_stairs(self, session_id: int, round_id: int, turn_order: int) -> bool:
        if turn_order <= 1:
            return False
        rnd = self.get_round(session_id, round_id)
        if rnd is None:
            return False
        previous = next((t for t in rnd.turns if t.turn_order == turn_order - 1), None)
        return previous is not None and previous.special_roll_type == SpecialRollType.STAIRS

    def validate_super_stairs(
        self,
        session_id: int,
        round_id: int,
        turn_order: int,
        dice: Sequence[Die | int]
    ) -> bool:
        previous = SpecialRollType.STAIRS if self.was_previous_turn_stairs(session_id, round_id, turn_order) else None
        return is_super_stairs_valid(dice, previous)

    # --- Player actions ---

    def create_game(self, owner_id: str, name: str | None = None, randomize_turn_order: bool | None = None) -> GameSession:
        return self.store.create_session(
            owner_id,
            {"name": name, "randomize_turn_order": randomize_turn_order},
        )

    def create_round(
        self,
        session_id: int,
        starting_participant_id: int,
        all_participant_ids: Sequence[int] | None = None,
        randomize: bool | None = None,
        rng: random.Random | None = None
    ) -> Round:
        """
        Starts a new round once the previous one is complete. randomize
        overrides the session's randomize_turn_order setting when given.
        """
        session = self.store.get_session(session_id)
        if session is None:
            raise RecordNotFound(f"Game session {session_id} not found")

        current = self.get_current_round(session_id)
        if current is not None:
            raise OutOfOrderTurn(f"Round {current.round_number} of game session {session_id} is still in progress")

        if all_participant_ids is None:
            all_participant_ids = [p.id for p in self.store.participants_for_session(session_id)]

        shuffle = resolve_randomize_turn_order(randomize, session.config)
        player_order = create_player_order(starting_participant_id, all_participant_ids, shuffle, rng)
        rnd = self.store.insert_round(session_id, player_order)
        logger.info(f"Session {session_id}: started round {rnd.round_number} (shuffled={shuffle})")
        return rnd

    def create_player_turn(self, session_id: int, round_id: int, participant_id: int, turn_order: int) -> PlayerTurn:
        return self.store.create_turn(session_id, round_id, participant_id, turn_order)

    def start_next_turn(self, session_id: int, rng: random.Random | None = None) -> Tuple[PlayerTurn, Roll]:
        """
        Opens the next participant's turn in the current round and makes its first roll.
        """
        rnd = self.get_current_round(session_id)
        if rnd is None:
            raise OutOfOrderTurn(f"Game session {session_id} has no round in progress")

        participant_id = rnd.player_order[len(rnd.turns)]
        turn = self.store.create_turn(session_id, rnd.id, participant_id, len(rnd.turns) + 1)
        roll = self.store.append_roll(session_id, turn.id, roll_dice(rng=rng))
        return turn, roll

    def roll(
        self,
        session_id: int,
        reroll: Sequence[int] | None = None,
        rng: random.Random | None = None
    ) -> Roll:
        """
        Rolls again on the latest turn of the latest round, keeping every die
        not listed in reroll (all dice are rolled when reroll is None).
        Turns after the first may not use more rolls than the starting player did.
        """
        latest = self.store.get_latest_round(session_id)
        if latest is None:
            raise OutOfOrderTurn(f"Game session {session_id} has no rounds")
        history = self.store.load_round_history(session_id, latest.id)
        if not history.turns:
            raise OutOfOrderTurn(f"Round {latest.round_number} has no turn to roll for")

        rnd = reduce_round(history)
        turn = rnd.turns[-1]
        limit = MAX_ROLLS_PER_TURN if turn.turn_order == 1 else rnd.max_rolls_allowed
        if turn.total_rolls_used >= limit:
            raise RollLimitExceeded(
                f"Participant {turn.participant_id} already used {turn.total_rolls_used} of {limit} rolls"
            )

        if turn.rolls:
            previous_dice = turn.rolls[-1].dice
            indices = range(len(previous_dice)) if reroll is None else reroll
            dice = create_roll_with_kept(previous_dice, indices, rng)
        else:
            dice = roll_dice(rng=rng)

        roll = self.store.append_roll(session_id, turn.id, dice)
        logger.info(f"Session {session_id}: participant {turn.participant_id} rolled {roll.values}")
        return roll

    def complete_game(self, session_id: int) -> GameSession:
        return self.store.complete_session(session_id)

    # --- Statistics ---

    def _round_summaries(self, session_id: int) -> Iterator[RoundSummary]:
        history = self.store.load_game_history(session_id)
        if history is None:
            return
        for round_history in history.rounds:
            yield reduce_round(round_history)

    def participant_stats(self, session_id: int, participant_id: int) -> ParticipantStats:
        return participant_stats(participant_id, self._round_summaries(session_id))

    def session_stats(self, session_id: int) -> Dict[int, ParticipantStats]:
        participant_ids = [p.id for p in self.store.participants_for_session(session_id)]
        return session_stats(participant_ids, self._round_summaries(session_id))

    def player_global_stats(self, player_id: int) -> PlayerGlobalStats:
        participations = (
            (participant.id, reduce_game(history))
            for participant, history in self.store.iter_player_histories(player_id)
        )
        return player_global_stats(player_id, participations)

    def leaderboard(self) -> Leaderboard:
        board = Leaderboard()
        for player in self.store.list_players():
            board.add(self.player_global_stats(player.id), player)
        return board

    def participant_names(self, session_id: int) -> Dict[int, str]:
        names = {}
        players = {p.id: p for p in self.store.list_players()}
        for participant in self.store.participants_for_session(session_id):
            player = players.get(participant.player_id)
            names[participant.id] = (player.display_name or player.username) if player else participant.display_name
        return names
