from typing import Dict, Iterable, Tuple
from sipdice.game.models import (
    GameStatus,
    GameSummary,
    ParticipantStats,
    PlayerGlobalStats,
    RoundStatus,
    RoundSummary,
    SpecialRollType,
    TurnSummary,
)

def awarded_sips(turn: TurnSummary) -> int:
    """
    Stairs let a player hand out as many sips as their turn position;
    super stairs double it.
    """
    match turn.special_roll_type:
        case SpecialRollType.STAIRS:
            return turn.turn_order
        case SpecialRollType.SUPER_STAIRS:
            return turn.turn_order * 2
        case SpecialRollType.THREE_OF_A_KIND | SpecialRollType.SHIT_STAIRS | SpecialRollType.NONE:
            return 0
        case _:
            raise ValueError(f"Unknown special roll type: {turn.special_roll_type!r}")

class SessionStatsAccumulator:
    """
    Folds completed rounds of one session into per-participant stats, one
    round at a time.
    """

    def __init__(self, participant_ids: Iterable[int]):
        self.stats: Dict[int, ParticipantStats] = {
            pid: ParticipantStats(participant_id=pid) for pid in participant_ids
        }

    def add_round(self, rnd: RoundSummary):
        if rnd.status != RoundStatus.COMPLETED:
            return

        # A round without a loser counts as neither won nor lost
        loser = rnd.losing_participant_id
        if loser is not None:
            for pid, stats in self.stats.items():
                if pid == loser:
                    stats.rounds_lost += 1
                    stats.sips_drunk += rnd.final_penalty_sips or 0
                else:
                    stats.rounds_won += 1

        for turn in rnd.turns:
            if turn.participant_id in self.stats:
                self.stats[turn.participant_id].sips_awarded += awarded_sips(turn)

    def add_rounds(self, rounds: Iterable[RoundSummary]) -> "SessionStatsAccumulator":
        for rnd in rounds:
            self.add_round(rnd)
        return self

    def result(self) -> Dict[int, ParticipantStats]:
        return self.stats

def participant_stats(participant_id: int, rounds: Iterable[RoundSummary]) -> ParticipantStats:
    return SessionStatsAccumulator([participant_id]).add_rounds(rounds).result()[participant_id]

def session_stats(participant_ids: Iterable[int], rounds: Iterable[RoundSummary]) -> Dict[int, ParticipantStats]:
    """
    Stats for every participant of a session in a single pass over its rounds.
    """
    return SessionStatsAccumulator(participant_ids).add_rounds(rounds).result()

def session_winners(stats: Dict[int, ParticipantStats]) -> set[int]:
    """
    Participants who drank the fewest sips. Ties all win.
    """
    if not stats:
        return set()
    min_sips = min(s.sips_drunk for s in stats.values())
    return {pid for pid, s in stats.items() if s.sips_drunk == min_sips}

def player_global_stats(
    player_id: int,
    participations: Iterable[Tuple[int, GameSummary]]
) -> PlayerGlobalStats:
    """
    Sums a registered player's stats over completed sessions.

    participations yields (participant_id, game) pairs; it is consumed lazily
    so callers can load one session at a time.
    """
    totals = PlayerGlobalStats(player_id=player_id)

    for participant_id, game in participations:
        if game.status != GameStatus.COMPLETED:
            continue

        all_stats = session_stats([p.id for p in game.participants], game.rounds)
        own = all_stats.get(participant_id) or ParticipantStats(participant_id=participant_id)

        totals.games_played += 1
        totals.total_sips_drunk += own.sips_drunk
        totals.total_sips_awarded += own.sips_awarded
        if participant_id in session_winners(all_stats):
            totals.games_won += 1

    return totals
