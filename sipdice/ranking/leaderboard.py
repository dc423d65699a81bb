from typing import Dict, List
from sipdice.game.models import Player, PlayerGlobalStats

class Leaderboard:
    """
    Ranks registered players by their cross-session statistics.
    """

    def __init__(self):
        # player_id -> PlayerGlobalStats
        self.stats: Dict[int, PlayerGlobalStats] = {}
        # player_id -> display name
        self.names: Dict[int, str] = {}

    def add(self, stats: PlayerGlobalStats, player: Player | None = None):
        self.stats[stats.player_id] = stats
        if player:
            self.names[player.id] = player.display_name or player.username

    def name_of(self, player_id: int) -> str:
        return self.names.get(player_id, f"player-{player_id}")

    def get_top_players(self, include_inactive: bool = False) -> List[PlayerGlobalStats]:
        """
        Most games won first, then fewest sips drunk, then most games played.
        Players without a completed game are left out unless asked for.
        """
        players = [
            s for s in self.stats.values()
            if include_inactive or s.games_played > 0
        ]
        return sorted(
            players,
            key=lambda s: (-s.games_won, s.total_sips_drunk, -s.games_played, s.player_id)
        )

    def format_markdown(self) -> str:
        lines = [
            "### Leaderboard",
            "",
            "| Rank | Player | Games Won | Games Played | Sips Drunk | Sips Awarded |",
            "|:---|:---|:---|:---|:---|:---|"
        ]

        for i, s in enumerate(self.get_top_players()):
            lines.append(
                f"| {i+1} | {self.name_of(s.player_id)} | **{s.games_won}** | {s.games_played} "
                f"| {s.total_sips_drunk} | {s.total_sips_awarded} |"
            )

        return "\n".join(lines)
