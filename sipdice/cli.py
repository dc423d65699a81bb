from typing import List, Optional
import typer
from rich.console import Console
from rich.table import Table
from sipdice.config import DATA_DIR, LOG_LEVEL, setup_logging
from sipdice.game.errors import SipDiceError
from sipdice.game.models import Roll, RoundSummary
from sipdice.sessions.service import GameService
from sipdice.storage.json_store import JsonEventStore

app = typer.Typer(help="SipDice: a three-dice drinking game kept as an event log.")
console = Console()

state = {"data_dir": DATA_DIR}

@app.callback()
def main(
    data_dir: str = typer.Option(DATA_DIR, envvar="SIPDICE_DATA_DIR", help="Directory holding the game files"),
    log_level: str = typer.Option(LOG_LEVEL, envvar="SIPDICE_LOG_LEVEL", help="Logging level"),
):
    setup_logging(log_level)
    state["data_dir"] = data_dir

def _service() -> GameService:
    return GameService(JsonEventStore(state["data_dir"]))

def _fail(error):
    console.print(f"[red]Error: {error}[/red]")
    raise typer.Exit(code=1)

@app.command("add-player")
def add_player(
    username: str,
    display_name: Optional[str] = typer.Option(None, help="Name shown in tables"),
):
    """
    Registers a player whose stats are tracked across games.
    """
    try:
        player = _service().store.create_player(username, display_name=display_name)
    except SipDiceError as e:
        _fail(e)
    console.print(f"[green]Registered player {player.id}: {player.username}[/green]")

@app.command("players")
def list_players():
    table = Table(title="Players")
    table.add_column("ID", justify="right")
    table.add_column("Username", style="cyan")
    table.add_column("Display name")
    for p in _service().store.list_players():
        table.add_row(str(p.id), p.username, p.display_name or "")
    console.print(table)

@app.command("new-game")
def new_game(
    owner: str = typer.Option(..., help="Owner of the game session"),
    name: Optional[str] = typer.Option(None, help="Game name"),
    randomize: Optional[bool] = typer.Option(None, "--randomize/--fixed-order", help="Shuffle turn order each round"),
):
    session = _service().create_game(owner, name=name, randomize_turn_order=randomize)
    console.print(f"[green]Created game {session.id}: {session.config.name}[/green]")

@app.command()
def join(
    game_id: int,
    player_id: Optional[int] = typer.Option(None, help="Registered player joining"),
    guest: Optional[str] = typer.Option(None, help="Guest name joining"),
):
    """
    Adds a registered player or a guest to a game.
    """
    try:
        participant = _service().store.add_participant(game_id, player_id=player_id, guest_name=guest)
    except (SipDiceError, ValueError) as e:
        _fail(e)
    console.print(f"[green]Participant {participant.id} joined game {game_id}[/green]")

@app.command("start-round")
def start_round(
    game_id: int,
    starting: int = typer.Option(..., help="Participant who opens the round"),
    randomize: Optional[bool] = typer.Option(None, "--randomize/--fixed-order", help="Override the game's turn order setting"),
):
    try:
        rnd = _service().create_round(game_id, starting, randomize=randomize)
    except SipDiceError as e:
        _fail(e)
    console.print(f"[green]Round {rnd.round_number} started, order: {rnd.player_order}[/green]")

@app.command()
def turn(game_id: int):
    """
    Starts the next participant's turn and makes the first roll.
    """
    try:
        player_turn, first_roll = _service().start_next_turn(game_id)
    except SipDiceError as e:
        _fail(e)
    console.print(f"Participant {player_turn.participant_id} (turn {player_turn.turn_order}) rolled {_format_roll(first_roll)}")

@app.command()
def roll(
    game_id: int,
    reroll: Optional[List[int]] = typer.Option(None, "--reroll", "-r", help="Index (0-2) of a die to roll again; repeat for more"),
):
    """
    Rolls again on the current turn, keeping the dice not re-rolled.
    """
    try:
        new_roll = _service().roll(game_id, reroll=reroll or None)
    except SipDiceError as e:
        _fail(e)
    console.print(f"Roll {new_roll.roll_number}: {_format_roll(new_roll)}")

@app.command()
def finish(game_id: int):
    try:
        _service().complete_game(game_id)
    except SipDiceError as e:
        _fail(e)
    console.print(f"[green]Game {game_id} completed[/green]")

@app.command()
def show(game_id: int):
    """
    Displays every round of a game as derived from its event log.
    """
    service = _service()
    game = service.get_complete_game(game_id)
    if game is None:
        _fail(f"game {game_id} not found")

    names = service.participant_names(game_id)
    console.print(f"[bold]{game.config.name}[/bold] (game {game.id}) - {game.status.value}")
    for rnd in game.rounds:
        _print_round(rnd, names)

@app.command()
def stats(game_id: int):
    service = _service()
    if service.store.get_session(game_id) is None:
        _fail(f"game {game_id} not found")

    names = service.participant_names(game_id)
    table = Table(title=f"Game {game_id} Stats")
    table.add_column("Participant", style="cyan")
    table.add_column("Rounds won", justify="right")
    table.add_column("Rounds lost", justify="right")
    table.add_column("Sips drunk", justify="right", style="bold red")
    table.add_column("Sips awarded", justify="right", style="bold green")
    for pid, s in service.session_stats(game_id).items():
        table.add_row(names.get(pid, str(pid)), str(s.rounds_won), str(s.rounds_lost), str(s.sips_drunk), str(s.sips_awarded))
    console.print(table)

@app.command("player-stats")
def player_stats(player_id: int):
    service = _service()
    player = service.store.get_player(player_id)
    if player is None:
        _fail(f"player {player_id} not found")

    s = service.player_global_stats(player_id)
    console.print(
        f"[cyan]{player.display_name or player.username}[/cyan]: "
        f"{s.games_won}/{s.games_played} games won, "
        f"{s.total_sips_drunk} sips drunk, {s.total_sips_awarded} sips awarded"
    )

@app.command()
def leaderboard(markdown: bool = typer.Option(False, help="Print as a markdown table")):
    """
    Ranks registered players over all completed games.
    """
    board = _service().leaderboard()
    if markdown:
        console.print(board.format_markdown())
        return

    table = Table(title="Leaderboard")
    table.add_column("Rank", justify="right")
    table.add_column("Player", style="cyan")
    table.add_column("Games won", justify="right", style="bold green")
    table.add_column("Games played", justify="right")
    table.add_column("Sips drunk", justify="right")
    table.add_column("Sips awarded", justify="right")
    for i, s in enumerate(board.get_top_players()):
        table.add_row(
            str(i + 1),
            board.name_of(s.player_id),
            str(s.games_won),
            str(s.games_played),
            str(s.total_sips_drunk),
            str(s.total_sips_awarded)
        )
    console.print(table)

def _format_roll(r: Roll) -> str:
    return " ".join(f"[{d.value}]" if d.kept else str(d.value) for d in r.dice)

def _print_round(rnd: RoundSummary, names: dict[int, str]):
    loser = names.get(rnd.losing_participant_id, "-") if rnd.losing_participant_id else "-"
    table = Table(title=f"Round {rnd.round_number} ({rnd.status.value}) - penalty {rnd.current_penalty_sips}, loser {loser}")
    table.add_column("#", justify="right")
    table.add_column("Participant", style="cyan")
    table.add_column("Rolls", justify="right")
    table.add_column("Last roll")
    table.add_column("Category")
    table.add_column("Score", justify="right")

    for t in rnd.turns:
        last = " ".join(str(d.value) for d in t.rolls[-1].dice) if t.rolls else "-"
        status = "[green]safe[/green]" if t.is_safe else str(t.final_score)
        table.add_row(
            str(t.turn_order),
            names.get(t.participant_id, str(t.participant_id)),
            f"{t.total_rolls_used}/{rnd.max_rolls_allowed}",
            last,
            t.special_roll_type.value,
            status
        )
    console.print(table)

if __name__ == "__main__":
    app()
