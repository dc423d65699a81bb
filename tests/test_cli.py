import pytest
from typer.testing import CliRunner
from sipdice.cli import app

runner = CliRunner()

@pytest.fixture
def invoke(tmp_path):
    data_dir = str(tmp_path / "cli-data")

    def _invoke(*args):
        return runner.invoke(app, ["--data-dir", data_dir, *args])

    return _invoke

def test_play_a_game_from_the_command_line(invoke):
    assert invoke("add-player", "alice", "--display-name", "Alice").exit_code == 0
    assert invoke("add-player", "bob").exit_code == 0

    result = invoke("new-game", "--owner", "alice", "--name", "Friday")
    assert result.exit_code == 0
    assert "Created game 1" in result.output

    assert invoke("join", "1", "--player-id", "1").exit_code == 0
    assert invoke("join", "1", "--player-id", "2").exit_code == 0
    assert invoke("join", "1", "--guest", "carl").exit_code == 0

    result = invoke("start-round", "1", "--starting", "2")
    assert result.exit_code == 0
    assert "[2, 1, 3]" in result.output

    result = invoke("turn", "1")
    assert result.exit_code == 0
    assert "Participant 2" in result.output

    result = invoke("roll", "1", "--reroll", "0", "--reroll", "2")
    assert result.exit_code == 0
    assert "Roll 2" in result.output

    assert invoke("turn", "1").exit_code == 0
    assert invoke("turn", "1").exit_code == 0

    result = invoke("show", "1")
    assert result.exit_code == 0
    assert "Friday" in result.output
    assert "completed" in result.output

    assert invoke("stats", "1").exit_code == 0
    assert invoke("finish", "1").exit_code == 0
    assert invoke("player-stats", "1").exit_code == 0

    result = invoke("leaderboard", "--markdown")
    assert result.exit_code == 0
    assert "Leaderboard" in result.output

def test_errors_exit_with_code_one(invoke):
    invoke("new-game", "--owner", "alice")
    invoke("join", "1", "--guest", "ann")

    result = invoke("roll", "1")
    assert result.exit_code == 1
    assert "Error" in result.output

    assert invoke("start-round", "1", "--starting", "9").exit_code == 1
    assert invoke("show", "7").exit_code == 1
    assert invoke("player-stats", "3").exit_code == 1
    assert invoke("join", "1", "--player-id", "4").exit_code == 1

    assert invoke("finish", "1").exit_code == 0
    assert invoke("finish", "1").exit_code == 1

def test_players_listing(invoke):
    invoke("add-player", "zoe")
    result = invoke("players")
    assert result.exit_code == 0
    assert "zoe" in result.output
