import pytest
from sipdice.config import DEFAULT_GAME_CONFIG, resolve_randomize_turn_order, resolve_session_config
from sipdice.game.models import GameSessionConfig

def test_randomize_override_wins():
    shuffled = GameSessionConfig(randomize_turn_order=True)
    assert resolve_randomize_turn_order(False, shuffled) is False
    assert resolve_randomize_turn_order(True, GameSessionConfig()) is True
    assert resolve_randomize_turn_order(True, None) is True

def test_randomize_falls_back_to_session_then_default():
    assert resolve_randomize_turn_order(None, GameSessionConfig(randomize_turn_order=True)) is True
    assert resolve_randomize_turn_order(None, GameSessionConfig(randomize_turn_order=False)) is False
    assert resolve_randomize_turn_order(None, None) is DEFAULT_GAME_CONFIG.randomize_turn_order is False

def test_session_config_defaults():
    assert resolve_session_config() == DEFAULT_GAME_CONFIG
    assert resolve_session_config({"name": None, "randomize_turn_order": None}) == DEFAULT_GAME_CONFIG

def test_session_config_layers_overrides_on_base():
    base = GameSessionConfig(name="Friday", randomize_turn_order=True)
    assert resolve_session_config(base=base) == base

    config = resolve_session_config({"randomize_turn_order": False}, base)
    assert config.name == "Friday"
    assert config.randomize_turn_order is False

    config = resolve_session_config({"name": "Saturday"})
    assert config.name == "Saturday"
    assert config.randomize_turn_order is False

def test_unknown_session_config_field():
    with pytest.raises(ValueError, match="colour"):
        resolve_session_config({"colour": "red"})
