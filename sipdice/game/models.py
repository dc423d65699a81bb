from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

class SpecialRollType(str, Enum):
    THREE_OF_A_KIND = "three_of_a_kind"
    STAIRS = "stairs"
    SUPER_STAIRS = "super_stairs"
    SHIT_STAIRS = "shit_stairs"
    NONE = "none"

class RoundStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

class GameStatus(str, Enum):
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

class PlayerType(str, Enum):
    REGISTERED = "registered"
    GUEST = "guest"

# --- Event records (persisted, never mutated) ---

class Die(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: int = Field(ge=1, le=6)
    kept: bool = False           # Held over from the previous roll

class Roll(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    session_id: int
    turn_id: int
    roll_number: int             # 1-based, contiguous within a turn
    dice: list[Die]
    rolled_at: datetime = Field(default_factory=datetime.now)

    @property
    def values(self) -> list[int]:
        return [d.value for d in self.dice]

class PlayerTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    session_id: int
    round_id: int
    participant_id: int
    turn_order: int              # 1-based index into the round's player_order

class Round(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    session_id: int
    round_number: int
    player_order: list[int]      # Fixed at creation, starting participant first
    started_at: datetime = Field(default_factory=datetime.now)

class GameSessionConfig(BaseModel):
    name: str = "New Game"
    randomize_turn_order: bool = False

class GameSession(BaseModel):
    id: int
    owner_id: str
    config: GameSessionConfig = Field(default_factory=GameSessionConfig)
    created_at: datetime = Field(default_factory=datetime.now)
    completed_at: datetime | None = None   # Terminal mark, set exactly once

class Participant(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    session_id: int
    player_id: int | None = None           # Set for registered players
    player_type: PlayerType
    guest_name: str | None = None          # Set for guests
    joined_at: datetime = Field(default_factory=datetime.now)

    @property
    def display_name(self) -> str:
        if self.player_type == PlayerType.GUEST:
            return self.guest_name or f"guest-{self.id}"
        return f"player-{self.player_id}"

class Player(BaseModel):
    id: int
    user_id: str
    username: str
    display_name: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)

# --- Joined slices handed to the reducers ---

class TurnHistory(BaseModel):
    turn: PlayerTurn
    rolls: list[Roll] = []       # Ascending roll_number

class RoundHistory(BaseModel):
    round: Round
    turns: list[TurnHistory] = []  # Ascending turn_order

class GameHistory(BaseModel):
    session: GameSession
    participants: list[Participant] = []
    rounds: list[RoundHistory] = []  # Ascending round_number

# --- Derived state (recomputed on every read) ---

class RollSummary(BaseModel):
    id: int
    roll_number: int
    dice: list[Die]
    rolled_at: datetime
    score: int
    special_roll_type: SpecialRollType   # Context-free classification

class TurnSummary(BaseModel):
    id: int
    round_id: int
    participant_id: int
    turn_order: int
    rolls: list[RollSummary]
    total_rolls_used: int
    final_score: int | None = None       # None when the turn is safe
    is_safe: bool
    special_roll_type: SpecialRollType   # Resolved against the previous turn
    completed_at: datetime

class RoundSummary(BaseModel):
    id: int
    session_id: int
    round_number: int
    player_order: list[int]
    started_at: datetime
    turns: list[TurnSummary]
    status: RoundStatus
    starting_participant_id: int
    max_rolls_allowed: int
    current_penalty_sips: int
    final_penalty_sips: int | None = None
    losing_participant_id: int | None = None
    completed_at: datetime | None = None

class GameSummary(BaseModel):
    id: int
    owner_id: str
    config: GameSessionConfig
    created_at: datetime
    completed_at: datetime | None = None
    participants: list[Participant]
    rounds: list[RoundSummary]
    status: GameStatus
    started_at: datetime | None = None

class ParticipantStats(BaseModel):
    participant_id: int
    rounds_won: int = 0
    rounds_lost: int = 0
    sips_drunk: int = 0
    sips_awarded: int = 0

class PlayerGlobalStats(BaseModel):
    player_id: int
    games_played: int = 0
    games_won: int = 0
    total_sips_drunk: int = 0
    total_sips_awarded: int = 0
