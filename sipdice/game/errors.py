class SipDiceError(Exception):
    """Base class for every error raised by the write path"""

class InvalidDiceSet(SipDiceError, ValueError):
    """Raised when a dice set does not hold exactly three faces in 1-6"""

class MalformedPlayerOrder(SipDiceError, ValueError):
    """Raised when a player order is empty, has duplicates or the wrong participants"""

class OutOfOrderRoll(SipDiceError, ValueError):
    """Raised when a roll number is not the next contiguous one for its turn"""

class RollLimitExceeded(SipDiceError, ValueError):
    """Raised when a turn already holds the maximum number of rolls"""

class OutOfOrderTurn(SipDiceError, ValueError):
    """Raised when a turn does not fill the next slot of the round's player order"""

class RecordNotFound(SipDiceError, LookupError):
    """Raised when a write references a session, round, turn or player that does not exist"""

class DuplicateRecord(SipDiceError):
    """Raised when a unique player or participant would be created twice"""

class SessionAlreadyCompleted(SipDiceError):
    """Raised when writing to, or completing, a session that is already completed"""