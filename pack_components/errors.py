# Error taxonomy for the reveal engine.
# ConfigurationError is a developer fault (bad pack data) and is never shown raw
# to end users. The misuse errors carry a user-facing message. DuplicateCommitError
# never leaves the collection manager.


class PackEngineError(Exception):
    """Base class for every error raised by the engine."""


class ConfigurationError(PackEngineError):
    """Pack or rarity table data is invalid or missing."""


class PackNotFoundError(ConfigurationError):
    def __init__(self, pack_id: str):
        super().__init__(f"Unknown pack '{pack_id}'")
        self.pack_id = pack_id


class EmptyPackError(PackEngineError):
    def __init__(self, message: str = "This pack has no cards to reveal"):
        super().__init__(message)


class InvalidTransitionError(PackEngineError):
    def __init__(self, action: str, state: str):
        super().__init__(f"Cannot {action} while the reveal is {state}")
        self.action = action
        self.state = state


class CardNotAvailableError(PackEngineError):
    def __init__(self, card_id: str, reason: str):
        super().__init__(f"Card {card_id} is not available: {reason}")
        self.card_id = card_id
        self.reason = reason


class InsufficientCreditsError(PackEngineError):
    def __init__(self, required: float, balance: float):
        super().__init__(f"Insufficient credits: need {required}, have {balance}")
        self.required = required
        self.balance = balance


class DuplicateCommitError(PackEngineError):
    def __init__(self, session_id: str):
        super().__init__(f"Reveal session {session_id} was already committed")
        self.session_id = session_id


class PackUnavailableError(PackEngineError):
    def __init__(self, pack_id: str):
        super().__init__(f"Pack '{pack_id}' is not available for purchase")
        self.pack_id = pack_id
