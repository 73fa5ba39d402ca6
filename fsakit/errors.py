from typing import Optional


class FsaError(ValueError):
    """Base class for every error raised while reading or processing automata."""


class FsaSyntaxError(FsaError):
    """
    Raised when a table or regex cannot be parsed.

    Attributes:
        source: The complete text that was being parsed.
        remaining: The unparsed remainder of the text at the point of failure.
        position: Character offset of the failure in ``source``.
        line: 1-based line of the failure.
        column: 1-based column of the failure.
    """

    def __init__(self, message: str, source: str, remaining: Optional[str] = None):
        self.source = source
        self.remaining = source if remaining is None else remaining
        self.position = len(source) - len(self.remaining)
        consumed = source[:self.position]
        self.line = consumed.count('\n') + 1
        self.column = self.position - (consumed.rfind('\n') + 1) + 1
        self.message = message
        super().__init__(f"{message} (line {self.line}, column {self.column})")


class FsaValidationError(FsaError):
    """Base class for semantic errors found while validating a parsed automaton."""


class WrongNumberOfTransitions(FsaValidationError):
    def __init__(self, state: str, found: int, expected: int):
        self.state = state
        self.found = found
        self.expected = expected
        super().__init__(
            f"Wrong number of transitions for state '{state}': has {found} expected {expected}")


class TransitionDoesNotExist(FsaValidationError):
    def __init__(self, state: str, target: str):
        self.state = state
        self.target = target
        super().__init__(f"State '{target}' does not exist (in transition from state '{state}')")


class MissingInitialState(FsaValidationError):
    def __init__(self):
        super().__init__("There is no initial state")


class MultipleInitialStates(FsaValidationError):
    def __init__(self, state: Optional[str] = None):
        # The second state that claimed to be initial
        self.state = state
        super().__init__("There are two (or more) initial states")


class DuplicateAlphabetSymbol(FsaValidationError):
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"'{symbol}' appears twice in the alphabet")


class DuplicateStateDefinition(FsaValidationError):
    def __init__(self, state: str):
        self.state = state
        super().__init__(f"State '{state}' defined multiple times")


class EpsilonMovesError(FsaError):
    """Raised by operations that require an NFA without epsilon moves."""

    def __init__(self, message: str = "The NFA has epsilon moves; remove them before enumerating words"):
        super().__init__(message)
