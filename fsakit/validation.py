from typing import Dict, List, Optional, Sequence

from .dfa import Dfa, DfaState
from .errors import (
    DuplicateAlphabetSymbol,
    DuplicateStateDefinition,
    MissingInitialState,
    MultipleInitialStates,
    TransitionDoesNotExist,
    WrongNumberOfTransitions,
)
from .nfa import Nfa, NfaState
from .parser import EPSILON, ParsedDfa, ParsedNfa, parse_dfa, parse_nfa


def _check_unique_symbols(symbols: Sequence[str]):
    seen = set()
    for symbol in symbols:
        if symbol in seen:
            raise DuplicateAlphabetSymbol(symbol)
        seen.add(symbol)


def _index_states(names: Sequence[str]) -> Dict[str, int]:
    """Map every state name to its position, rejecting names defined twice."""
    indices = {}
    for i, name in enumerate(names):
        if name in indices:
            raise DuplicateStateDefinition(name)
        indices[name] = i
    return indices


def _resolve(indices: Dict[str, int], state: str, target: str) -> int:
    try:
        return indices[target]
    except KeyError:
        raise TransitionDoesNotExist(state, target) from None


def dfa_from_parsed(parsed: ParsedDfa) -> Dfa:
    """
    Validates a parsed DFA table and resolves state names to indices.

    Args:
        parsed (ParsedDfa): The output of :func:`fsakit.parser.parse_dfa`.

    Returns:
        Dfa: The DFA, with states indexed in table order.

    Raises:
        DuplicateAlphabetSymbol: If a symbol appears twice in the header.
        DuplicateStateDefinition: If two lines define the same state.
        WrongNumberOfTransitions: If a line does not have one target per symbol.
        TransitionDoesNotExist: If a target is not defined by any line.
        MultipleInitialStates: If more than one line is marked initial.
        MissingInitialState: If no line is marked initial.
    """
    _check_unique_symbols(parsed.head)
    indices = _index_states([state.name for state in parsed.states])

    initial_state: Optional[int] = None
    states: List[DfaState] = []
    for i, parsed_state in enumerate(parsed.states):
        if len(parsed_state.transitions) != len(parsed.head):
            raise WrongNumberOfTransitions(parsed_state.name, len(parsed_state.transitions), len(parsed.head))
        transitions = [_resolve(indices, parsed_state.name, target) for target in parsed_state.transitions]
        if parsed_state.initial:
            if initial_state is not None:
                raise MultipleInitialStates(parsed_state.name)
            initial_state = i
        states.append(DfaState(parsed_state.name, parsed_state.initial, parsed_state.accepting, transitions))

    if initial_state is None:
        raise MissingInitialState()
    return Dfa(parsed.head, states, initial_state)


def nfa_from_parsed(parsed: ParsedNfa) -> Nfa:
    """
    Validates a parsed NFA table and resolves state names to indices.

    The epsilon column, if any, becomes the states' epsilon moves and is not
    part of the alphabet.

    Args:
        parsed (ParsedNfa): The output of :func:`fsakit.parser.parse_nfa`.

    Returns:
        Nfa: The NFA, with states indexed in table order.

    Raises:
        The same errors as :func:`dfa_from_parsed`. A second epsilon column is
        reported as ``DuplicateAlphabetSymbol('ε')``.
    """
    alphabet = []
    seen = set()
    epsilon_column: Optional[int] = None
    for column, entry in enumerate(parsed.head):
        if entry is EPSILON:
            if epsilon_column is not None:
                raise DuplicateAlphabetSymbol('ε')
            epsilon_column = column
        else:
            if entry in seen:
                raise DuplicateAlphabetSymbol(entry)
            seen.add(entry)
            alphabet.append(entry)
    indices = _index_states([state.name for state in parsed.states])

    initial_state: Optional[int] = None
    states: List[NfaState] = []
    for i, parsed_state in enumerate(parsed.states):
        if len(parsed_state.transitions) != len(parsed.head):
            raise WrongNumberOfTransitions(parsed_state.name, len(parsed_state.transitions), len(parsed.head))

        columns = [[_resolve(indices, parsed_state.name, target) for target in targets]
                   for targets in parsed_state.transitions]
        epsilon_transitions = columns.pop(epsilon_column) if epsilon_column is not None else []

        if parsed_state.initial:
            if initial_state is not None:
                raise MultipleInitialStates(parsed_state.name)
            initial_state = i
        states.append(NfaState(parsed_state.name, parsed_state.initial, parsed_state.accepting,
                               columns, epsilon_transitions))

    if initial_state is None:
        raise MissingInitialState()
    return Nfa(alphabet, states, initial_state)


def load_dfa(text: str) -> Dfa:
    """Parse and validate a DFA table in one go."""
    return dfa_from_parsed(parse_dfa(text))


def load_nfa(text: str) -> Nfa:
    """Parse and validate an NFA table in one go."""
    return nfa_from_parsed(parse_nfa(text))
