from typing import Dict, Iterable, List, Sequence, Union

import regex

# An extended grapheme cluster, i.e. one user-perceived character
_GRAPHEME = regex.compile(r'\X')


def alphabet_equal(first: Sequence[str], second: Sequence[str]) -> bool:
    """
    Checks whether two alphabets contain the same symbols, ignoring order.

    Args:
        first (Sequence[str]): The first alphabet.
        second (Sequence[str]): The second alphabet.

    Returns:
        bool: True if both alphabets have the same size and symbols.
    """
    return len(first) == len(second) and set(first) == set(second)


def split_graphemes(text: str) -> List[str]:
    """Split a string into its extended grapheme clusters."""
    return _GRAPHEME.findall(text)


def is_grapheme(symbol: str) -> bool:
    """Check if a symbol consists of exactly one grapheme cluster."""
    return len(split_graphemes(symbol)) == 1


def graphemes_only(alphabet: Iterable[str]) -> bool:
    """
    Checks if every symbol of an alphabet is a single grapheme cluster.

    Only for such alphabets can a plain string be split into symbols without
    ambiguity, which is what ``accepts_graphemes`` relies on.

    Args:
        alphabet (Iterable[str]): The alphabet to check.

    Returns:
        bool: True if all symbols are single graphemes.
    """
    return all(is_grapheme(symbol) for symbol in alphabet)


def check_all_properties(automaton: Union['Dfa', 'Nfa']) -> Dict:
    """
    Summarises the structural properties of an automaton.

    Args:
        automaton: A ``Dfa`` or ``Nfa``.

    Returns:
        Dict: A dictionary with the keys:
            - type: 'dfa' or 'nfa'
            - states_count, alphabet_size
            - graphemes_only
            - has_epsilon_moves
            - reachable_states, unreachable_states (names)
            - has_reachable_accepting_state
            - accepting_states
            - is_minimal (DFA only, None for NFAs)
    """
    from .dfa import Dfa

    is_dfa = isinstance(automaton, Dfa)
    properties = {
        'type': 'dfa' if is_dfa else 'nfa',
        'states_count': len(automaton.states),
        'alphabet_size': len(automaton.alphabet),
        'graphemes_only': automaton.graphemes_only(),
        'has_epsilon_moves': False if is_dfa else automaton.has_epsilon_moves(),
        'reachable_states': [state.name for state in automaton.reachable_states()],
        'unreachable_states': [state.name for state in automaton.unreachable_states()],
        'has_reachable_accepting_state': automaton.has_reachable_accepting_state(),
        'accepting_states': [state.name for state in automaton.states if state.accepting],
        'is_minimal': None,
    }

    if is_dfa:
        minimal = automaton.copy()
        minimal.minimize()
        properties['is_minimal'] = len(minimal.states) == len(automaton.states)

    return properties
