import logging
from enum import Enum
from typing import Tuple, Union

from .dfa import Dfa
from .nfa import Nfa
from .parser import parse_regex
from .regex_conversions import Regex
from .validation import load_dfa, load_nfa

logger = logging.getLogger(__name__)

Automaton = Union[Dfa, Nfa, Regex]


class AutomatonType(Enum):
    DFA = 'dfa'
    NFA = 'nfa'
    REGEX = 'regex'

    @classmethod
    def from_name(cls, name: str) -> 'AutomatonType':
        """Look up a type by its name, ignoring case."""
        try:
            return cls(str(name).lower())
        except ValueError:
            raise ValueError(f"Unknown automaton type '{name}', expected one of dfa, nfa, regex") from None

    @classmethod
    def of(cls, automaton: Automaton) -> 'AutomatonType':
        if isinstance(automaton, Dfa):
            return cls.DFA
        if isinstance(automaton, Nfa):
            return cls.NFA
        return cls.REGEX


class BinaryOperation(Enum):
    UNION = 'union'
    INTERSECTION = 'intersection'
    DIFFERENCE = 'difference'
    SYMMETRIC_DIFFERENCE = 'symmetric_difference'

    @classmethod
    def from_name(cls, name: str) -> 'BinaryOperation':
        try:
            return cls(str(name).lower())
        except ValueError:
            options = ', '.join(op.value for op in cls)
            raise ValueError(f"Unknown operation '{name}', expected one of {options}") from None


def load_automaton(text: str, automaton_type: AutomatonType) -> Automaton:
    """
    Parses (and for tables, validates) an automaton from text.

    Args:
        text (str): The table or regular expression.
        automaton_type (AutomatonType): How to read ``text``.

    Returns:
        Automaton: A Dfa, Nfa or Regex.

    Raises:
        FsaSyntaxError: If the text does not parse.
        FsaValidationError: If a parsed table is not a valid automaton.
    """
    if automaton_type == AutomatonType.DFA:
        return load_dfa(text)
    if automaton_type == AutomatonType.NFA:
        return load_nfa(text)
    return parse_regex(text)


def to_dfa(automaton: Automaton) -> Tuple[Dfa, bool]:
    """
    Converts any automaton to a DFA.

    Returns:
        Tuple[Dfa, bool]: The DFA (always a new object) and whether a conversion happened.
    """
    if isinstance(automaton, Dfa):
        return automaton.copy(), False
    if isinstance(automaton, Nfa):
        return automaton.to_dfa(), True
    return automaton.to_nfa().to_dfa(), True


def to_nfa(automaton: Automaton) -> Tuple[Nfa, bool]:
    """
    Converts any automaton to an NFA.

    Returns:
        Tuple[Nfa, bool]: The NFA (always a new object) and whether a conversion happened.
    """
    if isinstance(automaton, Nfa):
        return automaton.copy(), False
    return automaton.to_nfa(), True


def to_minimised_dfa(automaton: Automaton) -> Tuple[Dfa, bool]:
    """
    Converts any automaton to a minimal DFA.

    Returns:
        Tuple[Dfa, bool]: The DFA and whether a conversion or a minimisation changed anything.
    """
    dfa, converted = to_dfa(automaton)
    before = len(dfa.states)
    dfa.minimize()
    return dfa, converted or len(dfa.states) != before


def to_minimised_dfa_if_converted(automaton: Automaton) -> Tuple[Dfa, bool]:
    """Like :func:`to_dfa`, but minimises the result when a conversion was needed."""
    dfa, converted = to_dfa(automaton)
    if converted:
        dfa.minimize()
    return dfa, converted


def minimise_dfa(dfa: Dfa) -> Dfa:
    """Returns a minimised copy of ``dfa``."""
    minimised = dfa.copy()
    minimised.minimize()
    return minimised


def nfa_to_dfa(nfa: Nfa) -> Dfa:
    return nfa.to_dfa()


def dfa_to_nfa(dfa: Dfa) -> Nfa:
    return dfa.to_nfa()


def complement_dfa(dfa: Dfa) -> Dfa:
    """Returns a copy of ``dfa`` accepting exactly the words ``dfa`` rejects."""
    complement = dfa.copy()
    complement.invert()
    return complement


def eliminate_epsilon_transitions(nfa: Nfa) -> Nfa:
    """Returns an equivalent copy of ``nfa`` without epsilon moves."""
    result = nfa.copy()
    result.remove_epsilon_moves()
    return result


def regex_to_epsilon_nfa(text: str) -> Nfa:
    return parse_regex(text).to_nfa()


def render_table(automaton: Automaton, ascii_only: bool = False) -> str:
    """
    Renders a DFA or NFA as a table, or a regex in its canonical form.

    Args:
        automaton (Automaton): What to render.
        ascii_only (bool): Use ``->`` and ``eps`` instead of ``→`` and ``ε``.
    """
    if isinstance(automaton, Regex):
        return automaton.to_string()
    return automaton.ascii_table() if ascii_only else automaton.to_table()


def combine_automata(first: Automaton, second: Automaton, operation: BinaryOperation,
                     minimise: bool = False) -> Dfa:
    """
    Applies a binary set operation to the languages of two automata.

    Non-DFA inputs are converted to minimised DFAs first. With ``minimise``,
    DFA inputs and the result are minimised too.

    Args:
        first (Automaton): The left operand.
        second (Automaton): The right operand.
        operation (BinaryOperation): The operation to apply.
        minimise (bool): Whether to minimise inputs and result.

    Returns:
        Dfa: The product DFA.

    Raises:
        ValueError: If the two automata have different alphabets.
    """
    operands = []
    for position, automaton in enumerate((first, second), start=1):
        dfa, converted = to_minimised_dfa_if_converted(automaton)
        if converted:
            logger.debug("Input %d was converted to a minimised DFA", position)
        elif minimise:
            dfa.minimize()
        operands.append(dfa)

    left, right = operands
    combined = getattr(left, operation.value)(right)
    if combined is None:
        raise ValueError("Different alphabets in input DFAs, can't do product construction")

    if minimise:
        combined.minimize()
    return combined
