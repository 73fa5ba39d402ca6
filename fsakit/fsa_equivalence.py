import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from .dfa import Dfa
from .errors import FsaSyntaxError, FsaValidationError
from .fsa_properties import alphabet_equal
from .fsa_transformations import (
    Automaton,
    AutomatonType,
    load_automaton,
    to_dfa,
    to_minimised_dfa,
    to_nfa,
)

logger = logging.getLogger(__name__)


class EquivalenceResult(Enum):
    EQUIVALENT = "Equivalent"
    NOT_EQUIVALENT = "Not Equivalent"
    NOT_MINIMIZED = "Equivalent but not minimized"
    FAILED_TO_PARSE = "Failed to parse"
    FAILED_TO_VALIDATE = "Failed to validate"

    def __str__(self):
        return self.value


@dataclass
class GradedCandidate:
    """The outcome of testing one candidate, with the error when it could not be loaded."""
    result: EquivalenceResult
    error: Optional[str] = None

    @property
    def passed(self) -> bool:
        return self.result == EquivalenceResult.EQUIVALENT

    def __str__(self):
        if self.error is None:
            return str(self.result)
        return f"{self.result} ({self.error})"


def prepare_to_compare_with(automaton: Automaton, other_type: AutomatonType) -> Automaton:
    """
    Converts ``automaton`` to the kind that compares fastest against ``other_type``.

    DFAs are compared against DFAs, anything else against NFAs.
    """
    if other_type == AutomatonType.DFA:
        return to_dfa(automaton)[0]
    return to_nfa(automaton)[0]


def check_equivalence(expected: Automaton, candidate: Automaton, minimised: bool = False) -> EquivalenceResult:
    """
    Checks whether ``candidate`` accepts the same language as ``expected``.

    Args:
        expected (Automaton): The reference automaton.
        candidate (Automaton): The automaton under test.
        minimised (bool): Also require ``candidate`` to be a minimal DFA.

    Returns:
        EquivalenceResult: NOT_MINIMIZED when the languages agree but the
        candidate DFA has more states than the minimal one.

    Raises:
        ValueError: If ``minimised`` is set and ``candidate`` is not a DFA.
    """
    candidate_type = AutomatonType.of(candidate)
    if minimised and candidate_type != AutomatonType.DFA:
        raise ValueError("The minimised check can only be used when testing DFAs")

    if minimised:
        reference = to_minimised_dfa(expected)[0]
    else:
        reference = prepare_to_compare_with(expected, candidate_type)

    if isinstance(reference, Dfa):
        tested = to_dfa(candidate)[0]
    else:
        tested = to_nfa(candidate)[0]

    if not reference.equivalent_to(tested):
        return EquivalenceResult.NOT_EQUIVALENT
    if minimised and len(reference.states) != len(tested.states):
        logger.debug("Candidate has %d states, minimal DFA has %d", len(tested.states), len(reference.states))
        return EquivalenceResult.NOT_MINIMIZED
    return EquivalenceResult.EQUIVALENT


def grade_candidate(expected: Automaton, text: str, candidate_type: AutomatonType,
                    minimised: bool = False) -> GradedCandidate:
    """
    Loads one candidate from text and checks it against ``expected``.

    Text that does not parse or validate is a result of its own rather than an error.
    """
    try:
        candidate = load_automaton(text, candidate_type)
    except FsaSyntaxError as e:
        return GradedCandidate(EquivalenceResult.FAILED_TO_PARSE, str(e))
    except FsaValidationError as e:
        return GradedCandidate(EquivalenceResult.FAILED_TO_VALIDATE, str(e))
    return GradedCandidate(check_equivalence(expected, candidate, minimised))


def grade_candidates(expected: Automaton, texts: Iterable[str], candidate_type: AutomatonType,
                     minimised: bool = False) -> List[GradedCandidate]:
    """
    Checks many candidates of the same kind against one reference automaton.

    The reference is converted once, to the kind the candidates compare against.

    Args:
        expected (Automaton): The reference automaton.
        texts (Iterable[str]): The candidates' tables or regular expressions.
        candidate_type (AutomatonType): How to read every candidate.
        minimised (bool): Also require each candidate to be a minimal DFA.

    Returns:
        List[GradedCandidate]: One result per candidate, in order.

    Raises:
        ValueError: If ``minimised`` is set and the candidates are not DFAs.
    """
    if minimised and candidate_type != AutomatonType.DFA:
        raise ValueError("The minimised check can only be used when testing DFAs")

    if minimised:
        reference = to_minimised_dfa(expected)[0]
    else:
        reference = prepare_to_compare_with(expected, candidate_type)

    results = [grade_candidate(reference, text, candidate_type, minimised) for text in texts]
    logger.debug("%d/%d candidates passed", sum(graded.passed for graded in results), len(results))
    return results


def are_automata_equivalent(
first: Automaton, second: Automaton) -> Tuple[bool, Dict]:
    """
    Checks whether two automata accept the same language and describes why.

    Returns:
        Tuple[bool, Dict]: Whether they are equivalent, and details holding
        the alphabets and the sizes of both minimal DFAs.
    """
    first_dfa = to_minimised_dfa(first)[0]
    second_dfa = to_minimised_dfa(second)[0]
    details = {
        'first_alphabet': list(first_dfa.alphabet),
        'second_alphabet': list(second_dfa.alphabet),
        'first_minimal_states': len(first_dfa.states),
        'second_minimal_states': len(second_dfa.states),
    }

    equivalent = first_dfa.equivalent_to(second_dfa)
    if not equivalent:
        if not alphabet_equal(first_dfa.alphabet, second_dfa.alphabet):
            details['reason'] = 'Different alphabets'
        else:
            details['reason'] = 'Different languages'
    return equivalent, details
