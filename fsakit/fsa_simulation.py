from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Union


class DfaEvaluator:
    """
    Steps a DFA through its input one symbol at a time.

    The evaluator is either at a state index or failed. Failure happens when a
    symbol outside the alphabet is fed, and is permanent: a failed evaluator
    never accepts. Start a new evaluator to evaluate another word.
    """

    def __init__(self, dfa: 'Dfa'):
        self.dfa = dfa
        # None once failed
        self.current: Optional[int] = dfa.initial_state

    def is_failed(self) -> bool:
        return self.current is None

    def current_state(self) -> Optional['DfaState']:
        """The state the evaluator is in, or None if it has failed."""
        if self.current is None:
            return None
        return self.dfa.states[self.current]

    def current_state_names(self) -> List[str]:
        state = self.current_state()
        return [] if state is None else [state.name]

    def step(self, symbol: str) -> Optional[int]:
        """
        Feed one symbol.

        Args:
            symbol (str): An alphabet symbol.

        Returns:
            Optional[int]: The index of the new state, or None if the evaluator failed.
        """
        if self.current is None:
            return None
        index = self.dfa.symbol_index(symbol)
        if index is None:
            self.current = None
            return None
        return self.step_index(index)

    def step_index(self, index: int) -> Optional[int]:
        """Feed the symbol at the given alphabet index."""
        if self.current is None:
            return None
        self.current = self.dfa.states[self.current].transitions[index]
        return self.current

    def step_all(self, symbols: Sequence[str]) -> 'DfaEvaluator':
        """Feed every symbol in order and return the evaluator."""
        for symbol in symbols:
            if self.step(symbol) is None:
                break
        return self

    def step_multiple(self, symbols: Sequence[str]) -> List[Optional[int]]:
        """Feed every symbol in order, returning the state index after each one."""
        return [self.step(symbol) for symbol in symbols]

    def is_accepting(self) -> bool:
        return self.current is not None and self.dfa.states[self.current].accepting

    def copy(self) -> 'DfaEvaluator':
        evaluator = DfaEvaluator(self.dfa)
        evaluator.current = self.current
        return evaluator


class NfaEvaluator:
    """
    Steps an NFA through its input, tracking the set of active states.

    The active set is always closed under epsilon moves. Like
    :class:`DfaEvaluator`, feeding an unknown symbol fails the evaluator for
    good. An empty active set is not a failure, it simply never accepts.
    """

    def __init__(self, nfa: 'Nfa'):
        self.nfa = nfa
        # None once failed
        self.current: Optional[Set[int]] = nfa.closure(nfa.initial_state)

    def is_failed(self) -> bool:
        return self.current is None

    def current_states(self) -> Optional[Set[int]]:
        return self.current

    def current_state_names(self) -> List[str]:
        if self.current is None:
            return []
        return [self.nfa.states[i].name for i in sorted(self.current)]

    def step(self, symbol: str) -> Optional[Set[int]]:
        """
        Feed one symbol.

        Args:
            symbol (str): An alphabet symbol.

        Returns:
            Optional[Set[int]]: The new active states, or None if the evaluator failed.
        """
        if self.current is None:
            return None
        index = self.nfa.symbol_index(symbol)
        if index is None:
            self.current = None
            return None
        return self.step_index(index)

    def step_index(self, index: int) -> Optional[Set[int]]:
        """Feed the symbol at the given alphabet index."""
        if self.current is None:
            return None
        targets = set()
        for state in self.current:
            targets.update(self.nfa.states[state].transitions[index])
        self.current = self.nfa.closure_of_set(targets)
        return self.current

    def step_all(self, symbols: Sequence[str]) -> 'NfaEvaluator':
        """Feed every symbol in order and return the evaluator."""
        for symbol in symbols:
            if self.step(symbol) is None:
                break
        return self

    def step_multiple(self, symbols: Sequence[str]) -> List[Optional[Set[int]]]:
        """Feed every symbol in order, returning a copy of the active states after each one."""
        steps = []
        for symbol in symbols:
            current = self.step(symbol)
            steps.append(None if current is None else set(current))
        return steps

    def is_accepting(self) -> bool:
        if self.current is None:
            return False
        return any(self.nfa.states[i].accepting for i in self.current)

    def copy(self) -> 'NfaEvaluator':
        evaluator = NfaEvaluator.__new__(NfaEvaluator)
        evaluator.nfa = self.nfa
        evaluator.current = None if self.current is None else set(self.current)
        return evaluator


def simulate_automaton(automaton: Union['Dfa', 'Nfa'], symbols: Sequence[str]) -> Dict:
    """
    Simulates a DFA or NFA on a word and records the visited states.

    Args:
        automaton: The ``Dfa`` or ``Nfa`` to run.
        symbols: The word as a sequence of alphabet symbols.

    Returns:
        Dict: A dictionary with:
        {
            'accepted': bool,
            'path': [[state names], ...],  # active states before and after each symbol
            'rejection_reason': str or None,
            'rejection_position': int or None  # index of the offending symbol
        }
    """
    evaluator = automaton.evaluator()
    path = [evaluator.current_state_names()]

    for position, symbol in enumerate(symbols):
        if evaluator.step(symbol) is None:
            return {
                'accepted': False,
                'path': path,
                'rejection_reason': f"Symbol '{symbol}' not in alphabet",
                'rejection_position': position
            }
        path.append(evaluator.current_state_names())

    accepted = evaluator.is_accepting()
    if accepted:
        reason = None
    elif not path[-1]:
        reason = 'No active states left after reading the input'
    else:
        reason = 'Ended in a non-accepting state'

    return {
        'accepted': accepted,
        'path': path,
        'rejection_reason': reason,
        'rejection_position': None if accepted else len(symbols)
    }


def simulate_automaton_generator(automaton: Union['Dfa', 'Nfa'], symbols: Sequence[str]) -> Iterator[Dict]:
    """
    Generator version of :func:`simulate_automaton`, yielding one event per step.

    Yields:
        Dict: First ``{'type': 'start', 'states': [...]}``, then for each symbol
        ``{'type': 'step', 'position': int, 'symbol': str, 'states': [...],
        'accepting': bool}``, and finally ``{'type': 'result', 'accepted': bool}``.
        An unknown symbol yields ``{'type': 'rejected', ...}`` and stops.
    """
    evaluator = automaton.evaluator()
    yield {'type': 'start', 'states': evaluator.current_state_names()}

    for position, symbol in enumerate(symbols):
        if evaluator.step(symbol) is None:
            yield {
                'type': 'rejected',
                'position': position,
                'symbol': symbol,
                'reason': f"Symbol '{symbol}' not in alphabet"
            }
            return
        yield {
            'type': 'step',
            'position': position,
            'symbol': symbol,
            'states': evaluator.current_state_names(),
            'accepting': evaluator.is_accepting()
        }

    yield {'type': 'result', 'accepted': evaluator.is_accepting()}


def check_words(automaton: Union['Dfa', 'Nfa'], words: Iterable[str]) -> Dict:
    """
    Checks a batch of words, each split into grapheme clusters.

    Returns:
        Dict: ``{'results': [{'word': str, 'accepted': bool, 'status': 'OK' or 'FAIL'}, ...],
        'passed': int, 'total': int}``
    """
    results = []
    for word in words:
        accepted = automaton.accepts_graphemes(word)
        results.append({'word': word, 'accepted': accepted, 'status': 'OK' if accepted else 'FAIL'})
    return {
        'results': results,
        'passed': sum(result['accepted'] for result in results),
        'total': len(results)
    }


def find_counterexample(automaton: Union['Dfa', 'Nfa'], words: Iterable[str]) -> Optional[str]:
    """The first of ``words`` the automaton rejects, or None if it accepts them all."""
    for word in words:
        if not automaton.accepts_graphemes(word):
            return word
    return None
