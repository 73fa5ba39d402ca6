import logging
from bisect import bisect_left
from collections import defaultdict, deque
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .fsa_properties import alphabet_equal, graphemes_only, split_graphemes
from .fsa_simulation import DfaEvaluator
from .fsa_table import Table

logger = logging.getLogger(__name__)


@dataclass
class DfaState:
    """
    A state of a DFA.

    ``transitions[i]`` is the index of the state entered on the i-th alphabet symbol.
    """
    name: str
    initial: bool
    accepting: bool
    transitions: List[int] = field(default_factory=list)


class Dfa:
    """
    A deterministic finite automaton.

    States refer to each other by index into ``states``. Every state has exactly
    one transition per alphabet symbol and exactly one state is initial, the one
    at ``initial_state``. Build one from text with :func:`fsakit.validation.load_dfa`.

    Example::

        dfa = load_dfa('''
                   0    1
            → even even odd
            * odd  even odd
        ''')
        dfa.accepts_graphemes("001")  # True
    """

    def __init__(self, alphabet: Sequence[str], states: List[DfaState], initial_state: int):
        self.alphabet: Tuple[str, ...] = tuple(alphabet)
        self.states = states
        self.initial_state = initial_state
        self._symbol_indices = {symbol: i for i, symbol in enumerate(self.alphabet)}

    def __eq__(self, other) -> bool:
        if not isinstance(other, Dfa):
            return NotImplemented
        return (self.alphabet == other.alphabet and self.states == other.states
                and self.initial_state == other.initial_state)

    def __repr__(self):
        return f"Dfa(alphabet={self.alphabet!r}, states={len(self.states)}, initial_state={self.initial_state})"

    def __str__(self):
        return self.to_table()

    @property
    def initial(self) -> DfaState:
        """The initial state."""
        return self.states[self.initial_state]

    def symbol_index(self, symbol: str) -> Optional[int]:
        """Index of a symbol in the alphabet, or None if it is not part of it."""
        return self._symbol_indices.get(symbol)

    def copy(self) -> 'Dfa':
        """Return an independent copy sharing only the immutable alphabet and names."""
        states = [replace(state, transitions=list(state.transitions)) for state in self.states]
        return Dfa(self.alphabet, states, self.initial_state)

    def evaluator(self) -> DfaEvaluator:
        return DfaEvaluator(self)

    def accepts(self, symbols: Sequence[str]) -> bool:
        """
        Checks whether the DFA accepts a word.

        Args:
            symbols: The word as a sequence of alphabet symbols.

        Returns:
            bool: True if the word ends in an accepting state. Words holding
            symbols outside the alphabet are never accepted.
        """
        return self.evaluator().step_all(symbols).is_accepting()

    def accepts_graphemes(self, text: str) -> bool:
        """Check a word given as a string, reading each grapheme cluster as one symbol."""
        return self.accepts(split_graphemes(text))

    def graphemes_only(self) -> bool:
        """Check if every alphabet symbol is a single grapheme, see :meth:`accepts_graphemes`."""
        return graphemes_only(self.alphabet)

    def invert(self):
        """Flip every state's accepting flag, turning the DFA into its complement."""
        for state in self.states:
            state.accepting = not state.accepting

    def union(self, other: 'Dfa') -> Optional['Dfa']:
        return self.product_construction(other, lambda s1, s2: s1.accepting or s2.accepting)

    def intersection(self, other: 'Dfa') -> Optional['Dfa']:
        return self.product_construction(other, lambda s1, s2: s1.accepting and s2.accepting)

    def difference(self, other: 'Dfa') -> Optional['Dfa']:
        """Words accepted by this DFA but not by ``other``."""
        return self.product_construction(other, lambda s1, s2: s1.accepting and not s2.accepting)

    def symmetric_difference(self, other: 'Dfa') -> Optional['Dfa']:
        """Words accepted by exactly one of the two DFAs."""
        return self.product_construction(other, lambda s1, s2: s1.accepting != s2.accepting)

    def product_construction(self, other: 'Dfa',
                             combinator: Callable[[DfaState, DfaState], bool]) -> Optional['Dfa']:
        """
        Builds the product of two DFAs.

        Each state of the result tracks the pair of states the two DFAs are in
        after the same input. Only pairs reachable from the pair of initial
        states are built.

        Args:
            other (Dfa): The second DFA. Its alphabet may be ordered differently.
            combinator: Decides from the two source states whether a pair accepts.

        Returns:
            Optional[Dfa]: The product over this DFA's alphabet order, or None
            if the alphabets differ. States are named ``(name1,name2)`` unless
            that gives duplicates, in which case they are numbered.
        """
        if not alphabet_equal(self.alphabet, other.alphabet):
            return None

        other_indices = [other.symbol_index(symbol) for symbol in self.alphabet]
        start = (self.initial_state, other.initial_state)
        pair_indices: Dict[Tuple[int, int], int] = {start: 0}
        pairs = [start]
        queue = deque([start])
        pair_transitions: List[List[Tuple[int, int]]] = []

        while queue:
            s1, s2 = queue.popleft()
            first = self.states[s1].transitions
            second = other.states[s2].transitions
            targets = []
            for i, j in enumerate(other_indices):
                target = (first[i], second[j])
                if target not in pair_indices:
                    pair_indices[target] = len(pairs)
                    pairs.append(target)
                    queue.append(target)
                targets.append(target)
            pair_transitions.append(targets)

        names = [f"({self.states[s1].name},{other.states[s2].name})" for s1, s2 in pairs]
        if len(set(names)) < len(names):
            names = [str(i) for i in range(len(pairs))]

        states = []
        for i, (s1, s2) in enumerate(pairs):
            states.append(DfaState(
                name=names[i],
                initial=i == 0,
                accepting=bool(combinator(self.states[s1], other.states[s2])),
                transitions=[pair_indices[target] for target in pair_transitions[i]]
            ))

        logger.debug("Product construction built %d states from %d x %d",
                     len(states), len(self.states), len(other.states))
        return Dfa(self.alphabet, states, 0)

    def minimize(self):
        """
        Minimises this DFA in place.

        Unreachable states are removed first, then non-distinguishable states
        are merged. The result is the minimal DFA of the language, up to the
        naming of states.
        """
        before = len(self.states)
        self.remove_unreachable_states()
        self.merge_nondistinguishable_states()
        logger.debug("Minimised DFA from %d to %d states", before, len(self.states))

    def merge_nondistinguishable_states(self):
        """
        Merge every class of non-distinguishable states into one state.

        The state with the lowest index of each class is kept.
        """
        mapper = {}
        for group in self.state_equivalence_classes_idx():
            representative = min(group)
            for state in group:
                if state != representative:
                    mapper[state] = representative

        self._remap_transitions(mapper)
        if self.initial_state in mapper:
            self.initial_state = mapper[self.initial_state]
            self.states[self.initial_state].initial = True
        self._remove_states(mapper.keys())

    def state_equivalence_classes(self) -> List[List[DfaState]]:
        """The classes of non-distinguishable states, as states."""
        return [[self.states[i] for i in sorted(group)] for group in self.state_equivalence_classes_idx()]

    def state_equivalence_classes_idx(self) -> List[Set[int]]:
        """
        Finds the classes of non-distinguishable states using Hopcroft's algorithm.

        Returns:
            List[Set[int]]: A partition of all state indices.
        """
        accepting = {i for i, state in enumerate(self.states) if state.accepting}
        non_accepting = set(range(len(self.states))) - accepting
        if not accepting:
            return [non_accepting]
        if not non_accepting:
            return [accepting]

        partition: List[Set[int]] = [accepting, non_accepting]
        worklist: List[Set[int]] = [group.copy() for group in partition]

        # reverse[c][t] holds the states entering t on symbol c
        reverse: List[Dict[int, Set[int]]] = [defaultdict(set) for _ in self.alphabet]
        for i, state in enumerate(self.states):
            for symbol, target in enumerate(state.transitions):
                reverse[symbol][target].add(i)

        while worklist:
            splitter = worklist.pop()
            for symbol in range(len(self.alphabet)):
                involved = set()
                for state in splitter:
                    involved |= reverse[symbol].get(state, set())
                new_partition = []
                for group in partition:
                    inter = group & involved
                    diff = group - involved
                    if inter and diff:
                        new_partition.extend([inter, diff])
                        if group in worklist:
                            worklist.remove(group)
                            worklist.extend([inter, diff])
                        else:
                            worklist.append(inter if len(inter) <= len(diff) else diff)
                    else:
                        new_partition.append(group)
                partition = new_partition

        return partition

    def remove_unreachable_states(self):
        """Remove every state no input leads to."""
        self._remove_states(self.unreachable_state_idx())

    def unreachable_states(self) -> List[DfaState]:
        return [self.states[i] for i in sorted(self.unreachable_state_idx())]

    def unreachable_state_idx(self) -> Set[int]:
        return set(range(len(self.states))) - self.reachable_state_idx()

    def reachable_states(self) -> List[DfaState]:
        return [self.states[i] for i in sorted(self.reachable_state_idx())]

    def reachable_state_idx(self) -> Set[int]:
        """Indices of the states some input leads to, found by a search from the initial state."""
        reachable = {self.initial_state}
        queue = deque([self.initial_state])
        while queue:
            state = queue.popleft()
            for target in self.states[state].transitions:
                if target not in reachable:
                    reachable.add(target)
                    queue.append(target)
        return reachable

    def has_reachable_accepting_state(self) -> bool:
        """Check whether the DFA accepts any word at all."""
        return any(self.states[i].accepting for i in self.reachable_state_idx())

    def _remap_transitions(self, mapper: Dict[int, int]):
        """Redirect every transition to a key of ``mapper`` to its value."""
        for state in self.states:
            state.transitions = [mapper.get(target, target) for target in state.transitions]

    def _remove_states(self, to_remove: Iterable[int]):
        """
        Remove states and renumber the transitions of the remaining ones.

        No remaining state may have a transition to a removed state, and the
        initial state cannot be removed.

        Raises:
            RuntimeError: If either rule is broken.
        """
        removed = sorted(set(to_remove))
        if not removed:
            return
        removed_set = set(removed)
        if self.initial_state in removed_set:
            raise RuntimeError("Cannot remove the initial state")

        kept = [state for i, state in enumerate(self.states) if i not in removed_set]
        for state in kept:
            for target in state.transitions:
                if target in removed_set:
                    raise RuntimeError(f"State '{state.name}' has a transition to a removed state")
            # Every removed state below a target shifts it down by one
            state.transitions = [target - bisect_left(removed, target) for target in state.transitions]

        self.initial_state -= bisect_left(removed, self.initial_state)
        self.states = kept

    def to_nfa(self) -> 'Nfa':
        """Lift this DFA to an equivalent NFA with singleton transition sets and the same names."""
        from .nfa import Nfa, NfaState

        states = [
            NfaState(state.name, state.initial, state.accepting,
                     [[target] for target in state.transitions], [])
            for state in self.states
        ]
        return Nfa(self.alphabet, states, self.initial_state)

    def to_table(self) -> str:
        """Render the DFA as a table the parser reads back into an equal DFA."""
        return self._table('→')

    def ascii_table(self) -> str:
        """Like :meth:`to_table`, but marks the initial state with ``->``."""
        return self._table('->')

    def _table(self, arrow: str) -> str:
        table = Table()
        table.push_row(['', '', ''] + list(self.alphabet))
        for state in self.states:
            row = [arrow if state.initial else '', '*' if state.accepting else '', state.name]
            row.extend(self.states[target].name for target in state.transitions)
            table.push_row(row)
        return table.to_string()

    def equivalent_to(self, other: 'Dfa') -> bool:
        """
        Checks whether two DFAs accept the same language.

        The pairs of states reachable on the same input are explored until a
        pair disagrees on acceptance. No product automaton is built.

        Args:
            other (Dfa): The DFA to compare with.

        Returns:
            bool: False if the alphabets differ (as sets) or the languages differ.
        """
        if not alphabet_equal(self.alphabet, other.alphabet):
            return False

        other_indices = [other.symbol_index(symbol) for symbol in self.alphabet]
        start = (self.initial_state, other.initial_state)
        explored = {start}
        stack = [start]

        while stack:
            s1, s2 = stack.pop()
            if self.states[s1].accepting != other.states[s2].accepting:
                return False
            for i, j in enumerate(other_indices):
                pair = (self.states[s1].transitions[i], other.states[s2].transitions[j])
                if pair not in explored:
                    explored.add(pair)
                    stack.append(pair)
        return True
