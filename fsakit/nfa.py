import logging
from bisect import bisect_left
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from .dfa import Dfa, DfaState
from .fsa_properties import alphabet_equal, graphemes_only, split_graphemes
from .fsa_simulation import NfaEvaluator
from .fsa_table import Table

logger = logging.getLogger(__name__)

# A pair of optional state indices in an NFA product construction
StatePair = Tuple[Optional[int], Optional[int]]


@dataclass
class NfaState:
    """
    A state of an NFA.

    ``transitions[i]`` lists the states entered on the i-th alphabet symbol and
    ``epsilon_transitions`` the states entered without reading anything.
    """
    name: str
    initial: bool
    accepting: bool
    transitions: List[List[int]] = field(default_factory=list)
    epsilon_transitions: List[int] = field(default_factory=list)


class Nfa:
    """
    A nondeterministic finite automaton, possibly with epsilon moves.

    States refer to each other by index into ``states`` and exactly one state is
    initial, the one at ``initial_state``. Build one from text with
    :func:`fsakit.validation.load_nfa` or from a regex with ``Regex.to_nfa``.
    """

    def __init__(self, alphabet: Sequence[str], states: List[NfaState], initial_state: int):
        self.alphabet: Tuple[str, ...] = tuple(alphabet)
        self.states = states
        self.initial_state = initial_state
        self._symbol_indices = {symbol: i for i, symbol in enumerate(self.alphabet)}

    def __eq__(self, other) -> bool:
        if not isinstance(other, Nfa):
            return NotImplemented
        return (self.alphabet == other.alphabet and self.states == other.states
                and self.initial_state == other.initial_state)

    def __repr__(self):
        return f"Nfa(alphabet={self.alphabet!r}, states={len(self.states)}, initial_state={self.initial_state})"

    def __str__(self):
        return self.to_table()

    @property
    def initial(self) -> NfaState:
        """The initial state."""
        return self.states[self.initial_state]

    def symbol_index(self, symbol: str) -> Optional[int]:
        """Index of a symbol in the alphabet, or None if it is not part of it."""
        return self._symbol_indices.get(symbol)

    def copy(self) -> 'Nfa':
        """Return an independent copy sharing only the immutable alphabet and names."""
        states = [
            NfaState(state.name, state.initial, state.accepting,
                     [list(targets) for targets in state.transitions],
                     list(state.epsilon_transitions))
            for state in self.states
        ]
        return Nfa(self.alphabet, states, self.initial_state)

    def evaluator(self) -> NfaEvaluator:
        return NfaEvaluator(self)

    def accepts(self, symbols: Sequence[str]) -> bool:
        """
        Checks whether the NFA accepts a word.

        Args:
            symbols: The word as a sequence of alphabet symbols.

        Returns:
            bool: True if some accepting state is active after the word. Words
            holding symbols outside the alphabet are never accepted.
        """
        return self.evaluator().step_all(symbols).is_accepting()

    def accepts_graphemes(self, text: str) -> bool:
        """Check a word given as a string, reading each grapheme cluster as one symbol."""
        return self.accepts(split_graphemes(text))

    def graphemes_only(self) -> bool:
        return graphemes_only(self.alphabet)

    def has_epsilon_moves(self) -> bool:
        return any(state.epsilon_transitions for state in self.states)

    def closure(self, start: int) -> Optional[Set[int]]:
        """
        Computes the epsilon closure of a state.

        Args:
            start (int): A state index.

        Returns:
            Optional[Set[int]]: The states reachable from ``start`` by epsilon
            moves alone, ``start`` included, or None if the index is out of range.
        """
        if not 0 <= start < len(self.states):
            return None
        return self.closure_of_set([start])

    def closure_of_set(self, states: Iterable[int]) -> Set[int]:
        """The union of the epsilon closures of the given states."""
        closure = set(states)
        stack = list(closure)
        while stack:
            state = stack.pop()
            for target in self.states[state].epsilon_transitions:
                if target not in closure:
                    closure.add(target)
                    stack.append(target)
        return closure

    def union(self, other: 'Nfa') -> Optional['Nfa']:
        """
        Builds an NFA accepting the words of either NFA.

        The states of both NFAs are put side by side, with a new initial state
        moving to both old initial states by epsilon moves. If any state name
        appears in both, all states are renamed ``1``, ``2``, ... . Neither
        input is modified.

        Args:
            other (Nfa): The second NFA. Its alphabet may be ordered differently.

        Returns:
            Optional[Nfa]: The union, or None if the alphabets differ.
        """
        if not alphabet_equal(self.alphabet, other.alphabet):
            return None

        result = self.copy()
        second = other.copy()

        # Put the transitions of the second NFA in the first one's alphabet order
        if second.alphabet != result.alphabet:
            order = [second.symbol_index(symbol) for symbol in result.alphabet]
            for state in second.states:
                state.transitions = [state.transitions[i] for i in order]

        offset = len(result.states)
        second._remap_transitions({i: i + offset for i in range(len(second.states))})
        second_initial = second.initial_state + offset
        result.states.extend(second.states)

        if len({state.name for state in result.states}) != len(result.states):
            for i, state in enumerate(result.states, start=1):
                state.name = str(i)

        new_initial = NfaState(
            name=result._fresh_name('s_new'),
            initial=True,
            accepting=False,
            transitions=[[] for _ in result.alphabet],
            epsilon_transitions=[result.initial_state, second_initial]
        )
        result.states[result.initial_state].initial = False
        result.states[second_initial].initial = False
        result.initial_state = len(result.states)
        result.states.append(new_initial)
        return result

    def intersection(self, other: 'Nfa') -> Optional['Nfa']:
        """Builds an NFA accepting the words of both NFAs, or None if the alphabets differ."""
        return self.product_construction(
            other, lambda s1, s2: s1 is not None and s2 is not None and s1.accepting and s2.accepting)

    def product_construction(self, other: 'Nfa',
                             combinator: Callable[[Optional[NfaState], Optional[NfaState]], bool]
                             ) -> Optional['Nfa']:
        """
        Builds the product of two NFAs.

        Each state of the result is a pair of states, one of each NFA, where
        either side may be None: the pair ``(None, s)`` is reached once the first
        NFA has no way to continue on the input read so far. Epsilon moves of
        either side become epsilon moves of the product.

        Only combinators without negation give meaningful results, i.e. union-
        and intersection-like ones. Negating one side's acceptance does NOT
        compute a difference: an NFA may be in several states at once, and a
        pair with a non-accepting second state says nothing about whether the
        second NFA accepts the word. Use the DFA product for difference and
        symmetric difference, and :meth:`union` for a cheaper union.

        Args:
            other (Nfa): The second NFA. Its alphabet may be ordered differently.
            combinator: Decides from the two (optional) source states whether a pair accepts.

        Returns:
            Optional[Nfa]: The product, or None if the alphabets differ. States
            are named ``(name1,name2)``, with ``none`` for an absent side, unless
            that gives duplicates, in which case they are numbered.
        """
        if not alphabet_equal(self.alphabet, other.alphabet):
            return None

        other_indices = [other.symbol_index(symbol) for symbol in self.alphabet]
        start: StatePair = (self.initial_state, other.initial_state)
        pair_indices: Dict[StatePair, int] = {start: 0}
        pairs = [start]
        queue = deque([start])
        pair_transitions: List[List[List[StatePair]]] = []
        pair_epsilons: List[List[StatePair]] = []

        def visit(pair: StatePair) -> StatePair:
            if pair not in pair_indices:
                pair_indices[pair] = len(pairs)
                pairs.append(pair)
                queue.append(pair)
            return pair

        while queue:
            s1, s2 = queue.popleft()
            transitions = []
            for i, j in enumerate(other_indices):
                first = self.states[s1].transitions[i] if s1 is not None else []
                second = other.states[s2].transitions[j] if s2 is not None else []
                if first and second:
                    targets = [visit((t1, t2)) for t1 in first for t2 in second]
                elif first:
                    targets = [visit((t1, None)) for t1 in first]
                elif second:
                    targets = [visit((None, t2)) for t2 in second]
                else:
                    targets = []
                transitions.append(targets)

            epsilons = []
            if s1 is not None:
                epsilons.extend(visit((e1, s2)) for e1 in self.states[s1].epsilon_transitions)
            if s2 is not None:
                epsilons.extend(visit((s1, e2)) for e2 in other.states[s2].epsilon_transitions)

            pair_transitions.append(transitions)
            pair_epsilons.append(epsilons)

        def pair_name(pair: StatePair) -> str:
            s1, s2 = pair
            first = 'none' if s1 is None else self.states[s1].name
            second = 'none' if s2 is None else other.states[s2].name
            return f"({first},{second})"

        names = [pair_name(pair) for pair in pairs]
        if len(set(names)) < len(names):
            names = [str(i) for i in range(len(pairs))]

        states = []
        for i, (s1, s2) in enumerate(pairs):
            states.append(NfaState(
                name=names[i],
                initial=i == 0,
                accepting=bool(combinator(
                    None if s1 is None else self.states[s1],
                    None if s2 is None else other.states[s2])),
                transitions=[[pair_indices[p] for p in targets] for targets in pair_transitions[i]],
                epsilon_transitions=[pair_indices[p] for p in pair_epsilons[i]]
            ))

        logger.debug("NFA product construction built %d states", len(states))
        return Nfa(self.alphabet, states, 0)

    def optimize(self):
        """Remove unreachable states, then epsilon moves."""
        self.remove_unreachable_states()
        self.remove_epsilon_moves()

    def _dead_states(self, dead: Set[int]) -> Set[int]:
        """
        Grow ``dead`` to a fixpoint: a non-initial, non-accepting state is dead
        when every transition leads to a dead state.
        """
        changed = True
        while changed:
            changed = False
            for i, state in enumerate(self.states):
                if i in dead or state.accepting or state.initial:
                    continue
                if all(target in dead for targets in state.transitions for target in targets):
                    dead.add(i)
                    changed = True
        return dead

    def remove_epsilon_moves(self):
        """
        Removes all epsilon moves without changing the language.

        Every transition is extended to the epsilon closure of its targets. If
        the initial state's closure holds more than one live state, a new
        initial state combining them is added. States that cannot lead to
        acceptance are removed. Does nothing when there are no epsilon moves.
        """
        if not self.has_epsilon_moves():
            return

        before = len(self.states)
        closures = [self.closure(i) for i in range(len(self.states))]

        # Move to the closure of each target instead of the target alone
        for state in self.states:
            new_transitions = []
            for targets in state.transitions:
                extended = set()
                for target in targets:
                    extended |= closures[target]
                new_transitions.append(sorted(extended))
            state.transitions = new_transitions
            state.epsilon_transitions = []

        dead = self._dead_states(set())

        initial_closure = {i for i in closures[self.initial_state] if i not in dead}
        if len(initial_closure) > 1:
            old_initial = self.initial_state
            self.states[old_initial].initial = False
            old_state = self.states[old_initial]
            old_initial_dead = not old_state.accepting and all(
                target in dead for targets in old_state.transitions for target in targets)
            if old_initial_dead:
                dead.add(old_initial)
                self._dead_states(dead)

            # Reuse the old name when the old initial state goes away
            name = old_state.name if old_initial_dead else self._fresh_name('s_new')

            transitions = []
            for symbol in range(len(self.alphabet)):
                targets = set()
                for member in initial_closure:
                    targets.update(self.states[member].transitions[symbol])
                transitions.append(sorted(t for t in targets if t not in dead))

            self.initial_state = len(self.states)
            self.states.append(NfaState(
                name=name,
                initial=True,
                accepting=any(self.states[member].accepting for member in initial_closure),
                transitions=transitions,
                epsilon_transitions=[]
            ))

        for state in self.states:
            state.transitions = [[t for t in targets if t not in dead] for targets in state.transitions]
        self._remove_states(dead)
        logger.debug("Removed epsilon moves: %d states before, %d after", before, len(self.states))

    def _fresh_name(self, wanted: str) -> str:
        """``wanted`` if no state has that name, else the first unused of 0, 1, 2, ..."""
        names = {state.name for state in self.states}
        if wanted not in names:
            return wanted
        i = 0
        while str(i) in names:
            i += 1
        return str(i)

    def _remap_transitions(self, mapper: Dict[int, int]):
        """Redirect every transition and epsilon move to a key of ``mapper`` to its value."""
        for state in self.states:
            state.transitions = [[mapper.get(t, t) for t in targets] for targets in state.transitions]
            state.epsilon_transitions = [mapper.get(t, t) for t in state.epsilon_transitions]

    def _remove_states(self, to_remove: Iterable[int]):
        """
        Remove states and renumber the transitions of the remaining ones.

        Raises:
            RuntimeError: If the initial state is removed or a remaining state
                still moves to a removed one.
        """
        removed = sorted(set(to_remove))
        if not removed:
            return
        removed_set = set(removed)
        if self.initial_state in removed_set:
            raise RuntimeError("Cannot remove the initial state")

        def shift(target: int, owner: NfaState) -> int:
            if target in removed_set:
                raise RuntimeError(f"State '{owner.name}' has a transition to a removed state")
            # Every removed state below a target shifts it down by one
            return target - bisect_left(removed, target)

        kept = [state for i, state in enumerate(self.states) if i not in removed_set]
        for state in kept:
            state.transitions = [[shift(t, state) for t in targets] for targets in state.transitions]
            state.epsilon_transitions = [shift(t, state) for t in state.epsilon_transitions]

        self.initial_state -= bisect_left(removed, self.initial_state)
        self.states = kept

    def remove_unreachable_states(self):
        """Remove every state no input leads to."""
        self._remove_states(self.unreachable_state_idx())

    def unreachable_states(self) -> List[NfaState]:
        return [self.states[i] for i in sorted(self.unreachable_state_idx())]

    def unreachable_state_idx(self) -> Set[int]:
        return set(range(len(self.states))) - self.reachable_state_idx()

    def reachable_states(self) -> List[NfaState]:
        return [self.states[i] for i in sorted(self.reachable_state_idx())]

    def reachable_state_idx(self) -> Set[int]:
        """Indices of the states reachable from the initial state by transitions and epsilon moves."""
        reachable = {self.initial_state}
        queue = deque([self.initial_state])
        while queue:
            state = queue.popleft()
            for targets in self.states[state].transitions + [self.states[state].epsilon_transitions]:
                for target in targets:
                    if target not in reachable:
                        reachable.add(target)
                        queue.append(target)
        return reachable

    def has_reachable_accepting_state(self) -> bool:
        """Check whether the NFA accepts any word at all."""
        return any(self.states[i].accepting for i in self.reachable_state_idx())

    def words(self) -> 'Words':
        """
        Enumerate the accepted words as strings, shortest first and
        lexicographically by alphabet order within a length.

        Raises:
            EpsilonMovesError: If the NFA has epsilon moves.
        """
        from .words import Words
        return Words(self)

    def word_components(self) -> 'WordComponents':
        """Like :meth:`words`, but each word is a list of alphabet symbols."""
        from .words import WordComponents
        return WordComponents(self)

    def word_component_indices(self) -> 'WordComponentIndices':
        """Like :meth:`words`, but each word is a list of alphabet indices."""
        from .words import WordComponentIndices
        return WordComponentIndices(self)

    def to_dfa(self) -> Dfa:
        """
        Converts this NFA to an equivalent DFA with the subset construction.

        Only the sets of states reachable from the initial closure are built,
        but their number may still grow exponentially with the NFA's size.

        Returns:
            Dfa: A DFA whose states are named ``0``, ``1``, ... in discovery
            order, with ``0`` the initial state. The empty set becomes a
            rejecting sink state when reachable.
        """
        start = frozenset(self.closure(self.initial_state))
        numbers: Dict[FrozenSet[int], int] = {start: 0}
        sets = [start]
        transitions: List[List[int]] = []
        queue = deque([start])

        while queue:
            current = queue.popleft()
            row = []
            for symbol in range(len(self.alphabet)):
                targets = set()
                for state in current:
                    targets.update(self.states[state].transitions[symbol])
                key = frozenset(self.closure_of_set(targets))
                if key not in numbers:
                    numbers[key] = len(sets)
                    sets.append(key)
                    queue.append(key)
                row.append(numbers[key])
            transitions.append(row)

        states = [
            DfaState(
                name=str(n),
                initial=n == 0,
                accepting=any(self.states[i].accepting for i in subset),
                transitions=transitions[n]
            )
            for n, subset in enumerate(sets)
        ]
        logger.debug("Subset construction: %d NFA states became %d DFA states",
                     len(self.states), len(states))
        return Dfa(self.alphabet, states, 0)

    def to_table(self) -> str:
        """Render the NFA as a table the parser reads back into an equal NFA."""
        return self._table('ε', '→')

    def ascii_table(self) -> str:
        """Like :meth:`to_table`, but with ``eps`` and ``->`` as markers."""
        return self._table('eps', '->')

    def _table(self, epsilon: str, arrow: str) -> str:
        def state_set(targets: List[int]) -> str:
            return '{' + ' '.join(self.states[t].name for t in targets) + '}'

        table = Table()
        table.push_row(['', '', '', epsilon] + list(self.alphabet))
        for state in self.states:
            row = [arrow if state.initial else '', '*' if state.accepting else '', state.name,
                   state_set(state.epsilon_transitions)]
            row.extend(state_set(targets) for targets in state.transitions)
            table.push_row(row)
        return table.to_string()

    def equivalent_to(self, other: 'Nfa') -> bool:
        """
        Checks whether two NFAs accept the same language.

        Explores the pairs of active state sets reached on the same input, like
        :meth:`Dfa.equivalent_to` does with single states.

        Returns:
            bool: False if the alphabets differ (as sets) or the languages differ.
        """
        if not alphabet_equal(self.alphabet, other.alphabet):
            return False

        start = (self.evaluator(), other.evaluator())
        explored = {(frozenset(start[0].current), frozenset(start[1].current))}
        stack = [start]

        while stack:
            e1, e2 = stack.pop()
            if e1.is_accepting() != e2.is_accepting():
                return False
            for symbol in self.alphabet:
                d1 = e1.copy()
                d1.step(symbol)
                d2 = e2.copy()
                d2.step(symbol)
                key = (frozenset(d1.current), frozenset(d2.current))
                if key not in explored:
                    explored.add(key)
                    stack.append((d1, d2))
        return True
