"""
Lexicographic enumeration of the words accepted by an NFA without epsilon moves.

Words come shortest first, and in alphabet-index order within one length. The
enumeration follows Ackerman & Shallit, "Efficient enumeration of words in
regular languages": powers of the one-step adjacency matrix tell whether an
accepting state can be reached in exactly n more steps, which lets the
enumerator pick the smallest next symbol greedily without backtracking into
dead ends.
"""
import logging
from typing import Iterable, List, Optional, Set

from .errors import EpsilonMovesError

logger = logging.getLogger(__name__)


class BoolMatrix:
    """
    Square matrix over the boolean semiring.

    Row ``i`` is kept as an int bitmask, bit ``j`` set when entry (i, j) is true.
    """

    def __init__(self, rows: List[int]):
        self.rows = rows

    @classmethod
    def identity(cls, size: int) -> 'BoolMatrix':
        return cls([1 << i for i in range(size)])

    @classmethod
    def adjacency(cls, nfa: 'Nfa') -> 'BoolMatrix':
        """Entry (i, j) is true when some symbol moves state i to state j."""
        rows = []
        for state in nfa.states:
            row = 0
            for targets in state.transitions:
                for target in targets:
                    row |= 1 << target
            rows.append(row)
        return cls(rows)

    def __getitem__(self, index):
        i, j = index
        return bool(self.rows[i] >> j & 1)

    def __mul__(self, other: 'BoolMatrix') -> 'BoolMatrix':
        product = []
        for row in self.rows:
            combined = 0
            j = 0
            while row:
                if row & 1:
                    combined |= other.rows[j]
                row >>= 1
                j += 1
            product.append(combined)
        return BoolMatrix(product)

    def __eq__(self, other):
        return isinstance(other, BoolMatrix) and self.rows == other.rows

    def reaches(self, state: int, mask: int) -> bool:
        """Check if row ``state`` has a true entry in any column of ``mask``."""
        return bool(self.rows[state] & mask)


class WordComponentIndices:
    """
    Iterator over the accepted words of an NFA, each a list of alphabet indices.

    The iterator is single-pass: construct a new one to start over. It may be
    infinite, so take from it with ``itertools.islice`` or ``next``.

    Raises:
        EpsilonMovesError: At construction, if the NFA has epsilon moves.
    """

    def __init__(self, nfa: 'Nfa'):
        if nfa.has_epsilon_moves():
            raise EpsilonMovesError()
        self.nfa = nfa
        self.final_mask = 0
        for i, state in enumerate(nfa.states):
            if state.accepting:
                self.final_mask |= 1 << i
        # powers[n] is the adjacency matrix to the n-th power
        self.powers = [BoolMatrix.identity(len(nfa.states)), BoolMatrix.adjacency(nfa)]
        # state_stack[k] holds the live states after the first k symbols of the last word
        self.state_stack: List[Set[int]] = []
        self.last_word: Optional[List[int]] = None
        self.has_failed = False

    def __iter__(self):
        return self

    def __next__(self) -> List[int]:
        word = self.next_word()
        if word is None:
            raise StopIteration
        return word

    def next_word(self) -> Optional[List[int]]:
        """Produce the next word, or None once the language is exhausted."""
        if self.has_failed:
            return None

        length = 0
        if self.last_word is not None:
            length = len(self.last_word) + 1
            successor = self._successor(list(self.last_word))
            if successor is not None:
                self.last_word = successor
                return list(successor)

        # No more words of the current length: look for the shortest longer one.
        # After as many empty lengths in a row as there are states, none can follow.
        misses = 0
        while misses < len(self.nfa.states):
            self.state_stack = [{self.nfa.initial_state}]
            word = self._min_word(length)
            if word is not None:
                self.last_word = word
                return list(word)
            misses += 1
            length += 1

        logger.debug("Word enumeration exhausted after trying length %d", length - 1)
        self.has_failed = True
        self.last_word = None
        return None

    def _power(self, n: int) -> BoolMatrix:
        while len(self.powers) <= n:
            self.powers.append(self.powers[1] * self.powers[-1])
        return self.powers[n]

    def _can_finish(self, states: Iterable[int], steps: int) -> bool:
        """Check if some state can reach an accepting state in exactly ``steps`` symbols."""
        power = self._power(steps)
        return any(power.reaches(state, self.final_mask) for state in states)

    def _targets(self, states: Iterable[int], symbol: int) -> Set[int]:
        targets = set()
        for state in states:
            targets.update(self.nfa.states[state].transitions[symbol])
        return targets

    def _min_word(self, n: int) -> Optional[List[int]]:
        """
        Find the smallest word of length ``n`` from the states on top of the stack.

        Pushes the live states after each symbol but the last onto the stack.
        """
        current = self.state_stack[-1]
        if not self._can_finish(current, n):
            return None

        word = []
        for i in range(n):
            remaining = n - i - 1
            for symbol in range(len(self.nfa.alphabet)):
                targets = self._targets(current, symbol)
                if self._can_finish(targets, remaining):
                    break
            word.append(symbol)
            if i != n - 1:
                power = self._power(remaining)
                current = {t for t in targets if power.reaches(t, self.final_mask)}
                self.state_stack.append(current)
        return word

    def _successor(self, word: List[int]) -> Optional[List[int]]:
        """Find the next word of the same length as ``word``, if any."""
        n = len(word)
        for i in range(n, 0, -1):
            current = self.state_stack[-1]
            remaining = n - i
            larger = None
            for symbol in range(word[i - 1] + 1, len(self.nfa.alphabet)):
                targets = self._targets(current, symbol)
                if self._can_finish(targets, remaining):
                    larger = symbol
                    break

            if larger is None:
                # Nothing left at position i, move one position back
                self.state_stack.pop()
                continue

            del word[i - 1:]
            word.append(larger)
            if i != n:
                power = self._power(remaining)
                self.state_stack.append({t for t in targets if power.reaches(t, self.final_mask)})
                word.extend(self._min_word(remaining))
            return word
        return None


class WordComponents:
    """Iterator over the accepted words of an NFA, each a list of alphabet symbols."""

    def __init__(self, nfa: 'Nfa'):
        self.indices = WordComponentIndices(nfa)

    def __iter__(self):
        return self

    def __next__(self) -> List[str]:
        alphabet = self.indices.nfa.alphabet
        return [alphabet[i] for i in next(self.indices)]


class Words:
    """Iterator over the accepted words of an NFA, each symbols joined into a string."""

    def __init__(self, nfa: 'Nfa'):
        self.components = WordComponents(nfa)

    def __iter__(self):
        return self

    def __next__(self) -> str:
        return ''.join(next(self.components))
