from abc import abstractmethod, ABC
from dataclasses import dataclass
from typing import Dict, List, Tuple

from .nfa import Nfa, NfaState

# Characters with a meaning in the regex syntax, escaped with a backslash when literal
REGEX_RESERVED = frozenset(['(', ')', '∅', 'ε', '|', '*', '+', '\\'])


class NfaBuilder:
    """
    Helper class to build index-based NFAs.

    States are numbered in creation order and named after their index. Symbols
    get alphabet slots the first time they are used.
    """

    def __init__(self):
        self.states: List[NfaState] = []
        self.symbol_indices: Dict[str, int] = {}

    def new_state(self, initial: bool = False, accepting: bool = False) -> int:
        """Create a new state and return its index."""
        index = len(self.states)
        self.states.append(NfaState(str(index), initial, accepting, [], []))
        return index

    def peek(self) -> int:
        """Index the next created state will get."""
        return len(self.states)

    def symbol_index(self, symbol: str) -> int:
        return self.symbol_indices.setdefault(symbol, len(self.symbol_indices))

    def add_epsilon(self, from_state: int, to_state: int):
        self.states[from_state].epsilon_transitions.append(to_state)

    def add_transition(self, from_state: int, symbol: str, to_state: int):
        """Add a transition, growing the state's table to reach the symbol's slot."""
        index = self.symbol_index(symbol)
        transitions = self.states[from_state].transitions
        while len(transitions) <= index:
            transitions.append([])
        transitions[index].append(to_state)

    def to_nfa(self, initial_state: int) -> Nfa:
        """Pad every transition table to the final alphabet and build the NFA."""
        alphabet = tuple(sorted(self.symbol_indices, key=self.symbol_indices.get))
        for state in self.states:
            while len(state.transitions) < len(alphabet):
                state.transitions.append([])
        return Nfa(alphabet, self.states, initial_state)


class RegexNode(ABC):
    """Base class for regex AST nodes."""

    @abstractmethod
    def to_string(self) -> str:
        """Convert node back to regex string."""
        pass

    @abstractmethod
    def build(self, builder: NfaBuilder, send_to: int) -> int:
        """
        Add the states recognising this node to ``builder``.

        Args:
            builder: The builder collecting states.
            send_to: The state to move to once the node has been matched.

        Returns:
            int: The entry state of the node.
        """
        pass


@dataclass
class CharNode(RegexNode):
    """Single grapheme node (a, b, 0, é, etc.)."""
    char: str

    def to_string(self) -> str:
        if self.char in REGEX_RESERVED:
            return '\\' + self.char
        return self.char

    def build(self, builder: NfaBuilder, send_to: int) -> int:
        incoming = builder.new_state()
        builder.add_transition(incoming, self.char, send_to)
        return incoming


@dataclass
class EpsilonNode(RegexNode):
    """Epsilon (empty string) node."""

    def to_string(self) -> str:
        return 'ε'

    def build(self, builder: NfaBuilder, send_to: int) -> int:
        incoming = builder.new_state()
        builder.add_epsilon(incoming, send_to)
        return incoming


@dataclass
class EmptySetNode(RegexNode):
    """Empty language node (∅)."""

    def to_string(self) -> str:
        return '∅'

    def build(self, builder: NfaBuilder, send_to: int) -> int:
        # A dead end: nothing leaves this state
        return builder.new_state()


@dataclass
class UnionNode(RegexNode):
    """Alternation of two or more expressions."""
    items: Tuple[RegexNode, ...]

    def to_string(self) -> str:
        return '(' + '|'.join(item.to_string() for item in self.items) + ')'

    def build(self, builder: NfaBuilder, send_to: int) -> int:
        incoming = builder.new_state()
        for item in self.items:
            builder.add_epsilon(incoming, builder.peek())
            item.build(builder, send_to)
        return incoming


@dataclass
class ConcatNode(RegexNode):
    """Sequence of two or more expressions."""
    items: Tuple[RegexNode, ...]

    def to_string(self) -> str:
        return ''.join(item.to_string() for item in self.items)

    def build(self, builder: NfaBuilder, send_to: int) -> int:
        incoming = builder.new_state()
        previous = incoming
        for item in self.items:
            # Each item gets its own exit state, chained to the next item's entry
            after = builder.new_state()
            builder.add_epsilon(previous, builder.peek())
            item.build(builder, after)
            previous = after
        builder.add_epsilon(previous, send_to)
        return incoming


@dataclass
class StarNode(RegexNode):
    """Kleene star node (zero or more repetitions)."""
    inner: RegexNode

    def to_string(self) -> str:
        return '(' + self.inner.to_string() + ')*'

    def build(self, builder: NfaBuilder, send_to: int) -> int:
        incoming = builder.new_state()
        # Enter the body or skip it, the body loops back here
        builder.add_epsilon(incoming, builder.peek())
        builder.add_epsilon(incoming, send_to)
        self.inner.build(builder, incoming)
        return incoming


@dataclass
class Regex:
    """
    A parsed regular expression.

    Use :func:`fsakit.parser.parse_regex` to create one from text.
    """
    tree: RegexNode

    def to_string(self) -> str:
        """Print the expression in a form the regex parser reads back."""
        return self.tree.to_string()

    def __str__(self):
        return self.to_string()

    def to_nfa(self) -> Nfa:
        """
        Converts the expression to an NFA with epsilon moves.

        State 0 is the only accepting state and state 1 the initial state. The
        alphabet holds the graphemes of the expression in order of first
        appearance. The result is usually far from minimal; converting it to a
        DFA and minimising is the way to shrink it.

        Returns:
            Nfa: An NFA accepting exactly the language of the expression.
        """
        builder = NfaBuilder()
        accepting = builder.new_state(accepting=True)
        initial = builder.new_state(initial=True)
        builder.add_epsilon(initial, builder.peek())
        self.tree.build(builder, accepting)
        return builder.to_nfa(initial)
