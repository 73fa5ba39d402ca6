"""
Parsers for the transition-table notation of DFAs/NFAs and for regular expressions.

A table starts with a header line listing the alphabet, followed by one line per
state::

           a  b  c
    → * s0 s1 s0 s2
        s1 s2 s1 s1
      * s2 s2 s2 s2

A state line holds an optional initial marker (``->`` or ``→``), an optional
accepting marker (``*``), the state name and one transition per alphabet symbol.
NFA transitions are sets such as ``{s1 s2}`` or ``{}``, and an NFA header may
contain one ``ε``/``eps`` column for epsilon moves. Blank lines are ignored and
``#`` starts a comment running to the end of the line.

The parsers only check syntax. Use :mod:`fsakit.validation` to turn the parsed
structures into automata.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from .errors import FsaSyntaxError
from .fsa_properties import split_graphemes
from .regex_conversions import (
    CharNode,
    ConcatNode,
    EmptySetNode,
    EpsilonNode,
    Regex,
    RegexNode,
    StarNode,
    UnionNode,
    REGEX_RESERVED,
)

logger = logging.getLogger(__name__)

RESERVED_TOKENS = frozenset(['ε', 'eps', '→', '->', '*'])
INITIAL_MARKERS = ('→', '->')
EPSILON_MARKERS = ('ε', 'eps')
ACCEPTING_MARKER = '*'

_SEPARATORS = ' \t'
_TOKEN_TERMINATORS = '#{}'


class Epsilon:
    """Marker for the epsilon column of an NFA table header."""

    def __repr__(self):
        return 'EPSILON'


EPSILON = Epsilon()


@dataclass
class ParsedDfaState:
    name: str
    initial: bool
    accepting: bool
    transitions: List[str] = field(default_factory=list)


@dataclass
class ParsedDfa:
    head: List[str]
    states: List[ParsedDfaState]


@dataclass
class ParsedNfaState:
    name: str
    initial: bool
    accepting: bool
    transitions: List[List[str]] = field(default_factory=list)


@dataclass
class ParsedNfa:
    # Alphabet symbols, with EPSILON marking the epsilon column
    head: List[Union[str, Epsilon]]
    states: List[ParsedNfaState]


class TableParser:
    """Recursive descent parser for the DFA/NFA table notation."""

    def __init__(self, text: str, allow_epsilon: bool):
        self.text = text
        self.pos = 0
        self.allow_epsilon = allow_epsilon

    def peek(self) -> Optional[str]:
        """Look at current character without consuming."""
        return self.text[self.pos] if self.pos < len(self.text) else None

    def consume(self) -> Optional[str]:
        """Consume and return current character."""
        if self.pos < len(self.text):
            char = self.text[self.pos]
            self.pos += 1
            return char
        return None

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def error(self, message: str, pos: Optional[int] = None) -> FsaSyntaxError:
        if pos is None:
            pos = self.pos
        return FsaSyntaxError(message, self.text, self.text[pos:])

    def skip_spaces(self) -> bool:
        """Skip spaces and tabs, returning whether anything was skipped."""
        start = self.pos
        while self.peek() is not None and self.peek() in _SEPARATORS:
            self.pos += 1
        return self.pos > start

    def skip_comment(self):
        if self.peek() != '#':
            return
        while not self.at_end() and not self.text.startswith('\n', self.pos) \
                and not self.text.startswith('\r\n', self.pos):
            self.pos += 1

    def consume_line_ending(self) -> bool:
        if self.text.startswith('\n', self.pos):
            self.pos += 1
            return True
        if self.text.startswith('\r\n', self.pos):
            self.pos += 2
            return True
        return False

    def skip_blank_lines(self):
        """Skip lines holding nothing but whitespace and comments."""
        while not self.at_end():
            start = self.pos
            self.skip_spaces()
            self.skip_comment()
            if self.consume_line_ending() or self.at_end():
                continue
            self.pos = start
            return

    def read_token(self) -> Optional[str]:
        """Read a run of characters up to whitespace, '#', '{' or '}'."""
        start = self.pos
        while not self.at_end():
            char = self.text[self.pos]
            if char.isspace() or char in _TOKEN_TERMINATORS:
                break
            self.pos += 1
        if self.pos == start:
            return None
        return self.text[start:self.pos]

    def peek_token(self) -> Optional[str]:
        start = self.pos
        token = self.read_token()
        self.pos = start
        return token

    def marker_followed_by_space(self, markers) -> bool:
        """Consume a marker token if it is followed by a space or tab."""
        start = self.pos
        token = self.read_token()
        if token in markers and self.skip_spaces():
            return True
        self.pos = start
        return False

    def expected(self, what: str) -> FsaSyntaxError:
        token = self.peek_token()
        if token in RESERVED_TOKENS:
            return self.error(f"'{token}' is reserved and cannot be used as {what}")
        if self.at_end():
            return self.error(f"Expected {what}, found end of input")
        found = token if token is not None else self.peek()
        if found == '\r' or found == '\n':
            found = 'end of line'
        else:
            found = f"'{found}'"
        return self.error(f"Expected {what}, found {found}")

    def read_name(self) -> Optional[str]:
        """Read a token that is not reserved, leaving the position untouched on failure."""
        start = self.pos
        token = self.read_token()
        if token is None or token in RESERVED_TOKENS:
            self.pos = start
            return None
        return token

    def parse_header(self) -> List[Union[str, Epsilon]]:
        self.skip_spaces()
        head = []
        while True:
            start = self.pos
            if head and not self.skip_spaces():
                break
            entry = self.read_header_entry()
            if entry is None:
                self.pos = start
                break
            head.append(entry)

        if not head:
            raise self.expected('an alphabet symbol')

        self.skip_spaces()
        self.skip_comment()
        if not self.consume_line_ending():
            raise self.expected('an alphabet symbol or the end of the header line')
        return head

    def read_header_entry(self) -> Optional[Union[str, Epsilon]]:
        start = self.pos
        token = self.read_token()
        if token is None:
            return None
        if token not in RESERVED_TOKENS:
            return token
        if self.allow_epsilon and token in EPSILON_MARKERS:
            return EPSILON
        self.pos = start
        return None

    def parse_state_prefix(self):
        """Parse the optional markers and the name at the start of a state line."""
        self.skip_spaces()
        initial = self.marker_followed_by_space(INITIAL_MARKERS)
        accepting = self.marker_followed_by_space((ACCEPTING_MARKER,))
        name = self.read_name()
        if name is None:
            raise self.expected('a state name')
        if not self.skip_spaces():
            raise self.expected('a transition')
        return name, initial, accepting

    def parse_state_set(self) -> Optional[List[str]]:
        if self.peek() != '{':
            return None
        self.consume()
        targets = []
        self.skip_spaces()
        while self.peek() != '}':
            target = self.read_name()
            if target is None:
                raise self.expected("a state name or '}'")
            targets.append(target)
            if not self.skip_spaces() and self.peek() != '}':
                raise self.expected("a space or '}'")
        self.consume()
        return targets

    def parse_transitions(self, read_one):
        transitions = [read_one()]
        if transitions[0] is None:
            raise self.expected('a transition')
        while True:
            start = self.pos
            if not self.skip_spaces():
                break
            transition = read_one()
            if transition is None:
                self.pos = start
                break
            transitions.append(transition)
        return transitions

    def finish_line(self):
        self.skip_spaces()
        self.skip_comment()
        if not (self.at_end() or self.text.startswith('\n', self.pos)
                or self.text.startswith('\r\n', self.pos)):
            raise self.expected('a transition or the end of the line')

    def parse_dfa_state(self) -> ParsedDfaState:
        name, initial, accepting = self.parse_state_prefix()
        transitions = self.parse_transitions(self.read_name)
        self.finish_line()
        return ParsedDfaState(name, initial, accepting, transitions)

    def parse_nfa_state(self) -> ParsedNfaState:
        name, initial, accepting = self.parse_state_prefix()
        transitions = self.parse_transitions(self.parse_state_set)
        self.finish_line()
        return ParsedNfaState(name, initial, accepting, transitions)

    def parse_table(self, dfa: bool):
        parse_state = self.parse_dfa_state if dfa else self.parse_nfa_state
        self.skip_blank_lines()
        head = self.parse_header()

        states = []
        self.skip_blank_lines()
        while not self.at_end():
            states.append(parse_state())
            self.skip_blank_lines()

        if not states:
            raise self.error("Expected at least one state")
        return head, states


def parse_dfa(text: str) -> ParsedDfa:
    """
    Parses a DFA transition table.

    Args:
        text (str): The table, see the module documentation for the format.

    Returns:
        ParsedDfa: The unvalidated header and state lines.

    Raises:
        FsaSyntaxError: If the text does not follow the table grammar.
    """
    head, states = TableParser(text, allow_epsilon=False).parse_table(dfa=True)
    return ParsedDfa(head, states)


def parse_nfa(text: str) -> ParsedNfa:
    """
    Parses an NFA transition table, possibly with an epsilon column.

    Args:
        text (str): The table, see the module documentation for the format.

    Returns:
        ParsedNfa: The unvalidated header and state lines.

    Raises:
        FsaSyntaxError: If the text does not follow the table grammar.
    """
    head, states = TableParser(text, allow_epsilon=True).parse_table(dfa=False)
    return ParsedNfa(head, states)


class RegexParser:
    """
    Regex parser producing a syntax tree.

    Grammar, lowest precedence first::

        alternation := sequence ('|' sequence)*
        sequence    := item+
        item        := ('(' alternation ')' | char) ('*' | '+')?
        char        := '∅' | 'ε' | '\\' grapheme | grapheme

    Every character is an extended grapheme cluster.
    """

    def __init__(self, text: str):
        self.source = text
        stripped = text.strip()
        self.base = len(text) - len(text.lstrip())
        self.graphemes = split_graphemes(stripped)
        # Character offset of every grapheme in the source, plus the end offset
        self.offsets = []
        offset = self.base
        for grapheme in self.graphemes:
            self.offsets.append(offset)
            offset += len(grapheme)
        self.offsets.append(offset)
        self.pos = 0

    def peek(self) -> Optional[str]:
        """Look at current grapheme without consuming."""
        return self.graphemes[self.pos] if self.pos < len(self.graphemes) else None

    def consume(self) -> Optional[str]:
        """Consume and return current grapheme."""
        if self.pos < len(self.graphemes):
            grapheme = self.graphemes[self.pos]
            self.pos += 1
            return grapheme
        return None

    def error(self, message: str) -> FsaSyntaxError:
        return FsaSyntaxError(message, self.source, self.source[self.offsets[self.pos]:])

    def parse(self) -> Regex:
        """Parse the whole expression, failing on trailing input."""
        tree = self.parse_alternation()
        if self.pos < len(self.graphemes):
            raise self.error(f"Unexpected '{self.peek()}'")
        return Regex(tree)

    def parse_alternation(self) -> RegexNode:
        items = [self.parse_sequence()]
        while self.peek() == '|':
            self.consume()
            items.append(self.parse_sequence())
        if len(items) == 1:
            return items[0]
        return UnionNode(tuple(items))

    def starts_item(self) -> bool:
        grapheme = self.peek()
        if grapheme is None:
            return False
        return grapheme in ('(', '\\', '∅', 'ε') or grapheme not in REGEX_RESERVED

    def parse_sequence(self) -> RegexNode:
        items = []
        while self.starts_item():
            items.append(self.parse_item())
        if not items:
            if self.peek() is None:
                raise self.error("Expected a character or '(', found end of input")
            raise self.error(f"Expected a character or '(', found '{self.peek()}'")
        if len(items) == 1:
            return items[0]
        return ConcatNode(tuple(items))

    def parse_item(self) -> RegexNode:
        if self.peek() == '(':
            self.consume()
            node = self.parse_alternation()
            if self.peek() != ')':
                raise self.error("Expected ')'")
            self.consume()
        else:
            node = self.parse_char()

        # Kleene plus is sugar for X X*
        quantifier = self.peek()
        if quantifier == '*':
            self.consume()
            return StarNode(node)
        if quantifier == '+':
            self.consume()
            return ConcatNode((node, StarNode(node)))
        return node

    def parse_char(self) -> RegexNode:
        grapheme = self.consume()
        if grapheme == '∅':
            return EmptySetNode()
        if grapheme == 'ε':
            return EpsilonNode()
        if grapheme == '\\':
            escaped = self.consume()
            if escaped is None:
                raise self.error("Expected a character after '\\'")
            return CharNode(escaped)
        return CharNode(grapheme)


def parse_regex(text: str) -> Regex:
    """
    Parses a regular expression.

    Leading and trailing whitespace is ignored, whitespace inside the
    expression is a literal character.

    Args:
        text (str): The expression, e.g. ``(ab)+c`` or ``c(a|b)*c``.

    Returns:
        Regex: The parsed expression.

    Raises:
        FsaSyntaxError: If the expression is malformed.
    """
    regex = RegexParser(text).parse()
    logger.debug("Parsed regex %r", regex.to_string())
    return regex
