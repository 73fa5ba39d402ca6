"""
Layout of automata for drawing.

States are laid out on one horizontal line in index order. Transitions become
bridges above that line: parallel transitions are grouped into one bridge with
a combined label, and bridges are stacked on levels so that no two bridges on
the same level overlap. Drawing front-ends only have to scale these positions.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Tuple, Union


class Direction(Enum):
    LEFT = 'left'
    RIGHT = 'right'
    SPOT = 'spot'


@dataclass(frozen=True)
class StateDescriptor:
    name: str
    accepting: bool
    initial: bool


@dataclass(frozen=True)
class Arrow:
    """A transition between the states at positions ``left`` <= ``right``."""
    left: int
    right: int
    direction: Direction
    label: str

    @classmethod
    def between(cls, source: int, target: int, label: str) -> 'Arrow':
        if source < target:
            return cls(source, target, Direction.RIGHT, label)
        if source == target:
            return cls(source, target, Direction.SPOT, label)
        return cls(target, source, Direction.LEFT, label)


@dataclass
class GroupedArrow:
    """All transitions sharing the same endpoints and direction."""
    left: int
    right: int
    direction: Direction
    labels: List[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return ', '.join(self.labels)


@dataclass
class PlacedArrow:
    arrow: GroupedArrow
    level: int


def automaton_states(automaton: Union['Dfa', 'Nfa']) -> List[StateDescriptor]:
    return [StateDescriptor(state.name, state.accepting, state.initial) for state in automaton.states]


def automaton_arrows(automaton: Union['Dfa', 'Nfa']) -> List[Arrow]:
    """
    One arrow per transition of a DFA or NFA.

    NFA epsilon moves are labelled ``ε`` and follow the state's other arrows.
    """
    arrows = []
    for source, state in enumerate(automaton.states):
        for symbol, targets in zip(automaton.alphabet, state.transitions):
            # DFA transitions are single indices
            if isinstance(targets, int):
                targets = [targets]
            for target in targets:
                arrows.append(Arrow.between(source, target, symbol))
        for target in getattr(state, 'epsilon_transitions', []):
            arrows.append(Arrow.between(source, target, 'ε'))
    return arrows


def group_arrows(arrows: List[Arrow]) -> List[GroupedArrow]:
    """Merge arrows with the same endpoints and direction, keeping first-seen order."""
    groups: Dict[Tuple[int, int, Direction], GroupedArrow] = {}
    for arrow in arrows:
        key = (arrow.left, arrow.right, arrow.direction)
        if key not in groups:
            groups[key] = GroupedArrow(arrow.left, arrow.right, arrow.direction)
        groups[key].labels.append(arrow.label)
    return list(groups.values())


def place_arrows(arrows: List[GroupedArrow]) -> Tuple[List[PlacedArrow], int]:
    """
    Assigns every arrow a level so that arrows on one level do not overlap.

    Arrows are taken by increasing right end and greedily put on the lowest
    level, where an arrow fits if it starts at or after the end of the last
    arrow placed on that level. A self loop takes up its whole column.

    Args:
        arrows: The grouped arrows to place.

    Returns:
        Tuple[List[PlacedArrow], int]: The placed arrows and the number of levels used.
    """
    unplaced = sorted(arrows, key=lambda arrow: -arrow.right)
    placed = []
    level = 0

    while unplaced:
        remaining = unplaced
        unplaced = []
        end_of_last = 0
        while remaining:
            arrow = remaining.pop()
            if arrow.left >= end_of_last:
                end_of_last = arrow.right + 1 if arrow.left == arrow.right else arrow.right
                placed.append(PlacedArrow(arrow, level))
            else:
                unplaced.append(arrow)
        level += 1
        unplaced.reverse()

    return placed, level


def automaton_layout(automaton: Union['Dfa', 'Nfa']) -> Dict:
    """
    Computes the drawing layout of an automaton.

    Returns:
        Dict: {
            'states': [{'name', 'accepting', 'initial'}, ...],  # left to right
            'arrows': [{'left', 'right', 'direction', 'label', 'level'}, ...],
            'levels': int
        }
    """
    placed, levels = place_arrows(group_arrows(automaton_arrows(automaton)))
    return {
        'states': [
            {'name': state.name, 'accepting': state.accepting, 'initial': state.initial}
            for state in automaton_states(automaton)
        ],
        'arrows': [
            {
                'left': p.arrow.left,
                'right': p.arrow.right,
                'direction': p.arrow.direction.value,
                'label': p.arrow.label,
                'level': p.level
            }
            for p in placed
        ],
        'levels': levels
    }


def ascii_art(automaton: Union['Dfa', 'Nfa']) -> str:
    """
    Draws an automaton as text.

    The states are drawn on the last line, ``(  name  )`` for rejecting and
    ``(( name ))`` for accepting states, and the bridges of the transitions
    above them, highest level first. Labels are written under each bridge.
    """
    states = automaton_states(automaton)
    placed, levels = place_arrows(group_arrows(automaton_arrows(automaton)))
    widest = max(len(state.name) for state in states)

    def left_x(index: int) -> int:
        return 5 + (7 + widest) * index

    def right_x(index: int) -> int:
        return 6 + widest + (7 + widest) * index

    width = right_x(len(states)) - 1

    last_line = '-> '
    for state in states:
        if state.accepting:
            last_line += f"(( {state.name.ljust(widest)} )) "
        else:
            last_line += f"(  {state.name.ljust(widest)}  ) "

    lines = []
    bars = set()
    for level in range(levels - 1, -1, -1):
        top = [' '] * width
        bottom = [' '] * width
        for bar in bars:
            top[bar] = '|'
            bottom[bar] = '|'

        on_level = [p.arrow for p in placed if p.level == level]
        for arrow in on_level:
            if arrow.direction == Direction.SPOT:
                leftmost, rightmost = left_x(arrow.left), right_x(arrow.right)
            else:
                leftmost, rightmost = right_x(arrow.left), left_x(arrow.right)
            for x in range(leftmost, rightmost + 1):
                top[x] = '-'

            if arrow.direction == Direction.LEFT:
                top[left_x(arrow.right) - 1] = '<'
            elif arrow.direction == Direction.RIGHT:
                top[right_x(arrow.left) + 2] = '>'
            else:
                top[left_x(arrow.left) + 1] = '>'

            bars.add(right_x(arrow.left))
            bars.add(left_x(arrow.right))
            bottom[right_x(arrow.left)] = '|'
            bottom[left_x(arrow.right)] = '|'

        for arrow in on_level:
            if arrow.left != arrow.right:
                start = right_x(arrow.left) + 1
                label = arrow.label[:max(0, width - start)]
                bottom[start:start + len(label)] = list(label)

        lines.append(''.join(top))
        lines.append(''.join(bottom))

    lines.append(last_line)
    return '\n'.join(lines)
