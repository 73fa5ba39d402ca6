from django.test import TestCase
from fsakit.fsa_layout import (
    Arrow,
    Direction,
    GroupedArrow,
    ascii_art,
    automaton_arrows,
    automaton_layout,
    group_arrows,
    place_arrows,
)
from fsakit.validation import load_dfa, load_nfa


class TestArrows(TestCase):
    """Test cases for building and grouping arrows"""

    def test_direction(self):
        """Test that arrows are normalised to left <= right"""
        self.assertEqual(Arrow.between(0, 2, 'a'), Arrow(0, 2, Direction.RIGHT, 'a'))
        self.assertEqual(Arrow.between(2, 0, 'a'), Arrow(0, 2, Direction.LEFT, 'a'))
        self.assertEqual(Arrow.between(1, 1, 'a'), Arrow(1, 1, Direction.SPOT, 'a'))

    def test_grouping(self):
        """Test that parallel arrows share one label"""
        dfa = load_dfa("a b c\n→ s0 s1 s1 s0\n* s1 s0 s0 s0")
        groups = group_arrows(automaton_arrows(dfa))

        self.assertEqual(len(groups), 3)
        self.assertEqual(groups[0].labels, ['a', 'b'])
        self.assertEqual(groups[0].label, 'a, b')
        self.assertEqual(groups[0].direction, Direction.RIGHT)
        self.assertEqual(groups[1].direction, Direction.SPOT)
        self.assertEqual(groups[2].direction, Direction.LEFT)
        self.assertEqual(groups[2].label, 'a, b, c')

    def test_nfa_epsilon_arrows_follow_symbols(self):
        """Test that epsilon arrows come after the symbol arrows of a state"""
        nfa = load_nfa("ε a\n→ s0 {s1} {s0 s1}\n* s1 {} {}")
        arrows = automaton_arrows(nfa)
        self.assertEqual([arrow.label for arrow in arrows], ['a', 'a', 'ε'])
        self.assertEqual(group_arrows(arrows)[1].label, 'a, ε')


class TestPlacement(TestCase):
    """Test cases for stacking arrows on levels"""

    def test_overlapping_arrows(self):
        """Test that an arrow spanning two others goes one level up"""
        a = GroupedArrow(0, 1, Direction.RIGHT, ['a'])
        b = GroupedArrow(1, 2, Direction.RIGHT, ['b'])
        c = GroupedArrow(0, 2, Direction.LEFT, ['c'])
        placed, levels = place_arrows([a, b, c])

        level_of = {p.arrow.label: p.level for p in placed}
        self.assertEqual(levels, 2)
        self.assertEqual(level_of, {'a': 0, 'b': 0, 'c': 1})

    def test_self_loop_takes_column(self):
        """Test that a self loop blocks arrows starting at the same state"""
        loop = GroupedArrow(1, 1, Direction.SPOT, ['s'])
        d = GroupedArrow(1, 2, Direction.RIGHT, ['d'])
        placed, levels = place_arrows([d, loop])

        level_of = {p.arrow.label: p.level for p in placed}
        self.assertEqual(levels, 2)
        self.assertEqual(level_of, {'s': 0, 'd': 1})

    def test_no_arrows(self):
        """Test placing nothing"""
        self.assertEqual(place_arrows([]), ([], 0))


class TestDrawing(TestCase):
    """Test cases for the layout dictionary and ASCII drawing"""

    def setUp(self):
        self.dfa = load_dfa("a\n→ s0 s1\n* s1 s1")

    def test_layout(self):
        """Test the JSON-ready layout"""
        layout = automaton_layout(self.dfa)

        self.assertEqual(layout['states'], [
            {'name': 's0', 'accepting': False, 'initial': True},
            {'name': 's1', 'accepting': True, 'initial': False},
        ])
        self.assertEqual(layout['levels'], 2)
        self.assertIn({'left': 1, 'right': 1, 'direction': 'spot', 'label': 'a', 'level': 0}, layout['arrows'])
        self.assertIn({'left': 0, 'right': 1, 'direction': 'right', 'label': 'a', 'level': 1}, layout['arrows'])

    def test_ascii_art(self):
        """Test the drawing of a two-state DFA"""
        expected = "\n".join([
            " " * 8 + "-->----" + " " * 10,
            " " * 8 + "|a" + " " * 4 + "|" + " " * 10,
            " " * 8 + "|" + " " * 5 + "->--" + " " * 7,
            " " * 8 + "|" + " " * 5 + "|" + "  " + "|" + " " * 7,
            "-> (  s0  ) (( s1 )) ",
        ])
        self.assertEqual(ascii_art(self.dfa), expected)

    def test_ascii_art_without_transitions(self):
        """Test that an NFA without transitions is just its state line"""
        nfa = load_nfa("a\n→ * only {}")
        self.assertEqual(ascii_art(nfa), "-> (( only )) ")
