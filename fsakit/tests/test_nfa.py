from itertools import islice, product

from django.test import TestCase
from fsakit.errors import EpsilonMovesError
from fsakit.parser import parse_regex
from fsakit.validation import load_dfa, load_nfa

ENDS_WITH_AAB = """
            a       b
    ->  s1 {s1 s2} {s1}
        s2 {s3}    {}
        s3 {}      {s4}
      * s4 {}      {}
"""

CONTAINS_BABB = """
            a    b
    ->  s1 {s1} {s1 s2}
        s2 {s3} {}
        s3 {}   {s4}
        s4 {}   {s5}
      * s5 {s5} {s5}
"""

# Accepts a, then any number of b:s, through epsilon moves
WITH_EPSILON = """
         ε    a    b
    → s0 {}   {s1} {}
      s1 {s2} {}   {}
    * s2 {}   {}   {s1}
"""


def all_strings(alphabet, max_length):
    for length in range(max_length + 1):
        for letters in product(alphabet, repeat=length):
            yield ''.join(letters)


class TestNfaBasics(TestCase):
    """Test cases for NFA evaluation"""

    def setUp(self):
        self.nfa = load_nfa(ENDS_WITH_AAB)

    def test_accepts(self):
        """Test acceptance of words ending with aab"""
        self.assertTrue(self.nfa.accepts_graphemes("abaab"))
        self.assertFalse(self.nfa.accepts_graphemes("aabb"))
        self.assertTrue(self.nfa.accepts(['a', 'a', 'a', 'b']))
        self.assertTrue(self.nfa.graphemes_only())

    def test_evaluator(self):
        """Test stepping the evaluator by hand"""
        evaluator = self.nfa.evaluator()
        self.assertEqual(evaluator.current_states(), {0})
        self.assertEqual(evaluator.step('a'), {0, 1})
        evaluator.step_all(['a', 'b'])
        self.assertTrue(evaluator.is_accepting())
        self.assertEqual(evaluator.current_state_names(), ['s1', 's4'])

    def test_empty_active_set_is_not_failure(self):
        """Test that running out of states rejects without failing"""
        nfa = load_nfa("a b\n→ s0 {s1} {}\n* s1 {} {}")
        evaluator = nfa.evaluator()
        self.assertEqual(evaluator.step('b'), set())
        self.assertFalse(evaluator.is_failed())
        self.assertFalse(evaluator.is_accepting())

        self.assertIsNone(evaluator.step('c'))
        self.assertTrue(evaluator.is_failed())
        self.assertIsNone(evaluator.step('a'))

    def test_epsilon_closure(self):
        """Test the epsilon closure of single states"""
        nfa = load_nfa(WITH_EPSILON)
        self.assertEqual(nfa.closure(0), {0})
        self.assertEqual(nfa.closure(1), {1, 2})
        self.assertIsNone(nfa.closure(3))
        self.assertIsNone(nfa.closure(-1))
        self.assertEqual(nfa.closure_of_set([0, 1]), {0, 1, 2})

        evaluator = nfa.evaluator()
        self.assertEqual(evaluator.step_index(0), {1, 2})

    def test_accepts_with_epsilon(self):
        """Test that epsilon moves are followed during evaluation"""
        nfa = load_nfa(WITH_EPSILON)
        for word in ["a", "ab", "abbb"]:
            self.assertTrue(nfa.accepts_graphemes(word), f"'{word}' should be accepted")
        for word in ["", "b", "aa", "aba"]:
            self.assertFalse(nfa.accepts_graphemes(word), f"'{word}' should be rejected")

    def test_reachability_follows_epsilon_moves(self):
        """Test that states reached by epsilon moves count as reachable"""
        nfa = load_nfa("ε a\n→ s0 {s1} {}\n* s1 {} {}\n s2 {} {s0}")
        self.assertEqual(nfa.reachable_state_idx(), {0, 1})
        self.assertTrue(nfa.has_reachable_accepting_state())

        nfa.remove_unreachable_states()
        self.assertEqual([state.name for state in nfa.states], ['s0', 's1'])


class TestNfaOperations(TestCase):
    """Test cases for union, intersection and conversions of NFAs"""

    def setUp(self):
        self.ends_with_aab = load_nfa(ENDS_WITH_AAB)
        self.contains_babb = load_nfa(CONTAINS_BABB)

    def test_union(self):
        """Test the union of two NFAs"""
        union = self.ends_with_aab.union(self.contains_babb)

        self.assertFalse(union.accepts_graphemes("abbabab"))
        self.assertTrue(union.accepts_graphemes("aaab"))
        self.assertTrue(union.accepts_graphemes("bbabbaab"))
        self.assertTrue(union.accepts_graphemes("bbaabaab"))

    def test_union_naming_and_inputs(self):
        """Test that union renames colliding states and leaves its inputs alone"""
        union = self.ends_with_aab.union(self.contains_babb)

        self.assertEqual(len(union.states), 10)
        self.assertEqual([state.name for state in union.states[:9]], [str(i) for i in range(1, 10)])
        self.assertEqual(union.initial.name, 's_new')
        self.assertEqual(union.initial.epsilon_transitions, [0, 4])
        self.assertEqual(sum(state.initial for state in union.states), 1)

        self.assertEqual(self.ends_with_aab, load_nfa(ENDS_WITH_AAB))
        self.assertEqual(self.contains_babb, load_nfa(CONTAINS_BABB))

    def test_union_keeps_distinct_names(self):
        """Test that names are kept when they do not collide"""
        first = load_nfa("a\n→ p {q}\n* q {}")
        second = load_nfa("a\n→ * s_new {}")
        union = first.union(second)
        self.assertEqual([state.name for state in union.states], ['p', 'q', 's_new', '0'])

    def test_union_different_alphabets(self):
        """Test that union needs equal alphabets"""
        other = load_nfa("a c\n→ s0 {} {}")
        self.assertIsNone(self.ends_with_aab.union(other))

    def test_intersection(self):
        """Test the intersection of two NFAs"""
        intersection = self.ends_with_aab.intersection(self.contains_babb)
        for word in all_strings('ab', 7):
            expected = self.ends_with_aab.accepts_graphemes(word) and self.contains_babb.accepts_graphemes(word)
            self.assertEqual(intersection.accepts_graphemes(word), expected, f"Disagreement on '{word}'")
        self.assertTrue(intersection.accepts_graphemes("babbaab"))
        self.assertEqual(intersection.states[0].name, '(s1,s1)')

    def test_intersection_with_epsilon_moves(self):
        """Test that the product follows epsilon moves of both sides"""
        with_epsilon = load_nfa(WITH_EPSILON)
        any_word = load_nfa("a b\n→ * s {s} {s}")
        intersection = with_epsilon.intersection(any_word)
        for word in all_strings('ab', 5):
            self.assertEqual(intersection.accepts_graphemes(word), with_epsilon.accepts_graphemes(word))

    def test_to_dfa(self):
        """Test the subset construction"""
        dfa = self.ends_with_aab.to_dfa()

        self.assertEqual(dfa.states[0].name, '0')
        self.assertEqual([state.name for state in dfa.states], [str(i) for i in range(len(dfa.states))])
        self.assertEqual(dfa.initial_state, 0)
        self.assertEqual(len(dfa.states), 4)
        for word in all_strings('ab', 6):
            self.assertEqual(dfa.accepts_graphemes(word), self.ends_with_aab.accepts_graphemes(word))

    def test_to_dfa_with_epsilon_moves(self):
        """Test the subset construction from epsilon closures"""
        nfa = load_nfa(WITH_EPSILON)
        dfa = nfa.to_dfa()
        for word in all_strings('ab', 5):
            self.assertEqual(dfa.accepts_graphemes(word), nfa.accepts_graphemes(word))

    def test_equivalent_to(self):
        """Test NFA equivalence"""
        self.assertTrue(self.ends_with_aab.equivalent_to(self.ends_with_aab.to_dfa().to_nfa()))
        self.assertFalse(self.ends_with_aab.equivalent_to(self.contains_babb))
        regex_nfa = parse_regex("(a|b)*aab").to_nfa()
        self.assertTrue(regex_nfa.equivalent_to(self.ends_with_aab))
        self.assertTrue(self.ends_with_aab.equivalent_to(regex_nfa))


class TestEpsilonRemoval(TestCase):
    """Test cases for removing epsilon moves"""

    def test_removal_keeps_language(self):
        """Test that the language is unchanged"""
        for source in [WITH_EPSILON, "ε a\n→ s0 {s1} {s0}\n* s1 {} {}", "a ε\n→ s0 {} {s1}\n s1 {s0} {s0}"]:
            nfa = load_nfa(source)
            removed = nfa.copy()
            removed.remove_epsilon_moves()
            self.assertFalse(removed.has_epsilon_moves())
            for word in all_strings(nfa.alphabet, 5):
                self.assertEqual(removed.accepts_graphemes(word), nfa.accepts_graphemes(word),
                                 f"Disagreement on '{word}' for {source!r}")

    def test_new_initial_state(self):
        """Test that a new initial state is added when the old one stays"""
        nfa = load_nfa("ε a\n→ s0 {s1} {s0}\n* s1 {} {}")
        nfa.remove_epsilon_moves()

        self.assertEqual([state.name for state in nfa.states], ['s0', 's1', 's_new'])
        self.assertEqual(nfa.initial_state, 2)
        self.assertTrue(nfa.initial.accepting)
        self.assertFalse(nfa.states[0].initial)

    def test_old_initial_name_reused(self):
        """Test that the new initial state takes the name of a dead old one"""
        nfa = load_nfa("ε a\n→ s0 {s1} {}\n* s1 {} {s1}")
        nfa.remove_epsilon_moves()

        self.assertEqual([state.name for state in nfa.states], ['s1', 's0'])
        self.assertEqual(nfa.initial_state, 1)
        self.assertTrue(nfa.accepts_graphemes(""))
        self.assertTrue(nfa.accepts_graphemes("aa"))

    def test_no_epsilon_moves_is_noop(self):
        """Test that an NFA without epsilon moves is left untouched"""
        nfa = load_nfa(ENDS_WITH_AAB)
        nfa.remove_epsilon_moves()
        self.assertEqual(nfa, load_nfa(ENDS_WITH_AAB))

    def test_regex_words(self):
        """Test the first words of 0*1(0|ε) after epsilon removal"""
        nfa = parse_regex("0*1(0|ε)").to_nfa()
        nfa.remove_epsilon_moves()
        self.assertEqual(list(islice(nfa.words(), 3)), ["1", "01", "10"])

    def test_optimize(self):
        """Test that optimize removes unreachable states and epsilon moves"""
        nfa = load_nfa("ε a\n→ s0 {s1} {}\n* s1 {} {s1}\n s2 {} {s0}")
        nfa.optimize()
        self.assertFalse(nfa.has_epsilon_moves())
        self.assertNotIn('s2', [state.name for state in nfa.states])
        self.assertTrue(nfa.accepts_graphemes("a"))


class TestWordEnumeration(TestCase):
    """Test cases for enumerating the words of an NFA"""

    def test_words(self):
        """Test the first words ending with aab"""
        words = load_nfa(ENDS_WITH_AAB).words()
        self.assertEqual(next(words), "aab")
        self.assertEqual(next(words), "aaab")
        self.assertEqual(next(words), "baab")

    def test_word_components(self):
        """Test enumeration as symbols and indices"""
        nfa = load_nfa(ENDS_WITH_AAB)
        self.assertEqual(next(nfa.word_components()), ['a', 'a', 'b'])
        self.assertEqual(next(nfa.word_component_indices()), [0, 0, 1])

    def test_epsilon_moves_rejected(self):
        """Test that enumeration needs an NFA without epsilon moves"""
        with self.assertRaises(EpsilonMovesError):
            load_nfa(WITH_EPSILON).words()

    def test_finite_language(self):
        """Test that enumeration stops after the last word"""
        dfa = load_dfa("a b\n→ s0 s1 s3\n s1 s3 s2\n* s2 s3 s3\n s3 s3 s3")
        self.assertEqual(list(dfa.to_nfa().words()), ["ab"])
