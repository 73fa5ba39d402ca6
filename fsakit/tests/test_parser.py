from django.test import TestCase
from fsakit.errors import FsaSyntaxError
from fsakit.parser import EPSILON, parse_dfa, parse_nfa, parse_regex
from fsakit.regex_conversions import CharNode, ConcatNode, StarNode, UnionNode


class TestTableParser(TestCase):
    """Test cases for the DFA/NFA table parser"""

    def test_parse_dfa_table(self):
        """Test parsing a DFA with markers on several states"""
        parsed = parse_dfa("""
                   a  b
            ->  s1 s2 s1
              * s2 s3 s2
                s3 s4 s3
              * s4 s1 s4
        """)

        self.assertEqual(parsed.head, ['a', 'b'])
        self.assertEqual([state.name for state in parsed.states], ['s1', 's2', 's3', 's4'])
        self.assertEqual([state.initial for state in parsed.states], [True, False, False, False])
        self.assertEqual([state.accepting for state in parsed.states], [False, True, False, True])
        self.assertEqual(parsed.states[0].transitions, ['s2', 's1'])

    def test_initial_and_accepting_on_same_state(self):
        """Test that both markers may precede one state"""
        parsed = parse_dfa("a\n→ * s0 s0\n")
        state = parsed.states[0]
        self.assertTrue(state.initial)
        self.assertTrue(state.accepting)
        self.assertEqual(state.name, 's0')

    def test_comments_and_blank_lines(self):
        """Test that comments and blank lines are ignored anywhere"""
        parsed = parse_dfa("# leading comment\n\n  a b # header\n\n→ s0 s0 s1 # first\n\n* s1 s1 s0\n# end")
        self.assertEqual(parsed.head, ['a', 'b'])
        self.assertEqual(len(parsed.states), 2)
        self.assertEqual(parsed.states[1].transitions, ['s1', 's0'])

    def test_windows_line_endings(self):
        """Test that CRLF line endings are accepted"""
        parsed = parse_dfa("a\r\n-> s0 s0\r\n")
        self.assertEqual(parsed.head, ['a'])
        self.assertEqual(parsed.states[0].transitions, ['s0'])

    def test_parse_nfa_with_epsilon_column(self):
        """Test that an NFA header may contain an epsilon column"""
        parsed = parse_nfa("ε a\n→ s0 {s1} {}\n* s1 {} {s0 s1}")

        self.assertIs(parsed.head[0], EPSILON)
        self.assertEqual(parsed.head[1], 'a')
        self.assertEqual(parsed.states[0].transitions, [['s1'], []])
        self.assertEqual(parsed.states[1].transitions, [[], ['s0', 's1']])

    def test_nfa_sets_with_inner_spaces(self):
        """Test that spaces right inside the braces are allowed"""
        parsed = parse_nfa("a\n→ s0 { s0 s1 }\n s1 {}")
        self.assertEqual(parsed.states[0].transitions, [['s0', 's1']])

    def test_unicode_symbols_and_names(self):
        """Test that any non-whitespace text can be a symbol or name"""
        parsed = parse_dfa("é ∀x\n→ q₀ q₀ q₀")
        self.assertEqual(parsed.head, ['é', '∀x'])
        self.assertEqual(parsed.states[0].name, 'q₀')

    def test_epsilon_not_allowed_in_dfa_header(self):
        """Test that reserved words cannot be DFA alphabet symbols"""
        with self.assertRaises(FsaSyntaxError) as context:
            parse_dfa("eps a\n→ s0 s0 s0")
        self.assertIn("'eps' is reserved", str(context.exception))

    def test_reserved_state_name(self):
        """Test that a reserved word cannot name a state"""
        with self.assertRaises(FsaSyntaxError) as context:
            parse_dfa("a\n→ * ε s0")
        self.assertIn('reserved', context.exception.message)

    def test_error_position(self):
        """Test that syntax errors report line and column"""
        with self.assertRaises(FsaSyntaxError) as context:
            parse_dfa("a b\n→ s0 {s0} s0")

        error = context.exception
        self.assertEqual(error.line, 2)
        self.assertEqual(error.column, 6)
        self.assertEqual(error.remaining, "{s0} s0")
        self.assertIn("found '{'", str(error))

    def test_missing_states(self):
        """Test that a table needs at least one state"""
        with self.assertRaises(FsaSyntaxError):
            parse_dfa("a b\n")

    def test_empty_input(self):
        """Test that empty input is a syntax error"""
        with self.assertRaises(FsaSyntaxError):
            parse_dfa("")
        with self.assertRaises(FsaSyntaxError):
            parse_nfa("   \n\n")

    def test_unclosed_set(self):
        """Test that an NFA set must be closed"""
        with self.assertRaises(FsaSyntaxError):
            parse_nfa("a\n→ s0 {s0")

    def test_syntax_error_is_value_error(self):
        """Test that syntax errors can be caught as ValueError"""
        with self.assertRaises(ValueError):
            parse_nfa("a\n→ s0 s0")


class TestRegexParser(TestCase):
    """Test cases for the regular expression parser"""

    def test_precedence(self):
        """Test that star binds tighter than concatenation, which binds tighter than union"""
        regex = parse_regex("ab*|c")
        self.assertEqual(regex.tree, UnionNode((
            ConcatNode((CharNode('a'), StarNode(CharNode('b')))),
            CharNode('c'),
        )))

    def test_plus_is_sugar(self):
        """Test that X+ is parsed as X X*"""
        regex = parse_regex("a+")
        self.assertEqual(regex.tree, ConcatNode((CharNode('a'), StarNode(CharNode('a')))))

    def test_printing(self):
        """Test the canonical printed form"""
        test_cases = {
            "(ab)+c": "ab(ab)*c",
            "c(a|b)*c": "c((a|b))*c",
            "a|b|c": "(a|b|c)",
            "\\*a": "\\*a",
            "ε|∅": "(ε|∅)",
        }
        for source, expected in test_cases.items():
            self.assertEqual(parse_regex(source).to_string(), expected,
                             f"Unexpected printing of '{source}'")

    def test_printed_form_reparses(self):
        """Test that the printed form is stable and describes the same language"""
        for source in ["(ab)+c", "c(a|b)*c", "((a|b)c)*", "a\\|b", "x(ε|y)*"]:
            regex = parse_regex(source)
            printed = str(regex)
            reparsed = parse_regex(printed)
            self.assertEqual(str(reparsed), printed, f"Printing is not stable for '{source}'")
            self.assertTrue(reparsed.to_nfa().to_dfa().equivalent_to(regex.to_nfa().to_dfa()),
                            f"Language changed when reparsing '{source}'")

    def test_whitespace(self):
        """Test that surrounding whitespace is ignored and inner whitespace is literal"""
        self.assertEqual(parse_regex("  ab \n").to_string(), "ab")
        self.assertEqual(parse_regex("a b").tree, ConcatNode((CharNode('a'), CharNode(' '), CharNode('b'))))

    def test_graphemes_are_characters(self):
        """Test that a character with a combining mark is one regex character"""
        regex = parse_regex("é*")
        self.assertEqual(regex.tree, StarNode(CharNode("é")))

    def test_errors(self):
        """Test malformed expressions"""
        for source in ["", "(ab", "a|", ")", "*a", "a)", "ab\\"]:
            with self.assertRaises(FsaSyntaxError, msg=f"'{source}' should not parse"):
                parse_regex(source)

    def test_error_position(self):
        """Test that regex errors point at the offending character"""
        with self.assertRaises(FsaSyntaxError) as context:
            parse_regex("  ab)")
        self.assertEqual(context.exception.column, 5)
        self.assertEqual(context.exception.remaining, ")")
