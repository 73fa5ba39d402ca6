import json
import logging
from itertools import islice

from django.http import JsonResponse, StreamingHttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from .conf import get_setting
from .dfa import Dfa
from .fsa_equivalence import (
    EquivalenceResult,
    are_automata_equivalent,
    check_equivalence,
    grade_candidates,
)
from .fsa_layout import ascii_art, automaton_layout
from .fsa_properties import check_all_properties, split_graphemes
from .fsa_simulation import (
    check_words,
    find_counterexample,
    simulate_automaton,
    simulate_automaton_generator,
)
from .fsa_transformations import (
    AutomatonType,
    BinaryOperation,
    combine_automata,
    complement_dfa,
    eliminate_epsilon_transitions,
    load_automaton,
    minimise_dfa,
    render_table,
    to_dfa,
    to_nfa,
)
from .nfa import Nfa
from .parser import parse_regex

logger = logging.getLogger(__name__)


def _read_automaton(data, key='automaton'):
    """
    Loads the automaton described by ``data[key]``.

    The description is ``{"type": "dfa" | "nfa" | "regex", "input": text}``.
    Raises ValueError (or one of its fsakit subclasses) on bad input.
    """
    description = data.get(key)
    if not description:
        raise ValueError(f"Missing automaton definition '{key}'")
    if not isinstance(description, dict):
        raise ValueError(f"'{key}' must be an object with 'type' and 'input'")

    text = description.get('input')
    if not isinstance(text, str):
        raise ValueError(f"Missing input text for '{key}'")
    max_length = get_setting('FSAKIT_MAX_INPUT_LENGTH')
    if len(text) > max_length:
        raise ValueError(f"Input for '{key}' is longer than {max_length} characters")

    automaton_type = AutomatonType.from_name(description.get('type', 'dfa'))
    return load_automaton(text, automaton_type)


def _as_machine(automaton):
    """Regular expressions are handled through their epsilon-NFA."""
    if isinstance(automaton, (Dfa, Nfa)):
        return automaton
    return automaton.to_nfa()


def _use_ascii(data):
    return bool(data.get('ascii', get_setting('FSAKIT_ASCII_TABLES')))


def _describe(automaton, ascii_only):
    """The JSON summary shared by every view returning an automaton."""
    return {
        'type': 'dfa' if isinstance(automaton, Dfa) else 'nfa',
        'table': render_table(automaton, ascii_only),
        'alphabet': list(automaton.alphabet),
        'states': [state.name for state in automaton.states],
        'initial_state': automaton.initial.name,
        'accepting_states': [state.name for state in automaton.states if state.accepting],
    }


def _read_word(data):
    word = data.get('word', '')
    if not isinstance(word, str):
        raise ValueError("'word' must be a string")
    return split_graphemes(word)


def _bad_request(e):
    logger.warning("Rejected request: %s", e)
    return JsonResponse({'error': str(e)}, status=400)


def _server_error(e):
    logger.exception("Unexpected error while handling request")
    return JsonResponse({'error': f'Server error: {str(e)}'}, status=500)


@csrf_exempt
@require_POST
def parse_automaton(request):
    """
    Django view to load and validate an automaton.

    Expects a POST request with a JSON body containing:
    - automaton: {"type": "dfa" | "nfa" | "regex", "input": text}
    - ascii (optional): render the table with ASCII characters only

    Returns the table, alphabet, states and properties. Regular expressions
    are described by their epsilon-NFA, with the canonical regex alongside.
    """
    try:
        data = json.loads(request.body)
        automaton = _read_automaton(data)
        machine = _as_machine(automaton)

        response = _describe(machine, _use_ascii(data))
        response['properties'] = check_all_properties(machine)
        if machine is not automaton:
            response['regex'] = automaton.to_string()
        return JsonResponse(response)

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)


@csrf_exempt
@require_POST
def accepts(request):
    """
    Django view to check whether an automaton accepts a word.

    Expects a POST request with a JSON body containing:
    - automaton: The automaton description
    - word: A string, split into grapheme clusters, or
    - symbols: A list of alphabet symbols

    Returns a JSON response with the result and the visited states.
    """
    try:
        data = json.loads(request.body)
        machine = _as_machine(_read_automaton(data))

        if 'symbols' in data:
            symbols = data['symbols']
            if not isinstance(symbols, list) or not all(isinstance(s, str) for s in symbols):
                raise ValueError("'symbols' must be a list of strings")
        else:
            symbols = _read_word(data)

        return JsonResponse(simulate_automaton(machine, symbols))

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)


def _event_stream(generator, status=200):
    response = StreamingHttpResponse(generator, content_type='text/event-stream', status=status)
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'  # Disable nginx buffering
    return response


def _error_stream(message, status):
    def error_generator():
        yield f"data: {json.dumps({'error': message})}\n\n"

    return _event_stream(error_generator(), status)


@csrf_exempt
@require_POST
def simulate_stream(request):
    """
    Django view to stream the evaluation of a word step by step.
    Returns results as they are generated using Server-Sent Events format.
    """
    try:
        data = json.loads(request.body)
        machine = _as_machine(_read_automaton(data))
        symbols = _read_word(data)

        def result_generator():
            """Generator to stream evaluation steps as Server-Sent Events"""
            try:
                for result in simulate_automaton_generator(machine, symbols):
                    yield f"data: {json.dumps(result)}\n\n"

                # Send end-of-stream marker
                yield f"data: {json.dumps({'type': 'end'})}\n\n"

            except Exception as e:
                logger.exception("Simulation stream failed")
                yield f"data: {json.dumps({'type': 'error', 'message': str(e)})}\n\n"

        return _event_stream(result_generator())

    except ValueError as e:
        logger.warning("Rejected stream request: %s", e)
        return _error_stream(str(e), 400)
    except Exception as e:
        logger.exception("Unexpected error while starting stream")
        return _error_stream(f'Server error: {str(e)}', 500)


@csrf_exempt
@require_POST
def min_dfa(request):
    """
    Django view to handle DFA minimisation requests.

    NFAs and regular expressions are converted to a DFA first.

    Returns the minimised DFA and state counts before and after.
    """
    try:
        data = json.loads(request.body)
        dfa, converted = to_dfa(_read_automaton(data))
        minimised = minimise_dfa(dfa)

        original_count = len(dfa.states)
        minimised_count = len(minimised.states)
        is_already_minimal = original_count == minimised_count

        response = _describe(minimised, _use_ascii(data))
        response.update({
            'success': True,
            'converted': converted,
            'statistics': {
                'original_states_count': original_count,
                'minimised_states_count': minimised_count,
                'states_reduced': original_count - minimised_count,
            },
            'message': 'DFA was already minimal' if is_already_minimal else 'DFA minimised successfully'
        })
        return JsonResponse(response)

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)


@csrf_exempt
@require_POST
def convert_nfa_to_dfa(request):
    """
    Django view for the subset construction.

    Accepts an NFA or a regular expression (a DFA is simply lifted first).
    """
    try:
        data = json.loads(request.body)
        nfa, _ = to_nfa(_read_automaton(data))
        dfa = nfa.to_dfa()

        response = _describe(dfa, _use_ascii(data))
        response['statistics'] = {
            'nfa_states_count': len(nfa.states),
            'dfa_states_count': len(dfa.states),
        }
        return JsonResponse(response)

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)


@csrf_exempt
@require_POST
def convert_dfa_to_nfa(request):
    try:
        data = json.loads(request.body)
        automaton = _read_automaton(data)
        if not isinstance(automaton, Dfa):
            raise ValueError("DFA to NFA conversion requires a DFA")
        return JsonResponse(_describe(automaton.to_nfa(), _use_ascii(data)))

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)


@csrf_exempt
@require_POST
def remove_epsilon(request):
    """
    Django view to eliminate the epsilon moves of an NFA or regular expression.
    """
    try:
        data = json.loads(request.body)
        nfa, _ = to_nfa(_read_automaton(data))
        result = eliminate_epsilon_transitions(nfa)

        response = _describe(result, _use_ascii(data))
        response['had_epsilon_moves'] = nfa.has_epsilon_moves()
        return JsonResponse(response)

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)


@csrf_exempt
@require_POST
def regex_to_nfa(request):
    """
    Django view to compile a regular expression into an epsilon-NFA.

    Expects a POST request with a JSON body containing:
    - regex: The regular expression

    Returns the NFA table and the regex printed back in canonical form.
    """
    try:
        data = json.loads(request.body)
        text = data.get('regex')
        if not isinstance(text, str):
            raise ValueError("Missing regular expression")
        max_length = get_setting('FSAKIT_MAX_INPUT_LENGTH')
        if len(text) > max_length:
            raise ValueError(f"Regular expression is longer than {max_length} characters")

        regex = parse_regex(text)
        response = _describe(regex.to_nfa(), _use_ascii(data))
        response['regex'] = regex.to_string()
        return JsonResponse(response)

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)


@csrf_exempt
@require_POST
def complement(request):
    """Django view returning a DFA for the complement language."""
    try:
        data = json.loads(request.body)
        dfa, converted = to_dfa(_read_automaton(data))

        response = _describe(complement_dfa(dfa), _use_ascii(data))
        response['converted'] = converted
        return JsonResponse(response)

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)


@csrf_exempt
@require_POST
def product(request):
    """
    Django view for product constructions.

    Expects a POST request with a JSON body containing:
    - first, second: Automaton descriptions
    - operation: union, intersection, difference or symmetric_difference
    - minimise (optional): Minimise the inputs and the result
    """
    try:
        data = json.loads(request.body)
        first = _read_automaton(data, 'first')
        second = _read_automaton(data, 'second')
        operation = BinaryOperation.from_name(data.get('operation', ''))

        combined = combine_automata(first, second, operation, bool(data.get('minimise', False)))

        response = _describe(combined, _use_ascii(data))
        response['operation'] = operation.value
        return JsonResponse(response)

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)


@csrf_exempt
@require_POST
def equivalence(request):
    """
    Django view to check whether automata accept the same language.

    Expects a POST request with a JSON body containing:
    - first: The reference automaton
    - second: The automaton under test, or
    - candidates: A list of texts to test, all read as ``candidate_type``
    - candidate_type (optional): "dfa", "nfa" or "regex", defaults to "dfa"
    - minimised (optional): Also require the tested automata to be minimal DFAs

    With ``candidates``, a candidate that does not parse or validate gets a
    result of its own, and the response counts the equivalent candidates.
    """
    try:
        data = json.loads(request.body)
        first = _read_automaton(data, 'first')
        minimised = bool(data.get('minimised', False))

        if 'candidates' in data:
            candidates = data['candidates']
            if not isinstance(candidates, list) or not all(isinstance(c, str) for c in candidates):
                raise ValueError("'candidates' must be a list of strings")
            candidate_type = AutomatonType.from_name(data.get('candidate_type', 'dfa'))

            graded = grade_candidates(first, candidates, candidate_type, minimised)
            return JsonResponse({
                'results': [{
                    'result': str(candidate.result),
                    'equivalent': candidate.passed,
                    'error': candidate.error,
                } for candidate in graded],
                'passed': sum(candidate.passed for candidate in graded),
                'total': len(graded)
            })

        second = _read_automaton(data, 'second')
        result = check_equivalence(first, second, minimised)
        _, details = are_automata_equivalent(first, second)

        return JsonResponse({
            'result': str(result),
            'equivalent': result != EquivalenceResult.NOT_EQUIVALENT,
            'details': details
        })

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)


@csrf_exempt
@require_POST
def check_word_list(request):
    """
    Django view to run an automaton on a batch of words.

    Expects a POST request with a JSON body containing:
    - automaton: The automaton description
    - words: A list of words, or
    - text: Words, one per line
    - mode (optional): "lines" reports every word, "counterexample" only the
      first rejected one. Defaults to "lines".

    Words are split into grapheme clusters.
    """
    try:
        data = json.loads(request.body)
        machine = _as_machine(_read_automaton(data))

        if 'words' in data:
            words = data['words']
            if not isinstance(words, list) or not all(isinstance(w, str) for w in words):
                raise ValueError("'words' must be a list of strings")
        else:
            text = data.get('text', '')
            if not isinstance(text, str):
                raise ValueError("'text' must be a string")
            words = text.splitlines()

        mode = data.get('mode', 'lines')
        if mode == 'lines':
            return JsonResponse(check_words(machine, words))
        if mode == 'counterexample':
            counterexample = find_counterexample(machine, words)
            return JsonResponse({
                'passed': counterexample is None,
                'counterexample': counterexample
            })
        raise ValueError(f"Unknown mode '{mode}', expected 'lines' or 'counterexample'")

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)


@csrf_exempt
@require_POST
def enumerate_words(request):
    """
    Django view listing the first accepted words, shortest first.

    Expects a POST request with a JSON body containing:
    - automaton: The automaton description
    - amount (optional): How many words to list

    The empty word is returned as "".
    """
    try:
        data = json.loads(request.body)
        nfa, _ = to_nfa(_read_automaton(data))
        if nfa.has_epsilon_moves():
            nfa.remove_epsilon_moves()

        amount = data.get('amount', get_setting('FSAKIT_DEFAULT_WORD_COUNT'))
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise ValueError("'amount' must be a non-negative integer")
        max_amount = get_setting('FSAKIT_MAX_WORD_COUNT')
        if amount > max_amount:
            raise ValueError(f"'amount' may not exceed {max_amount}")

        words = list(islice(nfa.words(), amount))
        return JsonResponse({
            'words': words,
            'count': len(words),
            'exhausted': len(words) < amount
        })

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)


@csrf_exempt
@require_POST
def layout(request):
    """Django view returning drawing positions and an ASCII rendering of an automaton."""
    try:
        data = json.loads(request.body)
        machine = _as_machine(_read_automaton(data))

        response = automaton_layout(machine)
        response['ascii_art'] = ascii_art(machine)
        return JsonResponse(response)

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)


@csrf_exempt
@require_POST
def check_fsa_properties(request):
    try:
        data = json.loads(request.body)
        machine = _as_machine(_read_automaton(data))
        return JsonResponse(check_all_properties(machine))

    except ValueError as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e)
