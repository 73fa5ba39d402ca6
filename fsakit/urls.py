from django.urls import path
from . import views

urlpatterns = [
    # Loading and evaluation
    path('api/parse/', views.parse_automaton, name='parse'),
    path('api/accepts/', views.accepts, name='accepts'),
    path('api/simulate-stream/', views.simulate_stream, name='simulate_stream'),

    # Conversions
    path('api/minimise-dfa/', views.min_dfa, name='minimise_dfa'),
    path('api/nfa-to-dfa/', views.convert_nfa_to_dfa, name='nfa_to_dfa'),
    path('api/dfa-to-nfa/', views.convert_dfa_to_nfa, name='dfa_to_nfa'),
    path('api/remove-epsilon/', views.remove_epsilon, name='remove_epsilon'),
    path('api/regex-to-nfa/', views.regex_to_nfa, name='regex_to_nfa'),

    # Language operations
    path('api/complement/', views.complement, name='complement'),
    path('api/product/', views.product, name='product'),
    path('api/equivalence/', views.equivalence, name='equivalence'),
    path('api/test-words/', views.check_word_list, name='test_words'),
    path('api/enumerate-words/', views.enumerate_words, name='enumerate_words'),

    # Drawing and properties
    path('api/layout/', views.layout, name='layout'),
    path('api/properties/', views.check_fsa_properties, name='properties'),
]
