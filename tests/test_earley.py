import pytest

from cfglab.earley import START, Item, build_chart, is_accepted, recognize
from cfglab.grammar import compile_grammar, tokenize_for_grammar, tokenize_generic


def _recognize(source: str, text: str) -> bool:
    grammar, _ = compile_grammar(source)
    return recognize(grammar, tokenize_generic(text))


@pytest.mark.parametrize(
    "text,expected",
    [
        ("", True),
        ("ab", True),
        ("aabb", True),
        ("aaabbb", True),
        ("a", False),
        ("ba", False),
        ("aab", False),
        ("abab", False),
    ],
)
def test_anbn(text, expected):
    assert _recognize("S -> aSb | ε", text) == expected


def test_left_recursion():
    """Left recursion is fine; no LL restrictions here."""
    source = "E -> E + T | T\nT -> T * F | F\nF -> ( E ) | \"id\""
    assert _recognize(source, "id + id * id")
    assert _recognize(source, "( id + id ) * id")
    assert not _recognize(source, "id + * id")
    assert not _recognize(source, "")


def test_ambiguous_grammar():
    assert _recognize("E -> E + E | a", "a + a + a")


def test_epsilon_before_use():
    """A nullable nonterminal declared before the rule that needs it."""
    assert _recognize("S -> A A x\nA -> ε | a", "x")
    assert _recognize("S -> A A x\nA -> ε | a", "ax")
    assert _recognize("S -> A A x\nA -> ε | a", "aax")
    assert not _recognize("S -> A A x\nA -> ε | a", "aaax")


def test_epsilon_chains():
    source = "S -> A B C d\nA -> B\nB -> C\nC -> ε"
    assert _recognize(source, "d")
    assert not _recognize(source, "")


def test_nullable_through_declaration_order():
    # The same language, with the epsilon production first and last.
    assert _recognize("S -> X y\nX -> ε | X x", "y")
    assert _recognize("S -> X y\nX -> X x | ε", "xxy")


def test_undeclared_nonterminal_never_matches():
    grammar, warnings = compile_grammar("S -> B")
    assert warnings == ["Nonterminal 'B' is referenced but has no production."]
    assert not recognize(grammar, [])
    assert not recognize(grammar, ["B"])
    assert not recognize(grammar, ["b"])


def test_undeclared_nonterminal_in_one_alternative():
    grammar, _ = compile_grammar("S -> a | B")
    assert recognize(grammar, ["a"])


def test_cyclic_grammar():
    source = "S -> S | A | a\nA -> S"
    assert _recognize(source, "a")
    assert not _recognize(source, "")
    assert not _recognize(source, "aa")


def test_multichar_terminals():
    grammar, _ = compile_grammar('S -> "if" C "then" S | "x"\nC -> "c"')
    assert recognize(grammar, tokenize_for_grammar("if c then if c then x", grammar))
    assert recognize(grammar, tokenize_for_grammar("ifcthenx", grammar))
    assert not recognize(grammar, tokenize_for_grammar("if then x", grammar))


def test_chart_shape():
    grammar, _ = compile_grammar("S -> aSb | ε")
    tokens = ["a", "b"]
    chart = build_chart(grammar, tokens)

    assert len(chart) == len(tokens) + 1
    assert is_accepted(chart, len(tokens))

    # Column 0 starts with the wrapper item and its predictions.
    first = chart[0].items[0]
    assert first.lhs == START
    assert first.dot == 0 and first.origin == 0
    assert [item.production.index for item in chart[0].items[1:3]] == [0, 1]


def test_chart_has_no_duplicates():
    grammar, _ = compile_grammar("E -> E + E | E * E | a")
    chart = build_chart(grammar, tokenize_generic("a + a * a + a"))
    for column in chart:
        assert len(column.items) == len(set(column.items))


def test_item_advance():
    grammar, _ = compile_grammar("S -> a B")
    item = Item(production=grammar.productions[0], dot=0, origin=3)

    assert item.next == grammar.productions[0].rhs[0]
    assert not item.at_end

    done = item.advance().advance()
    assert done.at_end
    assert done.next is None
    assert done.origin == 3
    assert repr(done) == "S -> 'a' B * (3)"
