"""Recognize, parse and generate strings for arbitrary context-free grammars.

    from cfglab import compile_grammar, tokenize_for_grammar, extract_trees

    grammar, warnings = compile_grammar("S -> aSb | ε")
    result = extract_trees(grammar, tokenize_for_grammar("aabb", grammar))
    print(result.trees[0].format())
"""

from .earley import recognize
from .forest import ParseTree, ParseTreesResult, TerminalLeaf, extract_trees
from .generate import generate_examples, render_terminals
from .grammar import (
    EPSILON,
    CompileResult,
    Grammar,
    GrammarSyntaxError,
    NonTerminal,
    Production,
    Symbol,
    Terminal,
    compile_grammar,
    tokenize_for_grammar,
    tokenize_generic,
)

__all__ = [
    "EPSILON",
    "CompileResult",
    "Grammar",
    "GrammarSyntaxError",
    "NonTerminal",
    "ParseTree",
    "ParseTreesResult",
    "Production",
    "Symbol",
    "Terminal",
    "TerminalLeaf",
    "compile_grammar",
    "extract_trees",
    "generate_examples",
    "recognize",
    "render_terminals",
    "tokenize_for_grammar",
    "tokenize_generic",
]
