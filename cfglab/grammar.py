"""Context-free grammars written as text.

A grammar is a list of lines of the form

    S -> a S b | ε
    Expr -> Expr "+" Term | Term

where the left side names a nonterminal and the right side is a list of
alternatives separated by `|`. The first line's nonterminal is the start
symbol. Comments start with `#` or `//` and run to the end of the line.

Symbols on the right side are read like this:

- Quoted text ('...' or "...") is always one terminal, so `"|"` or `"->"`
  can be written as terminals.
- An uppercase letter followed by uppercase letters, digits or underscores
  is a nonterminal.
- Lowercase letters, digits and underscores are terminals. If the author
  separated symbols with spaces (`id + id`) then a run of them is one
  terminal; otherwise every character is its own terminal, so `aSb` means
  `a S b`.
- Anything else is a single-character terminal.
- `ε`, `eps`, `epsilon` or an empty alternative means the empty string.

Compiling never fails because of a nonterminal that is used but never
defined; that is reported as a warning and the nonterminal simply never
matches anything.
"""

import dataclasses
import logging
import re
import types
import typing


EPSILON = "ε"
EPSILON_SPELLINGS = frozenset([EPSILON, "eps", "epsilon"])

grammar_log = logging.getLogger("cfglab.grammar")


###############################################################################
# Symbols and Productions
###############################################################################
@dataclasses.dataclass(frozen=True, slots=True)
class Terminal:
    """A token, or terminal symbol, in the grammar."""

    value: str

    def __repr__(self) -> str:
        return repr(self.value)


@dataclasses.dataclass(frozen=True, slots=True)
class NonTerminal:
    """A rewritable symbol, named by the left side of some production."""

    value: str

    def __repr__(self) -> str:
        return self.value


Symbol = Terminal | NonTerminal


@dataclasses.dataclass(frozen=True, slots=True)
class Production:
    """One rewrite rule, `lhs -> rhs`.

    `index` is the position of the production in the grammar source. Two
    alternatives that are spelled the same are still different productions,
    and the parser reports a separate derivation for each of them.
    """

    lhs: str
    rhs: typing.Tuple[Symbol, ...]
    index: int

    def format(self) -> str:
        if len(self.rhs) == 0:
            return f"{self.lhs} -> {EPSILON}"
        return "{lhs} -> {rhs}".format(lhs=self.lhs, rhs=" ".join(repr(s) for s in self.rhs))


@dataclasses.dataclass(frozen=True)
class Grammar:
    """A compiled grammar.

    `productions` is in source order and `by_lhs` groups them by their left
    side, keeping the same relative order. Everything downstream walks the
    productions in this order, which is what makes the results deterministic.
    """

    start_symbol: str
    productions: typing.Tuple[Production, ...]
    by_lhs: typing.Mapping[str, typing.Tuple[Production, ...]]

    @classmethod
    def from_productions(cls, productions: typing.Iterable[Production]) -> "Grammar":
        productions = tuple(productions)
        if len(productions) == 0:
            raise ValueError("A grammar needs at least one production")

        by_lhs: dict[str, list[Production]] = {}
        for production in productions:
            by_lhs.setdefault(production.lhs, []).append(production)

        return cls(
            start_symbol=productions[0].lhs,
            productions=productions,
            by_lhs=types.MappingProxyType({k: tuple(v) for k, v in by_lhs.items()}),
        )

    def productions_for(self, name: str) -> typing.Tuple[Production, ...]:
        return self.by_lhs.get(name, ())

    def nonterminals(self) -> list[str]:
        return list(self.by_lhs.keys())

    def terminals(self) -> list[str]:
        """The distinct terminal values, in the order they first appear."""
        seen: dict[str, None] = {}
        for production in self.productions:
            for symbol in production.rhs:
                if isinstance(symbol, Terminal) and len(symbol.value) > 0:
                    seen[symbol.value] = None
        return list(seen)

    def format(self) -> str:
        return "\n".join(p.format() for p in self.productions)


###############################################################################
# Compiling Grammar Text
###############################################################################
class GrammarSyntaxError(ValueError):
    """The grammar text could not be compiled.

    `line` is the 1-based line of the source where the problem is, or 0 if the
    problem is not on any one line (the grammar is empty).
    """

    message: str
    line: int

    def __init__(self, message: str, line: int):
        super().__init__(message)
        self.message = message
        self.line = line

    def __str__(self):
        return self.message


class CompileResult(typing.NamedTuple):
    grammar: Grammar
    warnings: list[str]


NONTERMINAL_NAME = re.compile(r"^[A-Z][A-Za-z0-9_]*$")
COMMENT = re.compile(r"#.*|//.*$")


def _is_upper_start(char: str) -> bool:
    return "A" <= char <= "Z"


def _is_upper_continuation(char: str) -> bool:
    return "A" <= char <= "Z" or "0" <= char <= "9" or char == "_"


def _is_lower_identifier(char: str) -> bool:
    return "a" <= char <= "z" or "0" <= char <= "9" or char == "_"


def _has_whitespace(text: str) -> bool:
    return any(c.isspace() for c in text)


def split_alternatives(rhs: str) -> typing.Tuple[list[str], bool]:
    """Split the right side of a production on `|`.

    Quoted text is opaque, so a `|` between quotes does not split. Returns the
    trimmed alternatives and whether a quote was still open at the end.
    """
    parts = []
    current: list[str] = []
    quote = None
    for char in rhs:
        if quote is not None:
            current.append(char)
            if char == quote:
                quote = None
            continue

        if char == '"' or char == "'":
            quote = char
            current.append(char)
        elif char == "|":
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)

    parts.append("".join(current).strip())
    return parts, quote is not None


def _strip_terminator(rhs: str) -> str:
    """Remove an optional trailing `;`, unless it is inside quotes."""
    if not rhs.endswith(";"):
        return rhs

    _, open_quote = split_alternatives(rhs[:-1])
    if open_quote:
        return rhs
    return rhs[:-1].rstrip()


def parse_alternative(alt: str, line: int) -> typing.Tuple[Symbol, ...]:
    """Turn one alternative of a production into a sequence of symbols."""
    if len(alt) == 0 or alt in EPSILON_SPELLINGS:
        return ()

    # If the author put spaces between symbols then runs of lowercase letters
    # are whole terminals; otherwise every letter is one.
    spaced = _has_whitespace(alt)

    result: list[Symbol] = []
    i = 0
    while i < len(alt):
        char = alt[i]

        if char.isspace():
            i += 1

        elif char == '"' or char == "'":
            end = alt.find(char, i + 1)
            if end < 0:
                raise GrammarSyntaxError(f"Unclosed quote on line {line}.", line)

            value = alt[i + 1 : end].strip()
            if len(value) == 0:
                raise GrammarSyntaxError(f"Empty quoted terminal on line {line}.", line)

            result.append(Terminal(value))
            i = end + 1

        elif _is_upper_start(char):
            j = i + 1
            while j < len(alt) and _is_upper_continuation(alt[j]):
                j += 1
            result.append(NonTerminal(alt[i:j]))
            i = j

        elif _is_lower_identifier(char):
            j = i + 1
            if spaced:
                while j < len(alt) and _is_lower_identifier(alt[j]):
                    j += 1
            result.append(Terminal(alt[i:j]))
            i = j

        else:
            result.append(Terminal(char))
            i += 1

    if (
        len(result) == 1
        and isinstance(result[0], Terminal)
        and result[0].value in EPSILON_SPELLINGS
    ):
        return ()

    return tuple(result)


def compile_grammar(source: str) -> CompileResult:
    """Compile grammar text into a Grammar.

    Raises GrammarSyntaxError at the first line that cannot be understood.
    Nonterminals that are used but never defined do not stop compilation;
    they are listed in the returned warnings instead.
    """
    lines = []
    for number, raw in enumerate(source.split("\n"), start=1):
        text = COMMENT.sub("", raw).strip()
        if len(text) > 0:
            lines.append((number, text))

    if len(lines) == 0:
        raise GrammarSyntaxError(
            "Grammar is empty. Add at least one production like S -> aSb | ε.", 0
        )

    productions: list[Production] = []
    for number, text in lines:
        arrow = text.find("->")
        if arrow < 0:
            raise GrammarSyntaxError(f"Missing '->' on line {number}.", number)

        lhs = text[:arrow].strip()
        if not NONTERMINAL_NAME.match(lhs):
            raise GrammarSyntaxError(
                f"Invalid nonterminal '{lhs}' on line {number}. Use names like S, Expr, A1.",
                number,
            )

        # An empty right side is a single empty alternative: `S ->` is `S -> ε`.
        rhs = _strip_terminator(text[arrow + 2 :].strip())
        alternatives, _ = split_alternatives(rhs)
        if len(alternatives) == 0:
            raise GrammarSyntaxError(f"Missing right-hand side on line {number}.", number)

        for alt in alternatives:
            production = Production(
                lhs=lhs,
                rhs=parse_alternative(alt, number),
                index=len(productions),
            )
            if grammar_log.isEnabledFor(logging.DEBUG):
                grammar_log.debug(f"line {number}: {production.format()}")
            productions.append(production)

    grammar = Grammar.from_productions(productions)

    declared = set(grammar.by_lhs.keys())
    referenced: dict[str, None] = {}
    for production in productions:
        for symbol in production.rhs:
            if isinstance(symbol, NonTerminal):
                referenced[symbol.value] = None

    warnings = []
    for name in referenced:
        if name not in declared:
            warnings.append(f"Nonterminal '{name}' is referenced but has no production.")

    for warning in warnings:
        grammar_log.info(warning)

    return CompileResult(grammar=grammar, warnings=warnings)


###############################################################################
# Tokenizing Input
###############################################################################
def tokenize_generic(text: str) -> list[str]:
    """Split input without looking at any grammar.

    Text with spaces in it is split on the spaces; text without any is split
    into single characters.
    """
    trimmed = text.strip()
    if len(trimmed) == 0:
        return []

    if _has_whitespace(trimmed):
        return trimmed.split()

    return list(trimmed)


def tokenize_for_grammar(text: str, grammar: Grammar) -> list[str]:
    """Split input into the terminals of a grammar, longest match first.

    Whitespace between tokens is skipped. Text that does not start with any
    known terminal is taken up to the next whitespace as a single token, which
    the parser will then reject.
    """
    # sorted() is stable, so terminals of the same length keep the order in
    # which they appear in the grammar.
    terminals = sorted(grammar.terminals(), key=len, reverse=True)

    trimmed = text.strip()
    tokens = []
    pos = 0
    while pos < len(trimmed):
        if trimmed[pos].isspace():
            pos += 1
            continue

        for terminal in terminals:
            if trimmed.startswith(terminal, pos):
                tokens.append(terminal)
                pos += len(terminal)
                break
        else:
            end = pos
            while end < len(trimmed) and not trimmed[end].isspace():
                end += 1
            tokens.append(trimmed[pos:end])
            pos = end

    return tokens
