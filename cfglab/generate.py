"""Generate example strings from a grammar.

This is a breadth-first search over sentential forms, always rewriting the
leftmost nonterminal, so shorter derivations come out first. Grammars can
generate infinitely many strings (or loop forever without generating any),
so the search is bounded three ways: by the number of strings wanted, by the
number of terminals a form may have, and by the total number of distinct
forms we are willing to look at.
"""

import collections
import logging
import typing

from .grammar import EPSILON, Grammar, NonTerminal, Symbol, Terminal


generate_log = logging.getLogger("cfglab.generate")

Form = typing.Tuple[Symbol, ...]


def render_terminals(values: typing.Sequence[str], force_token_spacing: bool = False) -> str:
    """Render a string of terminals for people to read.

    Single-character terminals are run together (`aabb`), anything longer
    gets spaces between (`id + id`). The empty string is shown as ε.
    """
    if len(values) == 0:
        return EPSILON

    if not force_token_spacing and all(len(v) == 1 for v in values):
        return "".join(values)
    return " ".join(values)


def _terminal_count(form: Form) -> int:
    return sum(1 for symbol in form if isinstance(symbol, Terminal))


def _first_nonterminal(form: Form) -> int | None:
    for i, symbol in enumerate(form):
        if isinstance(symbol, NonTerminal):
            return i
    return None


def generate_examples(
    grammar: Grammar,
    count: int,
    max_length: int,
    max_expansions: int = 5000,
    *,
    force_token_spacing: bool = False,
) -> list[str]:
    """Produce up to `count` distinct strings that the grammar generates.

    No string has more than `max_length` terminals. At most `max_expansions`
    distinct sentential forms are examined, which keeps this finite even for
    grammars that never stop expanding.
    """
    output: dict[str, None] = {}
    visited: set[Form] = set()
    queue: collections.deque[Form] = collections.deque([(NonTerminal(grammar.start_symbol),)])

    while len(queue) > 0 and len(output) < count and len(visited) < max_expansions:
        form = queue.popleft()
        if form in visited:
            continue
        visited.add(form)

        index = _first_nonterminal(form)
        if index is None:
            text = render_terminals(
                [symbol.value for symbol in form],
                force_token_spacing=force_token_spacing,
            )
            output[text] = None
            continue

        selected = form[index]
        for production in grammar.productions_for(selected.value):
            successor = form[:index] + production.rhs + form[index + 1 :]

            # Terminals never go away, so a form that is already too long can
            # only produce strings that are too long.
            if _terminal_count(successor) > max_length:
                continue

            queue.append(successor)

    if generate_log.isEnabledFor(logging.DEBUG):
        if len(visited) >= max_expansions:
            reason = "expansion limit"
        elif len(output) >= count:
            reason = "count reached"
        else:
            reason = "search exhausted"
        generate_log.debug(
            f"{len(output)} examples from {len(visited)} forms, stopped: {reason}"
        )

    return list(output)
