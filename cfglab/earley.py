"""An Earley recognizer for arbitrary context-free grammars.

Unlike an LR table this works for any grammar at all: ambiguous, left- or
right-recursive, cyclic, full of epsilon productions, whatever. The price is
O(n^3) time in the worst case, which is fine for the kind of inputs people
type in by hand.

The chart has one column per position in the input (so n + 1 columns for n
tokens). Column i holds the items that are live after consuming i tokens.
Items are processed in the order they are added, and items added while a
column is being processed are processed in that same column; completions
can unlock further predictions and completions without consuming input.

Epsilon productions are the classic trap here. If `A -> ε` is completed in
column i before some other item in column i predicts A, the completer never
sees that other item. We track which nonterminals have completed without
consuming anything in each column, and the predictor advances over them
directly (the Aycock & Horspool fix).
"""

import logging
import typing

from .grammar import Grammar, NonTerminal, Production, Symbol


START = "$start"

chart_log = logging.getLogger("cfglab.chart")


class Item(typing.NamedTuple):
    """An Earley item: a position within a production, and the column where
    matching the production began.

    Items are compared by value. Since productions carry their source index,
    two alternatives spelled the same way produce two distinct items.
    """

    production: Production
    dot: int
    origin: int

    @property
    def lhs(self) -> str:
        return self.production.lhs

    @property
    def rhs(self) -> typing.Tuple[Symbol, ...]:
        return self.production.rhs

    @property
    def at_end(self) -> bool:
        return self.dot == len(self.production.rhs)

    @property
    def next(self) -> Symbol | None:
        if self.at_end:
            return None
        return self.production.rhs[self.dot]

    def advance(self) -> "Item":
        return Item(production=self.production, dot=self.dot + 1, origin=self.origin)

    def __repr__(self) -> str:
        return "{lhs} -> {bits} ({origin})".format(
            lhs=self.lhs,
            bits=" ".join(
                [
                    ("* " + repr(sym)) if i == self.dot else repr(sym)
                    for i, sym in enumerate(self.rhs)
                ]
            )
            + (" *" if self.at_end else ""),
            origin=self.origin,
        )


class Column:
    """The items of one chart column, in the order they were added."""

    index: int
    items: list[Item]
    nullable: set[str]
    waiting: dict[str, list[Item]]
    _seen: set[Item]

    def __init__(self, index: int):
        self.index = index
        self.items = []
        self.nullable = set()
        self.waiting = {}
        self._seen = set()

    def add(self, item: Item) -> bool:
        if item in self._seen:
            return False

        self._seen.add(item)
        self.items.append(item)
        expected = item.next
        if isinstance(expected, NonTerminal):
            self.waiting.setdefault(expected.value, []).append(item)
        elif expected is None and item.origin == self.index:
            self.nullable.add(item.lhs)
        return True

    def __iter__(self) -> typing.Iterator[Item]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, item: Item) -> bool:
        return item in self._seen


Chart = list[Column]


def start_production(grammar: Grammar) -> Production:
    return Production(lhs=START, rhs=(NonTerminal(grammar.start_symbol),), index=-1)


def build_chart(grammar: Grammar, tokens: typing.Sequence[str]) -> Chart:
    """Run the recognizer over the tokens and return the whole chart."""
    n = len(tokens)
    chart = [Column(i) for i in range(n + 1)]
    chart[0].add(Item(production=start_production(grammar), dot=0, origin=0))

    for i, column in enumerate(chart):
        # NOTE: `column.items` grows while we walk it; that's the point.
        p = 0
        while p < len(column.items):
            item = column.items[p]
            p += 1

            expected = item.next
            if expected is None:
                # Completer: advance everything that was waiting on us.
                for candidate in list(chart[item.origin].waiting.get(item.lhs, ())):
                    column.add(candidate.advance())

            elif isinstance(expected, NonTerminal):
                # Predictor.
                for production in grammar.productions_for(expected.value):
                    column.add(Item(production=production, dot=0, origin=i))

                # If the nonterminal already matched the empty string here
                # then step over it now; the completer has already run and
                # won't come back for us.
                if expected.value in column.nullable:
                    column.add(item.advance())

            elif i < n and expected.value == tokens[i]:
                # Scanner.
                chart[i + 1].add(item.advance())

        if chart_log.isEnabledFor(logging.DEBUG):
            token = repr(tokens[i]) if i < n else "$"
            chart_log.debug(f"column {i} ({token}): {len(column)} items")

    return chart


def is_accepted(chart: Chart, n: int) -> bool:
    for item in chart[n]:
        if item.lhs == START and item.origin == 0 and item.at_end:
            return True
    return False


def recognize(grammar: Grammar, tokens: typing.Sequence[str]) -> bool:
    """Decide whether the grammar generates the token sequence."""
    chart = build_chart(grammar, tokens)
    return is_accepted(chart, len(tokens))
