"""Pull parse trees back out of an Earley chart.

The chart already is a parse forest, in a compact and shared form: every
completed item is a nonterminal that matched some span of the input, and
there can be many of them for the same nonterminal and span when the grammar
is ambiguous. Here we turn that back into ordinary trees.

Two things make this harder than it sounds. First, the number of trees can
be exponential in the length of the input (or infinite, for cyclic
grammars), so everything is capped at `max_trees` and we report when the cap
cut anything off. Second, a cyclic grammar (`S -> S | a`) can ask for the
trees of an item while we are already building the trees of that same item.
When that happens we give back nothing for the inner request, which keeps us
finite at the cost of not listing derivations that loop through the same item
twice.

Trees for each completed item, and the child lists for each piece of a
production over each span, are memoized for the duration of one extraction,
so shared subtrees are computed once and shared between the trees we return.

Trees can be nested far deeper than the interpreter's recursion limit (a
right-recursive list of a thousand items is a thousand levels deep), so
nothing here recurses. The derivation steps are generators that yield the
sub-step whose result they need, and `Forest._run` drives them from its own
stack.
"""

import collections
import dataclasses
import logging
import typing

from . import earley
from .grammar import EPSILON, Grammar, Production, Terminal


forest_log = logging.getLogger("cfglab.forest")


@dataclasses.dataclass(frozen=True)
class TerminalLeaf:
    value: str
    token_index: int


@dataclasses.dataclass(frozen=True)
class ParseTree:
    """A node in a parse tree: a nonterminal that matched tokens[start:end].

    Subtrees may be shared between the different trees of one result, so
    treat these as values.
    """

    label: str
    start: int
    end: int
    children: typing.Tuple["ParseTree | TerminalLeaf", ...]

    def leaves(self) -> typing.Iterator[TerminalLeaf]:
        stack: list[ParseTree | TerminalLeaf] = [self]
        while len(stack) > 0:
            node = stack.pop()
            if isinstance(node, TerminalLeaf):
                yield node
            else:
                stack.extend(reversed(node.children))

    def text(self) -> list[str]:
        return [leaf.value for leaf in self.leaves()]

    def format_lines(self) -> list[str]:
        lines = []
        stack: list[typing.Tuple[ParseTree | TerminalLeaf, int]] = [(self, 0)]
        while len(stack) > 0:
            node, indent = stack.pop()
            match node:
                case ParseTree(label=label, start=start, end=end, children=children):
                    lines.append((" " * indent) + f"{label} [{start}, {end})")
                    if len(children) == 0:
                        lines.append((" " * (indent + 2)) + EPSILON)
                    stack.extend((child, indent + 2) for child in reversed(children))

                case TerminalLeaf(value=value, token_index=token_index):
                    lines.append((" " * indent) + f"'{value}' @{token_index}")

        return lines

    def format(self) -> str:
        return "\n".join(self.format_lines())


@dataclasses.dataclass
class ParseTreesResult:
    accepted: bool
    trees: list[ParseTree]
    truncated: bool


Children = typing.Tuple[ParseTree | TerminalLeaf, ...]
Frame = typing.Generator[typing.Any, typing.Any, list]


class Completed(typing.NamedTuple):
    """A completed item, together with the column where it completed."""

    item: earley.Item
    end: int


class Forest:
    """The state for one extraction: the index of completed items, the memo
    tables, and the set of items whose trees are being built right now.
    """

    tokens: typing.Sequence[str]
    max_trees: int
    truncated: bool
    accepting: list[Completed]

    _by_span: dict[typing.Tuple[str, int, int], list[Completed]]
    _derivations: dict[typing.Tuple[Production, int, int, int], list[Children]]
    _trees: dict[Completed, list[ParseTree]]
    _in_progress: set[Completed]

    def __init__(self, chart: earley.Chart, tokens: typing.Sequence[str], max_trees: int):
        self.tokens = tokens
        self.max_trees = max_trees
        self.truncated = False
        self.accepting = []

        self._by_span = collections.defaultdict(list)
        self._derivations = {}
        self._trees = {}
        self._in_progress = set()

        n = len(tokens)
        for end, column in enumerate(chart):
            for item in column:
                if not item.at_end:
                    continue

                completed = Completed(item=item, end=end)
                self._by_span[(item.lhs, item.origin, end)].append(completed)

                if item.lhs == earley.START and item.origin == 0 and end == n:
                    if len(item.rhs) == 1:
                        self.accepting.append(completed)

    def _add(self, results: list, candidate) -> bool:
        """Append a candidate unless the cap is already reached.

        Returns False (and marks the extraction as truncated) when the
        candidate had to be dropped; the caller stops enumerating then.
        """
        if len(results) >= self.max_trees:
            if not self.truncated:
                forest_log.debug(f"truncated at {self.max_trees} trees")
            self.truncated = True
            return False
        results.append(candidate)
        return True

    def _run(self, frame: Frame) -> list:
        """Drive a frame and every frame it asks for, using our own stack.

        A frame is a generator that yields the frame whose result it needs
        and is sent that result back; its return value is its own result.
        This reads like plain recursion but parse trees can be far deeper
        than the interpreter's recursion limit.
        """
        stack = [frame]
        value = None
        while True:
            try:
                request = stack[-1].send(value)
            except StopIteration as stop:
                stack.pop()
                if len(stack) == 0:
                    return stop.value
                value = stop.value
                continue

            stack.append(request)
            value = None

    def roots(self) -> list[ParseTree]:
        roots: list[ParseTree] = []
        for completed in self.accepting:
            for wrapper in self.trees(completed):
                root = wrapper.children[0]
                if isinstance(root, ParseTree) and not self._add(roots, root):
                    return roots
        return roots

    def trees(self, completed: Completed) -> list[ParseTree]:
        """All of the (capped) trees for one completed item."""
        return self._run(self._trees_frame(completed))

    def derive(self, production: Production, index: int, start: int, end: int) -> list[Children]:
        """All of the ways that production.rhs[index:] can match tokens[start:end]."""
        return self._run(self._derive_frame(production, index, start, end))

    def _trees_frame(self, completed: Completed) -> Frame:
        existing = self._trees.get(completed)
        if existing is not None:
            return existing

        if completed in self._in_progress:
            forest_log.debug(f"cycle at {completed.item!r} ending at {completed.end}")
            return []

        self._in_progress.add(completed)

        item = completed.item
        derivations = yield self._derive_frame(item.production, 0, item.origin, completed.end)

        nodes: list[ParseTree] = []
        for children in derivations:
            node = ParseTree(label=item.lhs, start=item.origin, end=completed.end, children=children)
            if not self._add(nodes, node):
                break

        self._in_progress.discard(completed)
        self._trees[completed] = nodes
        return nodes

    def _derive_frame(self, production: Production, index: int, start: int, end: int) -> Frame:
        rhs = production.rhs
        if index == len(rhs):
            # A used-up production must cover its span exactly.
            return [()] if start == end else []

        key = (production, index, start, end)
        existing = self._derivations.get(key)
        if existing is not None:
            return existing

        results: list[Children] = []
        symbol = rhs[index]
        if isinstance(symbol, Terminal):
            if start < end and self.tokens[start] == symbol.value:
                leaf = TerminalLeaf(value=symbol.value, token_index=start)
                rests = yield self._derive_frame(production, index + 1, start + 1, end)
                for rest in rests:
                    if not self._add(results, (leaf,) + rest):
                        break

        else:
            # The nonterminal covers tokens[start:split] and the rest of the
            # production covers tokens[split:end], for every split that
            # works. The order here decides which trees survive truncation.
            last = index + 1 == len(rhs)
            full = False
            for split in range(start, end + 1):
                if last and split != end:
                    continue

                candidates = self._by_span.get((symbol.value, start, split))
                if not candidates:
                    continue

                # No point building subtrees if nothing can follow them.
                rests = yield self._derive_frame(production, index + 1, split, end)
                if len(rests) == 0:
                    continue

                for candidate in candidates:
                    subtrees = yield self._trees_frame(candidate)
                    for tree in subtrees:
                        for rest in rests:
                            if not self._add(results, (tree,) + rest):
                                full = True
                                break
                        if full:
                            break
                    if full:
                        break
                if full:
                    break

        self._derivations[key] = results
        return results


def extract_trees(
    grammar: Grammar, tokens: typing.Sequence[str], max_trees: int = 20
) -> ParseTreesResult:
    """Decide whether the grammar generates the tokens, and if it does, list
    up to `max_trees` of the parse trees that show how.

    `truncated` is set when the cap stopped us from listing more trees.
    """
    max_trees = max(0, max_trees)

    chart = earley.build_chart(grammar, tokens)
    accepted = earley.is_accepted(chart, len(tokens))
    if not accepted or max_trees == 0:
        return ParseTreesResult(accepted=accepted, trees=[], truncated=False)

    forest = Forest(chart, tokens, max_trees)
    trees = forest.roots()
    return ParseTreesResult(accepted=accepted, trees=trees, truncated=forest.truncated)
