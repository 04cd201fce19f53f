import argparse
import logging
import sys

from . import forest, generate
from .earley import recognize
from .grammar import GrammarSyntaxError, compile_grammar, tokenize_for_grammar, tokenize_generic


def load_grammar(path: str):
    with open(path, "r", encoding="utf-8") as f:
        source = f.read()

    grammar, warnings = compile_grammar(source)
    for warning in warnings:
        print(f"warning: {warning}", file=sys.stderr)
    return grammar


def main(args: list[str]) -> int:
    parser = argparse.ArgumentParser(
        prog="cfglab",
        description="Check strings against a context-free grammar, show their parse trees, "
        "and generate example strings.",
    )
    parser.add_argument("grammar", help="Path to a text file containing the grammar")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log what the recognizer, tree extractor and generator are doing.",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    check = commands.add_parser("check", help="Report whether the grammar generates TEXT")
    check.add_argument("text", help="The input string")

    trees = commands.add_parser("trees", help="Print the parse trees for TEXT")
    trees.add_argument("text", help="The input string")
    trees.add_argument(
        "--max-trees",
        type=int,
        default=30,
        help="The most trees to print. Ambiguous grammars can have a great many.",
    )

    examples = commands.add_parser("generate", help="Print strings the grammar generates")
    examples.add_argument("--count", type=int, default=10, help="How many strings to print")
    examples.add_argument(
        "--max-length",
        type=int,
        default=8,
        help="The most terminals any one string may have",
    )
    examples.add_argument(
        "--max-expansions",
        type=int,
        default=5000,
        help="The most sentential forms to look at before giving up",
    )
    examples.add_argument(
        "--spaced",
        action="store_true",
        help="Always put spaces between terminals, even single characters",
    )

    tokens = commands.add_parser("tokens", help="Print the tokens TEXT is split into")
    tokens.add_argument("text", help="The input string")
    tokens.add_argument(
        "--generic",
        action="store_true",
        help="Split on whitespace (or into characters) instead of matching terminals",
    )

    parsed = parser.parse_args(args[1:])

    logging.basicConfig(level=logging.DEBUG if parsed.verbose else logging.WARNING)

    try:
        grammar = load_grammar(parsed.grammar)
    except GrammarSyntaxError as e:
        print(f"{parsed.grammar}:{e.line}: {e.message}", file=sys.stderr)
        return 1

    match parsed.command:
        case "check":
            input_tokens = tokenize_for_grammar(parsed.text, grammar)
            print("accepted" if recognize(grammar, input_tokens) else "rejected")

        case "trees":
            input_tokens = tokenize_for_grammar(parsed.text, grammar)
            result = forest.extract_trees(grammar, input_tokens, max_trees=parsed.max_trees)
            if not result.accepted:
                print("rejected")
                return 0

            for i, tree in enumerate(result.trees):
                print(f"# parse {i + 1} of {len(result.trees)}")
                print(tree.format())
            if result.truncated:
                print(f"# (stopped after {parsed.max_trees} trees)")

        case "generate":
            for example in generate.generate_examples(
                grammar,
                count=parsed.count,
                max_length=parsed.max_length,
                max_expansions=parsed.max_expansions,
                force_token_spacing=parsed.spaced,
            ):
                print(example)

        case "tokens":
            if parsed.generic:
                input_tokens = tokenize_generic(parsed.text)
            else:
                input_tokens = tokenize_for_grammar(parsed.text, grammar)
            for token in input_tokens:
                print(token)

    return 0


def console_main():
    sys.exit(main(sys.argv))
