"""Command-line front door for lazypick.

Reads items from stdin or a command, runs one query through a picker
session, and prints the ranked matches.
"""

from __future__ import annotations

import argparse
import logging
import sys

from .ansi import clip_ansi_line, highlight_chars
from .config import CASE_MODES, PickerConfigError, save_picker_defaults
from .items import item_to_string
from .picker import PickerRegistry, PickerSession, builtins
from .query import query_is_ignorecase
from .runtime.ingest import cli_postprocess
from .search.fuzzy import match_offsets

log = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lazypick",
        description="Rank lines from stdin (or a command) against a fuzzy query.",
    )
    parser.add_argument("--filter", metavar="QUERY", default="", help="Query to match. Empty keeps input order.")
    parser.add_argument(
        "--command",
        nargs=argparse.REMAINDER,
        metavar="CMD",
        default=None,
        help="Run CMD (all remaining arguments) and pick from its output instead of stdin.",
    )
    parser.add_argument("--case", choices=CASE_MODES, default=None, help="Case handling (default: smart).")
    parser.add_argument(
        "--save-defaults",
        action="store_true",
        help="Remember --case for later runs.",
    )
    parser.add_argument("--no-color", action="store_true", help="Do not highlight matched characters.")
    parser.add_argument("--max-cols", type=_positive_int, default=None, help="Clip output lines to N columns.")
    parser.add_argument("--verbose", action="store_true", help="Log debug details to stderr.")
    return parser


def _start_session(registry: PickerRegistry, args: argparse.Namespace) -> PickerSession:
    overrides = {} if args.case is None else {"case_mode": args.case}
    if args.command:
        return builtins.cli(registry, args.command, **overrides)
    lines = cli_postprocess(sys.stdin.read().split("\n"))
    return registry.start(name="stdin", items=lines, **overrides)


def _fold_chars(text: str) -> str:
    # One char per char so offsets line up with the original text.
    return "".join(ch.lower()[:1] for ch in text)


def format_match(text: str, query: list[str], case_mode: str, no_color: bool, max_cols: int | None) -> str:
    """Render one matched line, highlighting matched characters unless ``no_color``."""
    if not no_color and query:
        if query_is_ignorecase(query, case_mode):
            offsets = match_offsets(_fold_chars(text), [_fold_chars(token) for token in query])
        else:
            offsets = match_offsets(text, query)
        text = highlight_chars(text, offsets or [])
    if max_cols is not None:
        text = clip_ansi_line(text, max_cols)
    return text


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the query, print matches.

    Returns ``1`` when nothing matches. Configuration problems exit with a
    message.
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.save_defaults and args.case is not None:
        save_picker_defaults(case_mode=args.case)
        log.debug("saved case mode %r as default", args.case)

    query = list(args.filter)
    registry = PickerRegistry()
    try:
        session = _start_session(registry, args)
        session.run_until_idle()
        session.set_query(query)
        session.run_until_idle()
    except PickerConfigError as exc:
        raise SystemExit(f"lazypick: {exc}") from exc

    matches = session.get_matches().all
    case_mode = session.options.case_mode
    session.stop()
    log.debug("%d of %d items match %r", len(matches), len(session.items or []), args.filter)
    if not matches:
        return 1

    out = sys.stdout
    for item in matches:
        out.write(format_match(item_to_string(item), query, case_mode, args.no_color, args.max_cols))
        out.write("\n")
    out.flush()
    return 0
