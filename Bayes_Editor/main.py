# main.py

"""Command line front end driving the reasoning engine without a GUI."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List, Optional, Sequence

from Bayes_Editor.config import Settings
from Bayes_Editor.engine.controller import FlowError, SessionController
from Bayes_Editor.engine.errors import EngineError
from Bayes_Editor.engine.session import EngineSession
from Bayes_Editor.graph.model import Network

logger = logging.getLogger(__name__)


def _configure_logging(level: str = "INFO", filename: str | None = None) -> None:
    """Configure application logging and capture uncaught exceptions."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        filename=filename,
        filemode="a",
    )

    def _log_excepthook(exc_type, exc, tb) -> None:
        logging.getLogger(__name__).exception(
            "Uncaught exception", exc_info=(exc_type, exc, tb)
        )

    sys.excepthook = _log_excepthook


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bayes-editor")
    parser.add_argument("--config", help="YAML or JSON settings file")
    parser.add_argument("--engine", help="Engine executable (overrides settings)")
    parser.add_argument("--log-level", help="Logging level, e.g. DEBUG")
    sub = parser.add_subparsers(dest="command", required=True)

    show_p = sub.add_parser("show", help="Load a network and print it")
    show_p.add_argument("file")

    alg_p = sub.add_parser("algorithms", help="List inference algorithms")
    alg_p.add_argument(
        "--quiet-period",
        type=float,
        default=1.0,
        help="Seconds without output after which the list is complete",
    )

    query_p = sub.add_parser("query", help="Load a network and run a query")
    query_p.add_argument("file")
    query_p.add_argument("--algorithm", required=True)
    query_p.add_argument("--param", type=int)
    query_p.add_argument(
        "--evidence",
        action="append",
        default=[],
        metavar="NODE=VALUE",
        help="Observed value; may be repeated",
    )
    return parser


def _load_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.load_from_file(args.config) if args.config else Settings()
    if args.engine:
        settings.engine_path = args.engine
    if args.log_level:
        settings.log_level = args.log_level
    return settings


def format_network(network: Network) -> str:
    """Render ``network`` as text, one CPT row per line."""
    lines = [f"network {network.name}"]
    for node in network.nodes:
        parents = [p.name for p in node.parents]
        lines.append(f"node {node.name}")
        lines.append(f"  values: {' '.join(node.values)}")
        lines.append(f"  parents: {' '.join(parents) if parents else '-'}")
        for offset in range(node.table_size()):
            self_value, parent_values = node.cpt_decompose(offset)
            given = ", ".join(
                f"{p.name}={p.values[v]}" for p, v in zip(node.parents, parent_values)
            )
            cond = f" | {given}" if given else ""
            lines.append(
                f"  P({node.name}={node.values[self_value]}{cond}) = "
                f"{node.probability(offset):g}"
            )
    verdict = "acyclic" if network.is_acyclic() else "contains a cycle"
    lines.append(f"structure: {verdict}")
    return "\n".join(lines)


def format_posteriors(network: Network) -> str:
    lines = []
    for node in network.nodes:
        mark = " (evidence)" if node.evidence is not None else ""
        lines.append(f"{node.name}{mark}")
        for i, value in enumerate(node.values):
            lines.append(f"  {value}: {node.posterior_of(i):.4f}")
    return "\n".join(lines)


def _parse_evidence(items: Sequence[str]) -> List[tuple[str, str]]:
    pairs = []
    for item in items:
        name, sep, value = item.partition("=")
        if not sep or not name or not value:
            raise ValueError(f"evidence must be NODE=VALUE, got {item!r}")
        pairs.append((name, value))
    return pairs


def _drain(session: EngineSession, quiet_period: float) -> None:
    """Pump replies until none arrive for ``quiet_period`` seconds."""
    last = time.monotonic()
    while True:
        remaining = quiet_period - (time.monotonic() - last)
        if remaining <= 0:
            return
        if session.poll(remaining):
            last = time.monotonic()


def _load(session: EngineSession, controller: SessionController, path: str) -> Network:
    network = controller.open_file(path)
    session.run_until(lambda: not controller.loading)
    return network


def main(argv: Optional[List[str]] = None) -> int:
    """Parse CLI arguments and run the requested command."""

    args = _build_parser().parse_args(argv)
    settings = _load_settings(args)
    _configure_logging(settings.log_level, settings.log_file)

    errors: List[FlowError] = []
    session = EngineSession(settings)
    controller = SessionController(session, settings, on_error=errors.append)
    session.handler = controller.handle
    try:
        with session:
            if args.command == "algorithms":
                controller.request_algorithms()
                _drain(session, args.quiet_period)
                for algorithm in controller.algorithms:
                    suffix = " (takes a parameter)" if algorithm.has_param else ""
                    print(f"{algorithm.name}{suffix}")
            elif args.command == "show":
                network = _load(session, controller, args.file)
                if not errors:
                    print(format_network(network))
            elif args.command == "query":
                evidence = _parse_evidence(args.evidence)
                controller.request_algorithms()
                network = _load(session, controller, args.file)
                if not errors:
                    for name, value in evidence:
                        node = network.node_by_name(name)
                        if node is None or value not in node.values:
                            raise ValueError(f"unknown evidence {name}={value}")
                        node.set_evidence(node.values.index(value))
                    controller.enter_query_mode(args.algorithm, args.param)
                    session.run_until(lambda: not controller.querying)
                if not errors:
                    print(format_posteriors(network))
    except (EngineError, ValueError) as exc:
        logger.error("%s", exc)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    for error in errors:
        flow = error.flow.value if error.flow else "engine"
        print(f"{flow} error: {error.message}", file=sys.stderr)
    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
