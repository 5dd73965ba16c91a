from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from heapview.core.diagram.config import DiagramConfig
from heapview.core.diagram.reconciler import DiagramReconciler
from heapview.core.diagram.session import DiagramSession
from heapview.core.diagram.surface import InMemorySurface
from heapview.core.graph.builder import build
from heapview.core.graph.elements import ElementSet
from heapview.core.graph.exceptions import HeapDescriptionError, TraversalFault
from heapview.core.runtime.description import load_heap_description
from heapview.core.runtime.python_heap import bindings_from_namespace, constant_names
from heapview.utils.json_safe import to_jsonable

log = logging.getLogger("heapview.cli")

EXIT_PORT_IN_USE = 13


def _print_json(obj: Any, *, pretty: bool = True) -> None:
    print(json.dumps(to_jsonable(obj), indent=2 if pretty else None, sort_keys=pretty))


def _config_from_args(args: argparse.Namespace) -> DiagramConfig:
    overrides: Dict[str, Any] = {
        "host": getattr(args, "host", None),
        "port": getattr(args, "port", None),
    }
    if getattr(args, "no_pin", False):
        overrides["pinned"] = False
    if getattr(args, "dark_mode", False):
        overrides["mode"] = "dark"
    return DiagramConfig.from_env().with_overrides(**overrides)


def _exec_file(path: Path, namespace: Dict[str, Any]) -> None:
    source = path.read_text(encoding="utf-8")
    exec(compile(source, str(path), "exec"), namespace)


class _DiagramService:
    """Starts the diagram service for a session at most once."""

    def __init__(self, session: DiagramSession):
        self.session = session
        self.server: Any = None

    def start(self) -> Optional[str]:
        """Start the service if needed. Returns its URL, or None if the port is taken."""

        from heapview.api.server import create_app, port_available, serve_in_background

        cfg = self.session.config
        if self.server is not None:
            return cfg.url
        if not port_available(cfg.host, cfg.port):
            return None
        self.server, _ = serve_in_background(
            create_app(self.session), host=cfg.host, port=cfg.port, log_level="warning"
        )
        log.info("diagram_service_started", extra={"url": cfg.url})
        return cfg.url

    def stop(self) -> None:
        if self.server is not None:
            self.server.should_exit = True


def _port_hint(cfg: DiagramConfig) -> str:
    return (
        f"error: couldn't start dynamic diagram at port {cfg.port} "
        f"(already in use); pick another one with --port"
    )


def cmd_repl(args: argparse.Namespace) -> int:
    """Interactive Python with a live object diagram.

    The diagram service starts with the REPL unless --skip-diagram is given;
    `:diagram` starts it later.
    """

    from heapview.drivers.console import DiagramConsole

    cfg = _config_from_args(args)
    if args.file and not os.path.isfile(args.file):
        print(f"error: file not found: {args.file}", file=sys.stderr)
        return 2

    session = DiagramSession(config=cfg)
    service = _DiagramService(session)

    if not args.skip_diagram and service.start() is None:
        print(_port_hint(cfg), file=sys.stderr)
        return EXIT_PORT_IN_USE

    def start_service() -> str:
        url = service.start()
        if url is None:
            return _port_hint(cfg)
        return url

    console = DiagramConsole(session, auto_import=args.file, start_service=start_service)
    banner = "heapview REPL (type :help for commands)"
    if service.server is not None:
        banner += f"\nDynamic diagram available at: {cfg.url}"
    try:
        console.interact(banner=banner, exitmsg="")
    except SystemExit as e:
        return int(e.code or 0)
    finally:
        service.stop()
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Run a program's `tick(elapsed_ms)` on a fixed interval, diagramming every frame."""

    from heapview.drivers.ticker import FrameTicker

    path = Path(args.file)
    if not path.is_file():
        print(f"error: file not found: {path}", file=sys.stderr)
        return 2

    cfg = _config_from_args(args)
    namespace: Dict[str, Any] = {"__name__": "__heapview__", "__file__": str(path)}
    try:
        _exec_file(path, namespace)
    except Exception as e:
        print(f"error: {path} raised {e!r}", file=sys.stderr)
        return 3

    tick = namespace.get("tick")
    if not callable(tick):
        print(f"error: {path} does not define a tick(elapsed_ms) function", file=sys.stderr)
        return 2

    session = DiagramSession(config=cfg)
    service = _DiagramService(session)
    if not args.skip_diagram:
        url = service.start()
        if url is None:
            print(_port_hint(cfg), file=sys.stderr)
            return EXIT_PORT_IN_USE
        print(f"Dynamic diagram available at: {url}")

    ticker = FrameTicker(
        tick,
        on_frame=lambda: session.refresh_namespace(namespace),
        interval_ms=args.interval_ms or cfg.tick_ms,
        max_frames=args.frames,
    )
    try:
        frames = ticker.run()
    except KeyboardInterrupt:
        frames = ticker.frames
    finally:
        service.stop()

    if ticker.error is not None:
        print(f"error: frame {frames} failed: {ticker.error!r}", file=sys.stderr)
        return 1
    print(f"frames: {frames}")
    return 0


def cmd_snapshot(args: argparse.Namespace) -> int:
    """Execute a file and print the resulting element set in wire format."""

    path = Path(args.file)
    if not path.is_file():
        print(f"error: file not found: {path}", file=sys.stderr)
        return 2

    namespace: Dict[str, Any] = {"__name__": "__heapview__", "__file__": str(path)}
    try:
        _exec_file(path, namespace)
    except Exception as e:
        print(f"error: {path} raised {e!r}", file=sys.stderr)
        return 3
    # __file__ is bookkeeping, not a program binding
    namespace.pop("__file__", None)

    try:
        elements = build(bindings_from_namespace(namespace), constants=constant_names(namespace))
    except TraversalFault as e:
        print(f"error: {e}", file=sys.stderr)
        return 3

    _print_json(elements.to_wire(), pretty=args.pretty)
    return 0


def cmd_render(args: argparse.Namespace) -> int:
    """Build the element set of a heap described as JSON."""

    path = Path(args.heap_json)
    if not path.is_file():
        print(f"error: file not found: {path}", file=sys.stderr)
        return 2

    try:
        doc = json.loads(path.read_text(encoding="utf-8"))
        roots, constants = load_heap_description(doc)
        elements = build(roots, constants=constants)
    except json.JSONDecodeError as e:
        print(f"error: invalid JSON: {e}", file=sys.stderr)
        return 2
    except HeapDescriptionError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except TraversalFault as e:
        print(f"error: {e}", file=sys.stderr)
        return 3

    _print_json(elements.to_wire(), pretty=args.pretty)
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    """Follow a running diagram service and print what each change adds and removes."""

    from heapview.client.http import HeapviewHttpClient

    client = HeapviewHttpClient(args.url, timeout=float(args.timeout))
    reconciler = DiagramReconciler(InMemorySurface())
    polls = 0

    try:
        while True:
            try:
                doc = client.diagram()
                elements = ElementSet.from_wire(doc.get("elements") or [])
            except (OSError, RuntimeError, ValueError) as e:
                print(f"error: {e}", file=sys.stderr)
                return 3

            result = reconciler.reconcile(elements)
            if result.added or result.removed or polls == 0:
                _print_json(
                    {
                        "nodes": len(elements.nodes),
                        "edges": len(elements.edges),
                        "added": result.added,
                        "removed": result.removed,
                        "layout": result.layout,
                    },
                    pretty=False,
                )

            polls += 1
            if args.count and polls >= args.count:
                return 0
            time.sleep(max(0.0, float(args.interval)))
    except KeyboardInterrupt:
        return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""

    p = argparse.ArgumentParser(prog="heapview", description="Live object diagrams for Python programs")
    p.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: HEAPVIEW_LOG_LEVEL or INFO)",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    rp = sub.add_parser("repl", help="Interactive REPL with a live diagram")
    rp.add_argument("file", nargs="?", default=None, help="File to load into the REPL namespace")
    rp.add_argument("--host", default=None, help="Diagram service host (default: 127.0.0.1)")
    rp.add_argument("--port", type=int, default=None, help="Diagram service port (default: 3000)")
    rp.add_argument("--skip-diagram", action="store_true", help="Do not start the diagram service")
    rp.add_argument("--dark-mode", action="store_true", help="Start in dark presentation mode")
    rp.add_argument("--no-pin", action="store_true", help="Relayout the whole diagram on every change")
    rp.set_defaults(func=cmd_repl)

    up = sub.add_parser("run", help="Run a program's tick() function with a live diagram")
    up.add_argument("file", help="Program defining tick(elapsed_ms)")
    up.add_argument("--frames", type=int, default=None, help="Stop after N frames")
    up.add_argument("--interval-ms", type=int, default=None, help="Frame interval (default: 17)")
    up.add_argument("--host", default=None, help="Diagram service host (default: 127.0.0.1)")
    up.add_argument("--port", type=int, default=None, help="Diagram service port (default: 3000)")
    up.add_argument("--skip-diagram", action="store_true", help="Do not start the diagram service")
    up.set_defaults(func=cmd_run)

    sp = sub.add_parser("snapshot", help="Execute a file and print its object graph")
    sp.add_argument("file", help="Python file to execute")
    sp.add_argument("--pretty", action="store_true", help="Indent and sort the JSON output")
    sp.set_defaults(func=cmd_snapshot)

    dp = sub.add_parser("render", help="Print the object graph of a JSON heap description")
    dp.add_argument("heap_json", help="Path to heap description JSON")
    dp.add_argument("--pretty", action="store_true", help="Indent and sort the JSON output")
    dp.set_defaults(func=cmd_render)

    wp = sub.add_parser("watch", help="Follow a running diagram service")
    wp.add_argument("--url", default="http://127.0.0.1:3000", help="Diagram service base URL")
    wp.add_argument("--interval", type=float, default=1.0, help="Seconds between polls")
    wp.add_argument("--count", type=int, default=0, help="Stop after N polls (0 = forever)")
    wp.add_argument("--timeout", type=float, default=10.0, help="HTTP timeout in seconds")
    wp.set_defaults(func=cmd_watch)

    return p


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)
    level = (args.log_level or DiagramConfig.from_env().log_level).upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
