from __future__ import annotations

import code
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from heapview.core.diagram.session import DiagramSession
from heapview.core.graph.exceptions import SurfaceClosedError

log = logging.getLogger("heapview.repl")

HELP = """\
Commands:
  :diagram            start the dynamic diagram service and print its URL
  :pin on|off         keep object positions between updates (on) or relayout (off)
  :mode light|dark    switch presentation mode
  :reload             re-run the loaded file in a fresh namespace
  :rerun              reload, then replay this session's input
  :help               show this help
  :quit               leave the REPL
"""


class DiagramConsole(code.InteractiveConsole):
    """Python REPL that refreshes the object diagram after every statement.

    `start_service` is called by `:diagram`; it starts the diagram service
    (if needed) and returns its URL.
    """

    def __init__(
        self,
        session: DiagramSession,
        *,
        auto_import: Optional[str] = None,
        start_service: Optional[Callable[[], str]] = None,
        filename: str = "<heapview>",
    ):
        self.session = session
        self.auto_import = auto_import
        self.history: List[str] = []
        self._start_service = start_service
        super().__init__(locals=self._fresh_namespace(), filename=filename)
        if auto_import:
            self.load_file(auto_import)
        self.refresh()

    @staticmethod
    def _fresh_namespace() -> Dict[str, Any]:
        return {"__name__": "__console__", "__doc__": None}

    def load_file(self, path: str) -> bool:
        """Execute a file into the console namespace. Returns False on error."""

        source = Path(path).read_text(encoding="utf-8")
        try:
            exec(compile(source, path, "exec"), self.locals)
        except Exception:
            self.showtraceback()
            return False
        return True

    def refresh(self) -> None:
        try:
            self.session.refresh_namespace(self.locals)
        except Exception:
            # the REPL must survive a broken snapshot; the next statement retries
            log.exception("diagram_refresh_failed")

    def push(self, line: str, *args: Any, **kwargs: Any) -> bool:
        stripped = line.strip()
        if not self.buffer and stripped.startswith(":"):
            self.run_command(stripped)
            return False

        self.history.append(line)
        more = super().push(line, *args, **kwargs)
        if not more:
            self.refresh()
        return more

    def run_command(self, command: str) -> None:
        name, _, arg = command.partition(" ")
        arg = arg.strip().lower()

        if name in {":quit", ":q", ":exit"}:
            raise SystemExit(0)

        if name in {":help", ":h"}:
            self.write(HELP)
            return

        if name == ":diagram":
            if self._start_service is None:
                self.write("dynamic diagram is not available in this session\n")
                return
            self.write(f"Dynamic diagram available at: {self._start_service()}\n")
            return

        if name == ":pin":
            if arg not in {"on", "off"}:
                self.write("usage: :pin on|off\n")
                return
            self.session.set_pinned(arg == "on")
            self.write(f"Fix objects position: {arg.upper()}\n")
            return

        if name == ":mode":
            if arg not in {"light", "dark"}:
                self.write("usage: :mode light|dark\n")
                return
            try:
                self.session.set_presentation_mode(arg)
            except SurfaceClosedError as e:
                log.error("presentation_mode_failed", extra={"mode": arg, "error": str(e)})
                self.write(f"could not switch mode: {e}\n")
                return
            self.write(f"{arg.capitalize()} mode ON\n")
            return

        if name == ":reload":
            self.reload(rerun=False)
            return

        if name == ":rerun":
            self.reload(rerun=True)
            return

        self.write(f"unknown command: {name} (try :help)\n")

    def reload(self, *, rerun: bool) -> None:
        """Start over from a fresh namespace, optionally replaying input."""

        previous = list(self.history)
        self.history.clear()
        self.resetbuffer()
        self.locals = self._fresh_namespace()
        if self.auto_import:
            self.load_file(self.auto_import)
        self.refresh()

        if rerun:
            for line in previous:
                self.push(line)
            if self.buffer:
                self.push("")
        self.write("Reloaded\n")
