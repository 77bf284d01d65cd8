"""Non-fatal notices and warnings raised while a program runs.

Diagnostics never change control flow: they are recorded for inspection and
forwarded to the ``phpwalk.diagnostics`` logger. Handlers are the caller's
business (the CLI and REPL configure stderr output).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional

from .tree import Node

logger = logging.getLogger(__name__)


class Severity(Enum):
    NOTICE = "Notice"
    WARNING = "Warning"

    @property
    def log_level(self) -> int:
        return logging.WARNING if self is Severity.WARNING else logging.INFO


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    message: str
    line: Optional[int] = None

    def __str__(self) -> str:
        where = f" on line {self.line}" if self.line is not None else ""
        return f"{self.severity.value}: {self.message}{where}"


class Diagnostics:
    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self.records: List[Diagnostic] = []
        self._log = log or logger

    def notice(self, message: str, node: Optional[Node] = None) -> Diagnostic:
        return self.emit(Severity.NOTICE, message, node)

    def warning(self, message: str, node: Optional[Node] = None) -> Diagnostic:
        return self.emit(Severity.WARNING, message, node)

    def emit(self, severity: Severity, message: str, node: Optional[Node] = None) -> Diagnostic:
        diag = Diagnostic(severity, message, node.line if node is not None else None)
        self.records.append(diag)
        self._log.log(severity.log_level, "%s", diag)
        return diag

    def messages(self, severity: Optional[Severity] = None) -> List[str]:
        return [d.message for d in self.records if severity is None or d.severity is severity]

    def clear(self) -> None:
        self.records.clear()

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)
