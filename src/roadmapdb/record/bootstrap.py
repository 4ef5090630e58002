"""
One-time schema bootstrap.

The gate runs the setup script once and every record operation waits on it
before touching the database. All waiters share one task, so nobody polls
and nobody races ahead of the CREATE TABLE statements.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

from roadmapdb.db import Database
from roadmapdb.errors import BootstrapError, ConnectionFailure, DecodeFailure, StatementFailure

logger = logging.getLogger(__name__)

_COMMENT = re.compile(r"--.*")


def split_statements(script: str) -> list[str]:
    """
    Split a setup script into statements.

    ``--`` comments and blank lines are dropped, then the text is split on
    ``;``. A ``--`` or ``;`` inside a string literal is not supported.
    """
    script = _COMMENT.sub("", script)
    lines = [line for line in script.splitlines() if line.strip()]
    return [s.strip() for s in "\n".join(lines).split(";") if s.strip()]


def load_statements(path: Path) -> list[str]:
    return split_statements(Path(path).read_text(encoding="utf-8"))


@dataclass
class BootstrapReport:
    executed: int = 0
    failures: list[tuple[str, Exception]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class BootstrapGate:
    """
    Runs setup statements once and blocks callers until they are done.

    Failed statements are logged and collected; the gate still opens unless
    strict is set, in which case every waiter gets a BootstrapError. A
    ConnectionFailure is raised to the waiters and the gate resets, so the
    next wait() tries again.
    """

    def __init__(self, statements: Sequence[str], strict: bool = False):
        self.statements = list(statements)
        self.strict = strict
        self.report: Optional[BootstrapReport] = None
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_script(cls, path: Path, strict: bool = False) -> "BootstrapGate":
        return cls(load_statements(path), strict=strict)

    @property
    def is_open(self) -> bool:
        return (
            self._task is not None
            and self._task.done()
            and not self._task.cancelled()
            and self._task.exception() is None
        )

    async def wait(
        self,
        database: Database,
        seed: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> BootstrapReport:
        """
        Start the bootstrap if nobody has yet, then wait for it to finish.

        Args:
            database: Handle the statements run against
            seed: Coroutine function run after the schema statements

        Returns:
            The report of the single bootstrap run
        """
        if self.is_open:
            return self.report

        if self._task is None:
            self._task = asyncio.ensure_future(self._run(database, seed))

        task = self._task
        try:
            return await asyncio.shield(task)
        except ConnectionFailure:
            if self._task is task:
                self._task = None
            raise

    async def _run(self, database, seed) -> BootstrapReport:
        report = BootstrapReport()
        logger.info(f"Running {len(self.statements)} setup statement(s)")

        for statement in self.statements:
            try:
                await database.execute(statement)
                report.executed += 1
            except StatementFailure as e:
                logger.error(f"Setup statement failed: {e} | {' '.join(statement.split())[:100]}")
                report.failures.append((statement, e))

        if report.failures and self.strict:
            raise BootstrapError(report.failures)

        if seed is not None:
            try:
                await seed()
            except (StatementFailure, DecodeFailure) as e:
                logger.error(f"Seeding failed: {e}")
                report.failures.append(("seed", e))
                if self.strict:
                    raise BootstrapError(report.failures) from e

        self.report = report
        logger.info(
            f"Bootstrap complete: {report.executed} executed, {len(report.failures)} failed"
        )
        return report
