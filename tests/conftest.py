import os
from typing import Any

import pytest

from kaleido.kaleido_parser import Parser
from kaleido.kaleido_precedence import PrecedenceTable

# Start coverage in subprocesses and skip the collector teardown crash in act/docker
if os.getenv("COVERAGE_PROCESS_START"):
    import coverage

    coverage.process_startup()

    import coverage.collector

    def safe_stop(self: Any) -> None:
        if self in getattr(self, "_collectors", []):
            self._collectors.remove(self)

    coverage.collector.Collector.stop = safe_stop


@pytest.fixture  # type: ignore[misc]
def table() -> PrecedenceTable:
    return PrecedenceTable.from_defaults()


@pytest.fixture  # type: ignore[misc]
def make_parser(table: PrecedenceTable) -> Any:
    def factory(source: str) -> Parser:
        return Parser.from_source(source, table)

    return factory
