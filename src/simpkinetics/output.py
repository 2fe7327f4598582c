"""Output of chemical quantities after every committed integration step."""

from __future__ import annotations

import logging
import sys
from typing import IO, TextIO

from simpkinetics.options import OutputOptions
from simpkinetics.quantity import ChemicalQuantity
from simpkinetics.reactions import ReactionSystem
from simpkinetics.state import ChemicalState
from simpkinetics.system import ChemicalSystem

logger = logging.getLogger(__name__)

COLUMN_WIDTH = 20


class ChemicalOutput:
    """Tabulates the configured quantities to the terminal and/or a data file.

    Every row is also kept in :attr:`records` as a mapping from quantity
    expression to value, so runs can be persisted afterwards.
    """

    def __init__(
        self,
        system: ChemicalSystem,
        reactions: ReactionSystem | None = None,
        options: OutputOptions | None = None,
        stream: TextIO | None = None,
    ):
        self.quantity = ChemicalQuantity(system, reactions)
        self.options = options or OutputOptions()
        self.stream = stream or sys.stdout
        self.records: list[dict[str, float]] = []
        self._datafile: IO[str] | None = None
        for expression in self.options.quantities:
            self.quantity.check(expression)

    @property
    def active(self) -> bool:
        return self.options.active

    @property
    def header(self) -> list[str]:
        return list(self.options.header or self.options.quantities)

    def _write_row(self, words: list[str]) -> None:
        line = "".join(f"{word:<{COLUMN_WIDTH}}" for word in words).rstrip()
        if self._datafile is not None:
            self._datafile.write(line + "\n")
        if self.options.terminal:
            print(line, file=self.stream)

    def open(self) -> None:
        """Start a new table: clear the records and write the header."""
        self.close()
        self.records = []
        if self.options.file:
            self._datafile = open(self.options.file, "w")
            logger.info("Writing kinetic path output to %s", self.options.file)
        self._write_row(self.header)

    def update(self, state: ChemicalState, t: float) -> dict[str, float]:
        self.quantity.update(state, t)
        record = {expression: self.quantity.value(expression) for expression in self.options.quantities}
        self.records.append(record)
        self._write_row([f"{value:.10g}" for value in record.values()])
        return record

    def close(self) -> None:
        if self._datafile is not None:
            self._datafile.close()
            self._datafile = None

    def __enter__(self) -> ChemicalOutput:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
