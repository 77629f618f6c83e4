"""Output formats for the objects of a store."""

from collections.abc import Generator, Iterable
import sys
from typing import TextIO

import yaml

from cluster_converge.manifest import BaseObject

PADDING = 4

SUMMARY_COLUMNS = ["KIND", "NAMESPACE", "NAME", "GENERATION"]


def _summary_row(obj: BaseObject) -> list[str]:
    generation = obj.metadata.generation
    return [
        str(obj.kind),
        obj.namespace or "",
        obj.name,
        "" if generation is None else str(generation),
    ]


def format_columns(rows: list[list[str]]) -> Generator[str, None, None]:
    """Yield the rows padded so every column lines up."""
    widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
    for row in rows:
        yield "".join(
            value.ljust(width + PADDING) for value, width in zip(row, widths)
        ).rstrip()


class SummaryFormatter:
    """Prints one line per object with its identity and generation."""

    def format(self, objects: Iterable[BaseObject]) -> Generator[str, None, None]:
        """Format the objects as a table."""
        rows = [_summary_row(obj) for obj in objects]
        if not rows:
            return
        yield from format_columns([SUMMARY_COLUMNS, *rows])

    def print(self, objects: Iterable[BaseObject], file: TextIO = sys.stdout) -> None:
        """Output the table."""
        for line in self.format(objects):
            print(line, file=file)


class YamlFormatter:
    """Prints the full documents of the objects as a yaml stream."""

    def format(self, objects: Iterable[BaseObject]) -> str:
        """Return the documents of the objects."""
        return yaml.safe_dump_all(
            [obj.document() for obj in objects], sort_keys=False, explicit_start=True
        )

    def print(self, objects: Iterable[BaseObject], file: TextIO = sys.stdout) -> None:
        """Output the documents."""
        print(self.format(objects), end="", file=file)
