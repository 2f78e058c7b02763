"""Column-aligned table output for CLI listings."""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence, TextIO

COLUMN_PADDING = 4


class Printable(Protocol):
    def get_by_header(self, header: str) -> str: ...


class AccountRow:
    def __init__(self, address: str) -> None:
        self.address = address

    def get_by_header(self, header: str) -> str:
        if header.lower() in {"account", "address"}:
            return self.address
        return "<none>"


def print_table(stdout: TextIO, headers: Sequence[str], rows: Iterable[Printable]) -> None:
    table = [[header.upper() for header in headers]]
    table.extend([row.get_by_header(header) for header in headers] for row in rows)

    widths = [max(len(line[index]) for line in table) for index in range(len(headers))]
    for line in table:
        cells = [
            cell if index == len(line) - 1 else cell.ljust(widths[index] + COLUMN_PADDING)
            for index, cell in enumerate(line)
        ]
        print("".join(cells), file=stdout)
