from typing import List, Sequence

from tabulate import tabulate


class Table:
    """
    A grid of string cells rendered with every column padded to its widest cell.

    Used to print automata in the same notation the parser reads. Widths are
    display widths, so a symbol written with combining marks takes as many
    columns as it shows.
    """

    def __init__(self):
        self.rows: List[List[str]] = []

    def push_row(self, row: Sequence[str]):
        """Append a row of cells."""
        self.rows.append(list(row))

    def to_string(self) -> str:
        """
        Render the table.

        Columns are separated by two spaces and trailing padding is dropped.
        Cells are never read as numbers, so a state named ``0`` stays left aligned.

        Returns:
            str: The rows joined by newlines.
        """
        if not self.rows:
            return ""
        return tabulate(self.rows, tablefmt="plain", disable_numparse=True, stralign="left")

    def __str__(self):
        return self.to_string()
