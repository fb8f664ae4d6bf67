"""Relay mapping: original destination to forwarding target, loaded from CSV."""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from types import MappingProxyType

logger = logging.getLogger(__name__)


class RelayMappingError(Exception):
    """Raised when the relay table cannot be read or parsed."""


class RelayMapping(Mapping[str, str]):
    """Immutable relay table, safe to share across concurrent tasks."""

    def __init__(self, relays: Mapping[str, str] | None = None) -> None:
        self._relays: Mapping[str, str] = MappingProxyType(dict(relays or {}))

    def __getitem__(self, original: str) -> str:
        return self._relays[original]

    def __iter__(self) -> Iterator[str]:
        return iter(self._relays)

    def __len__(self) -> int:
        return len(self._relays)

    def __repr__(self) -> str:
        return f"RelayMapping({dict(self._relays)!r})"

    def lookup(self, destination: str) -> str | None:
        """Return the forwarding target for ``destination`` or None."""
        return self._relays.get(destination)

    @classmethod
    def from_rows(cls, rows: Iterable[list[str]]) -> RelayMapping:
        """Build a mapping from CSV rows, skipping malformed ones."""
        relays: dict[str, str] = {}
        # Blank lines are not records and do not advance the row number.
        records = (row for row in rows if row)
        for i, row in enumerate(records):
            if len(row) != 2:
                logger.warning(
                    "Skipping malformed relay row %d: expected 2 columns, got %d",
                    i, len(row),
                )
                continue

            original, target = row[0].strip(), row[1].strip()
            if not original:
                logger.warning(
                    "Skipping malformed relay row %d: original destination is invalid", i,
                )
                continue
            if not target:
                logger.warning(
                    "Skipping malformed relay row %d: target destination is invalid", i,
                )
                continue

            if original in relays:
                logger.warning(
                    "Relay row %d overrides target for %s (%s -> %s)",
                    i, original, relays[original], target,
                )
            relays[original] = target
        return cls(relays)


def load_relays_from_file(relays_path: str) -> RelayMapping:
    """Load the relay table from a two-column CSV file.

    Individual bad rows are skipped. A missing file or a file that is not
    valid CSV raises RelayMappingError.
    """
    path = Path(relays_path)
    try:
        with path.open(newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f, strict=True))
    except OSError as exc:
        raise RelayMappingError(
            f"Cannot read relay table {relays_path!r}, maybe create it? ({exc})",
        ) from exc
    except (csv.Error, UnicodeDecodeError) as exc:
        raise RelayMappingError(
            f"Malformed relay table {relays_path!r}, refusing to start ({exc})",
        ) from exc

    mapping = RelayMapping.from_rows(rows)
    logger.info("Loaded %d relay(s) from %s", len(mapping), relays_path)
    return mapping
