from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from savekeep_engine.clock import Clock


@dataclass(frozen=True)
class JournalEvent:
    """
    A single append-only journal record.

    Parameters
    ----------
    timestamp : datetime
        Event time (timezone-aware).
    event : str
        Stable event identifier (e.g., 'safeguard_created', 'extraction_started').
    data : Mapping[str, Any]
        Structured event payload. Must be JSON-serializable.
    """

    timestamp: datetime
    event: str
    data: Mapping[str, Any]


class RestoreJournal:
    """
    Append-only JSONL journal of restore transactions for one profile.

    Notes
    -----
    - Each call to `append()` writes one JSON object per line (JSONL).
    - Every record carries the transaction's archive name, so interleaved
      restores of one profile remain distinguishable.
    - The journal is the record to consult after a crash between the destructive
      and extraction phases: the last 'safeguard_created' event names the
      archive holding the pre-restore state.
    """

    def __init__(self, journal_path: Path, *, clock: Clock, archive_name: str) -> None:
        self._journal_path = journal_path
        self._clock = clock
        self._archive_name = archive_name

    @property
    def path(self) -> Path:
        """Return the on-disk path to the journal file."""
        return self._journal_path

    def append(self, event: str, data: Mapping[str, Any] | None = None) -> None:
        """
        Append a new event record.

        Parameters
        ----------
        event : str
            Stable event identifier.
        data : Mapping[str, Any] | None
            JSON-serializable event payload.

        Raises
        ------
        OSError
            If the journal cannot be written.
        TypeError
            If `data` contains non-JSON-serializable values.
        """
        record = JournalEvent(timestamp=self._clock.now(), event=event, data=data or {})
        line = json.dumps(
            {
                "ts": record.timestamp.isoformat(),
                "archive": self._archive_name,
                "event": record.event,
                "data": record.data,
            },
            ensure_ascii=False,
            sort_keys=True,
            separators=(",", ":"),
        )

        with self._journal_path.open("a", encoding="utf-8", newline="\n") as handle:
            handle.write(line + "\n")
            handle.flush()


def read_journal(journal_path: Path) -> list[dict[str, Any]]:
    """
    Read every record of a restore journal.

    Returns
    -------
    list[dict[str, Any]]
        Records in append order; empty if the journal does not exist.
    """
    try:
        text = journal_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    return [json.loads(line) for line in text.splitlines() if line.strip()]
