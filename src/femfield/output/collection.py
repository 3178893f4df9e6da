"""ParaView collection (.pvd) manifest of exported time steps."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union
from xml.sax.saxutils import quoteattr


@dataclass(frozen=True)
class CollectionEntry:
    file: str
    time: float


class CollectionWriter:
    """Append-only buffer of (artifact, scaled time) written at termination.

    Appends are serialized with a lock; entries must come in non-decreasing
    time order.
    """

    def __init__(self, filename: Union[str, Path]):
        self.filename = Path(filename)
        self._entries: List[CollectionEntry] = []
        self._lock = threading.Lock()

    @property
    def entries(self) -> List[CollectionEntry]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, file: Union[str, Path], time: float) -> None:
        entry = CollectionEntry(str(file), float(time))
        with self._lock:
            if self._entries and entry.time < self._entries[-1].time:
                raise ValueError(
                    f"Collection time {entry.time} precedes last entry time {self._entries[-1].time}"
                )
            self._entries.append(entry)

    def write(self) -> Path:
        """Write the manifest from the buffered entries (also when empty)."""
        entries = self.entries
        self.filename.parent.mkdir(parents=True, exist_ok=True)
        with open(self.filename, "w") as f:
            f.write('<?xml version="1.0"?>\n')
            f.write('<VTKFile type="Collection" version="0.1">\n')
            f.write("  <Collection>\n")
            for e in entries:
                f.write(f'    <DataSet timestep="{e.time!r}" group="" part="0" file={quoteattr(e.file)}/>\n')
            f.write("  </Collection>\n")
            f.write("</VTKFile>\n")
        return self.filename
