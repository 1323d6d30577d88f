"""Lookup of radio ids against a DMR id database file."""

from __future__ import annotations

from pathlib import Path


def default_ids_path() -> Path:
    """Location of the id database when none is given."""
    return Path.home() / ".config" / "trunkctl" / "DMRIds.dat"


class DMRIdLookup:
    """Maps DMR ids to "id - callsign - name" descriptions.

    Lines of the database are comma or tab separated; lines with fewer than
    three fields are ignored. A missing file is created holding a single space.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path) if path is not None else default_ids_path()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.write_bytes(b" ")
        self._ids: dict[int, str] = {}
        with self.path.open("rb") as handle:
            for raw in handle:
                fields = raw.decode("utf-8", errors="replace").replace("\t", ",").split(",")
                if len(fields) < 3:
                    continue
                try:
                    dmr_id = int(fields[0].strip())
                except ValueError:
                    continue
                if dmr_id < 0:
                    continue
                self._ids[dmr_id] = " - ".join(fields[:3])

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, dmr_id: object) -> bool:
        return dmr_id in self._ids

    def lookup(self, dmr_id: int) -> str:
        """Describe an id, or return it as text when it is unknown."""
        if dmr_id == 0:
            return "0"
        value = self._ids.get(dmr_id)
        if value is None:
            return str(dmr_id)
        return value.replace(",", " - ").replace("\n", "")

    def get_callsign(self, dmr_id: int) -> str:
        """Callsign of an id, or the id as text when it is unknown."""
        if dmr_id == 0:
            return "NO CALL"
        value = self._ids.get(dmr_id)
        if value is None:
            return str(dmr_id)
        fields = value.split(" - ")
        return fields[1] if len(fields) > 1 else str(dmr_id)