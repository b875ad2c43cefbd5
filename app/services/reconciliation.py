"""Merge optimistic (in-flight) file records with the authoritative live list"""
from typing import AbstractSet, Iterable, List, Optional, Sequence

from app.schemas.file import FileRecord


def reconcile(
    optimistic: Sequence[FileRecord],
    authoritative: Sequence[FileRecord],
    hidden: AbstractSet[str] = frozenset(),
    analyzing: AbstractSet[str] = frozenset(),
) -> List[FileRecord]:
    """
    Build the display list: optimistic entries first, then authoritative ones,
    keeping only the first occurrence of each id.

    Whichever copy comes first is shown whole; fields are never merged.
    Ids in ``hidden`` (deletions in flight) are left out, and ids in
    ``analyzing`` are flagged as being analyzed.
    """
    seen = set()
    merged = []
    for record in [*optimistic, *authoritative]:
        if record.id in seen or record.id in hidden:
            continue
        seen.add(record.id)
        if record.id in analyzing and not record.is_analyzing:
            record = record.model_copy(update={"is_analyzing": True})
        merged.append(record)
    return merged


def filter_records(records: Iterable[FileRecord], query: Optional[str]) -> List[FileRecord]:
    """Case-insensitive search over file name and AI summary"""
    if not query:
        return list(records)
    needle = query.lower()
    return [
        r for r in records
        if needle in r.name.lower() or (r.ai_summary and needle in r.ai_summary.lower())
    ]


class LiveFileView:
    """Latest snapshot of each stream, re-reconciled on every render"""

    def __init__(
        self,
        optimistic: Optional[Sequence[FileRecord]] = None,
        authoritative: Optional[Sequence[FileRecord]] = None,
    ):
        self.optimistic: List[FileRecord] = list(optimistic or [])
        self.authoritative: List[FileRecord] = list(authoritative or [])
        self.hidden: frozenset = frozenset()
        self.analyzing: frozenset = frozenset()

    def replace_optimistic(self, records: Sequence[FileRecord], hidden=(), analyzing=()):
        self.optimistic = list(records)
        self.hidden = frozenset(hidden)
        self.analyzing = frozenset(analyzing)

    def replace_authoritative(self, records: Sequence[FileRecord]):
        self.authoritative = list(records)

    def render(self, query: Optional[str] = None) -> List[FileRecord]:
        merged = reconcile(self.optimistic, self.authoritative, self.hidden, self.analyzing)
        return filter_records(merged, query)
