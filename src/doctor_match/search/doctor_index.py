"""In-memory n-gram index over the doctor roster.

The index keeps, per doctor, the lower-cased searchable profile text and its
gram sets, plus an inverted index from gram to doctor ids used to pick
candidates without scoring the whole roster.

Rebuilds never mutate the live structures: a complete snapshot is built off
to the side and published with one reference assignment, so a reader holding
the previous snapshot keeps a consistent view.

Two inverted-index layouts are supported:
- ``isolated`` (default): one postings map per gram size
- ``merged``: the legacy layout where every size shares one map
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
import hashlib
import logging
from typing import Literal

from doctor_match.domain.model import Doctor
from doctor_match.search.ngrams import DEFAULT_GRAM_SIZES, generate_ngrams


logger = logging.getLogger(__name__)

IndexMode = Literal["isolated", "merged"]

# Postings key used for every gram when the index runs in merged mode
MERGED_KEY = 0


def build_searchable_text(doctor: Doctor) -> str:
    """Concatenate the profile fields that free-text search looks at."""
    address = doctor.address
    parts = [
        doctor.name,
        doctor.speciality,
        doctor.degree,
        doctor.experience,
        doctor.about,
        address.line1 if address else "",
        address.line2 if address else "",
    ]
    return " ".join(parts).lower()


@dataclass(frozen=True)
class DoctorIndexEntry:
    """Per-doctor snapshot stored in the index."""

    doctor: Doctor
    searchable_text: str
    gram_sets: Mapping[int, frozenset[str]]

    @property
    def doctor_id(self) -> str:
        return self.doctor.id

    def grams(self, n: int) -> frozenset[str]:
        return self.gram_sets.get(n, frozenset())


@dataclass(frozen=True)
class _IndexSnapshot:
    entries: dict[str, DoctorIndexEntry] = field(default_factory=dict)
    postings: dict[int, dict[str, set[str]]] = field(default_factory=dict)
    fingerprint: str = ""


def roster_fingerprint(doctors: Iterable[Doctor]) -> str:
    """Stable digest of a roster, used to detect whether a rebuild would change anything."""
    digest = hashlib.sha256()
    for doctor in doctors:
        digest.update(doctor.model_dump_json().encode("utf-8"))
        digest.update(b"\x00")
    return digest.hexdigest()


class DoctorIndex:
    """N-gram index of doctors with an inverted gram → doctor-id map."""

    def __init__(
        self,
        gram_sizes: Sequence[int] = DEFAULT_GRAM_SIZES,
        mode: IndexMode = "isolated",
    ) -> None:
        self.gram_sizes = tuple(gram_sizes)
        self.mode: IndexMode = mode
        self._snapshot = _IndexSnapshot()

    def __len__(self) -> int:
        return len(self._snapshot.entries)

    def __contains__(self, doctor_id: object) -> bool:
        return doctor_id in self._snapshot.entries

    def is_empty(self) -> bool:
        return not self._snapshot.entries

    @property
    def fingerprint(self) -> str:
        return self._snapshot.fingerprint

    def build(self, doctors: Iterable[Doctor]) -> None:
        """Wipe the index and rebuild it from ``doctors``.

        Building from an identical roster always yields an identical index.
        A doctor id seen twice keeps the last profile but its original
        roster position.
        """
        roster = list(doctors)
        entries: dict[str, DoctorIndexEntry] = {}
        ordered_grams: dict[str, dict[int, list[str]]] = {}
        postings: dict[int, dict[str, set[str]]] = {}

        for doctor in roster:
            searchable_text = build_searchable_text(doctor)
            gram_lists = {n: generate_ngrams(searchable_text, n) for n in self.gram_sizes}
            entry = DoctorIndexEntry(
                doctor=doctor,
                searchable_text=searchable_text,
                gram_sets={n: frozenset(grams) for n, grams in gram_lists.items()},
            )
            entries[doctor.id] = entry
            ordered_grams[doctor.id] = gram_lists

        for doctor_id in entries:
            for n, grams in ordered_grams[doctor_id].items():
                bucket = postings.setdefault(self._postings_key(n), {})
                for gram in grams:
                    bucket.setdefault(gram, set()).add(doctor_id)

        self._snapshot = _IndexSnapshot(
            entries=entries,
            postings=postings,
            fingerprint=roster_fingerprint(roster),
        )
        logger.debug(
            "Doctor index rebuilt: %d doctors, %d grams (%s mode)",
            len(entries),
            self.total_grams(),
            self.mode,
        )

    def clear(self) -> None:
        """Drop every entry; the next reader sees an empty index."""
        self._snapshot = _IndexSnapshot()

    def get(self, doctor_id: str) -> DoctorIndexEntry | None:
        return self._snapshot.entries.get(doctor_id)

    def entries(self) -> list[DoctorIndexEntry]:
        """Entries in roster order."""
        return list(self._snapshot.entries.values())

    def entries_with_gram(self, gram: str, n: int | None = None) -> list[DoctorIndexEntry]:
        """Entries whose text contains ``gram``, in roster order.

        ``n`` defaults to the gram's own length.
        """
        snapshot = self._snapshot
        size = len(gram) if n is None else n
        doctor_ids = snapshot.postings.get(self._postings_key(size), {}).get(gram)
        if not doctor_ids:
            return []
        return [entry for doctor_id, entry in snapshot.entries.items() if doctor_id in doctor_ids]

    def find_candidates(self, query_grams: Mapping[int, Sequence[str]]) -> list[DoctorIndexEntry]:
        """Entries sharing at least one gram with the query, in roster order."""
        snapshot = self._snapshot
        candidate_ids: set[str] = set()
        for n, grams in query_grams.items():
            bucket = snapshot.postings.get(self._postings_key(n), {})
            for gram in grams:
                doctor_ids = bucket.get(gram)
                if doctor_ids:
                    candidate_ids.update(doctor_ids)

        if not candidate_ids:
            return []
        return [entry for doctor_id, entry in snapshot.entries.items() if doctor_id in candidate_ids]

    def iter_postings(self) -> Iterator[tuple[str, set[str]]]:
        """Yield every (gram, doctor ids) pair across all postings maps."""
        for bucket in self._snapshot.postings.values():
            yield from bucket.items()

    def total_grams(self) -> int:
        return sum(len(bucket) for bucket in self._snapshot.postings.values())

    def _postings_key(self, n: int) -> int:
        return MERGED_KEY if self.mode == "merged" else n
