"""Already-processed request cache and the eligibility filter built on it."""

from __future__ import annotations

from typing import FrozenSet, Iterable, List, Set

from .model import RequestReference


class ProcessedCache:
    """Append-only set of requests known to have been dispatched successfully.

    A request that was routed or reclaimed can never reappear on-chain under the
    same output reference, so entries are never evicted.  The cache lives in
    memory for the lifetime of the session that owns it.
    """

    def __init__(self, references: Iterable[RequestReference] = ()) -> None:
        self._references: Set[RequestReference] = set(references)

    def add(self, reference: RequestReference) -> None:
        self._references.add(reference)

    def add_all(self, references: Iterable[RequestReference]) -> None:
        self._references.update(references)

    def snapshot(self) -> FrozenSet[RequestReference]:
        return frozenset(self._references)

    def __contains__(self, reference: object) -> bool:
        return reference in self._references

    def __len__(self) -> int:
        return len(self._references)


def filter_eligible(
    candidates: Iterable[RequestReference], cache: ProcessedCache
) -> List[RequestReference]:
    """Return the candidates that are not in ``cache``.

    Order is preserved and a reference reported twice by the same query is only
    kept once.
    """

    eligible: List[RequestReference] = []
    seen: Set[RequestReference] = set()
    for reference in candidates:
        if reference in cache or reference in seen:
            continue
        seen.add(reference)
        eligible.append(reference)
    return eligible
