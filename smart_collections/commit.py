# smart_collections/commit.py
"""
The sequential claimed-set fold behind "apply all".

Suggestions are applied strictly in the order given. Each step removes the assets
already claimed by earlier successful suggestions before committing, so no asset
can end up in two collections created by the same batch. The fold knows nothing
about the store: it is handed an `apply_one` callable and returns the final
accumulator, which makes it testable in isolation.

Batch entries may be ApplyRequests, Suggestions straight from an analysis, or
plain mappings. Each entry is converted inside its own step, so one unusable
entry is recorded as an InvalidRequest item and the rest of the batch still runs.
"""
from __future__ import annotations
from dataclasses import dataclass
from functools import reduce
from itertools import takewhile
from typing import Any, Callable, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import threading
import logging

from .exceptions import InvalidRequestError
from .models import (
    ActionResult, ApplyRequest, ApplyResult, AssetId, BatchItemResult, BatchResult, ErrorKind, Suggestion,
)

logger = logging.getLogger(__name__)

ALL_PHOTOS_ASSIGNED = "All photos already assigned"

ApplyOne = Callable[[ApplyRequest], ActionResult]
RequestLike = Union[ApplyRequest, Suggestion, Mapping[str, Any]]


def as_request(entry: Any) -> ApplyRequest:
    """
    Converts one batch entry into an ApplyRequest.

    Raises:
        InvalidRequestError: If the entry is not a request, a suggestion or a mapping,
            or its asset ids are not a list of ids.
    """
    if isinstance(entry, ApplyRequest):
        return entry
    if isinstance(entry, Suggestion):
        return ApplyRequest.from_suggestion(entry)
    if not isinstance(entry, Mapping):
        raise InvalidRequestError(f"Unsupported suggestion entry of type {type(entry).__name__}.")
    name = entry.get('name')
    if name is not None and not isinstance(name, str):
        raise InvalidRequestError("Collection name must be a string.")
    asset_ids = entry.get('asset_ids', entry.get('assetIds')) or []
    if isinstance(asset_ids, (str, bytes)) or not isinstance(asset_ids, Iterable):
        raise InvalidRequestError(f"Asset ids of '{name}' must be a list.")
    asset_ids = list(asset_ids)
    if not all(isinstance(asset_id, str) for asset_id in asset_ids):
        raise InvalidRequestError(f"Asset ids of '{name}' must be strings.")
    return ApplyRequest.from_dict({**entry, 'asset_ids': asset_ids})


def _entry_name(entry: Any) -> str:
    name = entry.get('name') if isinstance(entry, Mapping) else getattr(entry, 'name', None)
    return name if isinstance(name, str) else ''


@dataclass(frozen=True)
class BatchState:
    """Accumulator of the apply-all fold."""
    claimed: FrozenSet[AssetId] = frozenset()
    results: Tuple[BatchItemResult, ...] = ()

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)


def available_assets(asset_ids: Iterable[AssetId], claimed: FrozenSet[AssetId]) -> List[AssetId]:
    """`asset_ids` minus `claimed`, input order kept and repeats dropped."""
    return [asset_id for asset_id in dict.fromkeys(asset_ids) if asset_id not in claimed]


def apply_step(apply_one: ApplyOne) -> Callable[[BatchState, Any], BatchState]:
    """Builds the reducer for one entry of the batch."""

    def step(state: BatchState, entry: Any) -> BatchState:
        try:
            request = as_request(entry)
        except InvalidRequestError as e:
            logger.warning(f"Rejecting batch entry {len(state.results) + 1}: {e}")
            item = BatchItemResult(name=_entry_name(entry), success=False, error=str(e),
                                   error_kind=ErrorKind.INVALID_REQUEST)
            return BatchState(state.claimed, state.results + (item,))

        available = available_assets(request.asset_ids, state.claimed)
        if request.asset_ids and not available:
            logger.info(f"Skipping '{request.name}': every photo was claimed earlier in this batch")
            item = BatchItemResult(name=request.name, success=False, error=ALL_PHOTOS_ASSIGNED)
            return BatchState(state.claimed, state.results + (item,))

        outcome = apply_one(ApplyRequest(name=request.name, asset_ids=available, description=request.description))
        if outcome.success:
            applied: ApplyResult = outcome.data
            item = BatchItemResult(name=request.name, success=True,
                                   collection_id=applied.collection_id, photo_count=applied.photo_count)
            return BatchState(state.claimed | frozenset(available), state.results + (item,))

        partial = outcome.data if isinstance(outcome.data, ApplyResult) else None
        item = BatchItemResult(name=request.name, success=False, error=outcome.error,
                               collection_id=partial.collection_id if partial else None,
                               error_kind=outcome.error_kind)
        return BatchState(state.claimed, state.results + (item,))

    return step


def apply_in_order(requests: Sequence[Any], apply_one: ApplyOne,
                   cancel_event: Optional[threading.Event] = None) -> BatchResult:
    """
    Folds `apply_one` over the requests in submission order. When `cancel_event`
    is set, the fold stops before the next request; requests already applied stay
    applied.
    """
    pending = requests
    if cancel_event is not None:
        pending = takewhile(lambda _: not cancel_event.is_set(), requests)

    final = reduce(apply_step(apply_one), pending, BatchState())
    cancelled = len(final.results) < len(requests)
    if cancelled:
        logger.warning(f"Batch cancelled after {len(final.results)} of {len(requests)} suggestion(s)")

    return BatchResult(
        results=list(final.results),
        success_count=final.success_count,
        total_count=len(requests),
        cancelled=cancelled,
    )
