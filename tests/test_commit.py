"""Tests for the apply-all claimed-set fold, independent of any store."""

import itertools
import threading

import pytest

from smart_collections.commit import (
    ALL_PHOTOS_ASSIGNED,
    BatchState,
    apply_in_order,
    apply_step,
    as_request,
    available_assets,
)
from smart_collections.exceptions import InvalidRequestError
from smart_collections.models import ActionResult, ApplyRequest, ApplyResult, ErrorKind, Suggestion


class RecordingApply:
    """An apply-one stand-in that records what it was asked to commit."""

    def __init__(self, failing_names=()):
        self.calls = []
        self.failing_names = set(failing_names)
        self._ids = itertools.count(1)

    def __call__(self, request: ApplyRequest) -> ActionResult:
        self.calls.append((request.name, list(request.asset_ids)))
        if request.name in self.failing_names:
            return ActionResult.fail(ErrorKind.CREATE_FAILED, "Failed to create collection")
        return ActionResult.ok(ApplyResult(collection_id=f"col-{next(self._ids)}", name=request.name,
                                           photo_count=len(request.asset_ids)))


class TestAvailableAssets:
    """Tests for available_assets function."""

    def test_removes_claimed_and_keeps_order(self):
        assert available_assets(['c', 'a', 'b'], frozenset({'a'})) == ['c', 'b']

    def test_collapses_repeats(self):
        assert available_assets(['a', 'b', 'a'], frozenset()) == ['a', 'b']


class TestAsRequest:
    """Tests for turning batch entries into requests."""

    def test_accepts_analysis_suggestion(self):
        suggestion = Suggestion(type='date', name='January 15, 2024', description='Photos taken on January 15, 2024',
                                asset_ids=['a', 'b'], photo_count=2)
        request = as_request(suggestion)
        assert (request.name, request.asset_ids, request.description) == (
            'January 15, 2024', ['a', 'b'], 'Photos taken on January 15, 2024')

    def test_accepts_camel_case_mapping(self):
        request = as_request({'name': 'A', 'assetIds': ('a', 'b')})
        assert request.asset_ids == ['a', 'b']

    @pytest.mark.parametrize("entry", [
        None,
        42,
        'A',
        {'name': 7, 'asset_ids': ['a']},
        {'name': 'A', 'asset_ids': 'abc'},
        {'name': 'A', 'asset_ids': 5},
        {'name': 'A', 'asset_ids': [['a']]},
    ])
    def test_rejects_unusable_entries(self, entry):
        with pytest.raises(InvalidRequestError):
            as_request(entry)


class TestApplyStep:
    """Tests for a single reducer step."""

    def test_success_extends_claimed_set(self):
        step = apply_step(RecordingApply())
        state = step(BatchState(), ApplyRequest(name='A', asset_ids=['1', '2']))
        assert state.claimed == frozenset({'1', '2'})
        assert state.results[0].success
        assert state.results[0].collection_id == 'col-1'

    def test_failure_leaves_claimed_set_untouched(self):
        step = apply_step(RecordingApply(failing_names={'A'}))
        state = step(BatchState(claimed=frozenset({'9'})), ApplyRequest(name='A', asset_ids=['1']))
        assert state.claimed == frozenset({'9'})
        assert not state.results[0].success
        assert state.results[0].error == "Failed to create collection"

    def test_fully_claimed_suggestion_is_not_applied(self):
        apply_one = RecordingApply()
        state = apply_step(apply_one)(BatchState(claimed=frozenset({'1', '2'})),
                                      ApplyRequest(name='A', asset_ids=['2', '1']))
        assert apply_one.calls == []
        assert state.results[0].success is False
        assert state.results[0].error == ALL_PHOTOS_ASSIGNED


class TestApplyInOrder:
    """Tests for apply_in_order function."""

    def test_later_suggestions_only_get_unclaimed_assets(self):
        apply_one = RecordingApply()
        result = apply_in_order([
            ApplyRequest(name='A', asset_ids=['1', '2', '3']),
            ApplyRequest(name='B', asset_ids=['3', '4']),
            ApplyRequest(name='C', asset_ids=['1', '4']),
        ], apply_one)

        assert apply_one.calls == [('A', ['1', '2', '3']), ('B', ['4'])]
        assert [r.success for r in result.results] == [True, True, False]
        assert result.results[2].error == ALL_PHOTOS_ASSIGNED
        assert result.success_count == 2
        assert result.total_count == 3
        assert result.cancelled is False

    def test_order_decides_who_gets_shared_asset(self):
        a = ApplyRequest(name='A', asset_ids=['1', 'shared'])
        b = ApplyRequest(name='B', asset_ids=['shared', '2'])

        forward = RecordingApply()
        apply_in_order([a, b], forward)
        assert forward.calls == [('A', ['1', 'shared']), ('B', ['2'])]

        backward = RecordingApply()
        apply_in_order([b, a], backward)
        assert backward.calls == [('B', ['shared', '2']), ('A', ['1'])]

    def test_failed_suggestion_does_not_claim_its_assets(self):
        apply_one = RecordingApply(failing_names={'A'})
        result = apply_in_order([
            ApplyRequest(name='A', asset_ids=['1', '2']),
            ApplyRequest(name='B', asset_ids=['1', '2']),
        ], apply_one)
        assert apply_one.calls == [('A', ['1', '2']), ('B', ['1', '2'])]
        assert [r.success for r in result.results] == [False, True]
        assert result.success_count == 1

    def test_no_asset_is_committed_twice(self):
        apply_one = RecordingApply()
        requests = [ApplyRequest(name=f"S{i}", asset_ids=[str(j) for j in range(i, i + 5)]) for i in range(6)]
        apply_in_order(requests, apply_one)
        committed = [asset for _, ids in apply_one.calls for asset in ids]
        assert len(committed) == len(set(committed))
        assert set(committed) == {str(j) for j in range(10)}

    def test_empty_batch(self):
        result = apply_in_order([], RecordingApply())
        assert result.results == []
        assert result.total_count == 0
        assert result.success_count == 0

    def test_cancellation_stops_before_next_suggestion(self):
        cancel = threading.Event()
        inner = RecordingApply()

        def apply_then_cancel(request):
            outcome = inner(request)
            cancel.set()
            return outcome

        result = apply_in_order([
            ApplyRequest(name='A', asset_ids=['1']),
            ApplyRequest(name='B', asset_ids=['2']),
        ], apply_then_cancel, cancel_event=cancel)

        assert inner.calls == [('A', ['1'])]
        assert len(result.results) == 1
        assert result.total_count == 2
        assert result.cancelled is True

    def test_unusable_entry_is_recorded_and_batch_continues(self):
        apply_one = RecordingApply()
        result = apply_in_order([
            {'name': 'Good', 'asset_ids': ['1']},
            None,
            {'name': 'Bad ids', 'asset_ids': 5},
            {'name': 'Later', 'asset_ids': ['1', '2']},
        ], apply_one)

        assert apply_one.calls == [('Good', ['1']), ('Later', ['2'])]
        assert [(r.name, r.success) for r in result.results] == [
            ('Good', True), ('', False), ('Bad ids', False), ('Later', True),
        ]
        assert result.results[1].error_kind is ErrorKind.INVALID_REQUEST
        assert result.results[2].error_kind is ErrorKind.INVALID_REQUEST
        assert result.success_count == 2
        assert result.total_count == 4
        assert result.cancelled is False

    def test_failed_item_keeps_error_kind(self):
        result = apply_in_order([ApplyRequest(name='A', asset_ids=['1'])], RecordingApply(failing_names={'A'}))
        item = result.results[0]
        assert item.error_kind is ErrorKind.CREATE_FAILED
        assert item.to_dict()['error_kind'] == 'CreateFailed'

    def test_entry_without_assets_goes_to_apply_one(self):
        apply_one = RecordingApply()
        apply_in_order([{'name': 'Empty', 'asset_ids': []}], apply_one)
        assert apply_one.calls == [('Empty', [])]
