"""Tests for the import progress tracker."""

import threading
from unittest.mock import patch

from kopfolio.backup.status import ImportProgressTracker, ImportStatus, ImportStep


def test_initial_status_is_idle():
    status = ImportProgressTracker().snapshot()

    assert status.is_importing is False
    assert status.current_step == "idle"
    assert status.progress == 0
    assert status.error is None


def test_try_begin_is_exclusive():
    tracker = ImportProgressTracker()

    assert tracker.try_begin() is True
    tracker.advance(ImportStep.RESTORING)
    before = tracker.snapshot()

    assert tracker.try_begin() is False
    assert tracker.snapshot() == before


def test_try_begin_resets_previous_failure():
    tracker = ImportProgressTracker()
    tracker.try_begin()
    tracker.advance(ImportStep.RESETTING)
    tracker.fail("ToolInvocationError: psql exited with code 3")

    assert tracker.try_begin() is True

    status = tracker.snapshot()
    assert status.is_importing is True
    assert status.current_step == "preparing"
    assert status.progress == 0
    assert status.error is None


def test_progress_never_decreases():
    tracker = ImportProgressTracker()
    tracker.try_begin()

    tracker.advance(ImportStep.RESTORING)
    tracker.advance(ImportStep.EXTRACTING)

    status = tracker.snapshot()
    assert status.current_step == "extracting"
    assert status.progress == ImportStep.RESTORING.progress


def test_fail_keeps_progress_and_sets_error():
    tracker = ImportProgressTracker()
    tracker.try_begin()
    tracker.advance(ImportStep.VALIDATING)

    tracker.fail("FormatError: no dump")

    status = tracker.snapshot()
    assert status.is_importing is False
    assert status.current_step == "failed"
    assert status.progress == 25
    assert status.error == "FormatError: no dump"


def test_complete_reaches_100():
    tracker = ImportProgressTracker()
    tracker.try_begin()
    tracker.advance(ImportStep.CLEANUP)

    tracker.complete()

    status = tracker.snapshot()
    assert status.is_importing is False
    assert status.current_step == "completed"
    assert status.progress == 100
    assert status.error is None


def test_snapshot_is_a_copy():
    tracker = ImportProgressTracker()
    snapshot = tracker.snapshot()

    tracker.try_begin()

    assert snapshot.is_importing is False
    assert tracker.is_importing is True


def test_status_serializes_with_camel_case_keys():
    status = ImportStatus(is_importing=True, current_step="restoring", progress=55)

    data = status.model_dump(by_alias=True)

    assert data == {
        "isImporting": True,
        "currentStep": "restoring",
        "progress": 55,
        "error": None,
    }


def test_step_progress_is_monotonic_in_declaration_order():
    values = [step.progress for step in ImportStep if step.progress is not None]

    assert values == sorted(values)
    assert ImportStep.FAILED.progress is None


def test_concurrent_try_begin_admits_one_caller():
    tracker = ImportProgressTracker()
    barrier = threading.Barrier(8)
    results = []
    results_lock = threading.Lock()

    def contender():
        barrier.wait()
        won = tracker.try_begin()
        with results_lock:
            results.append(won)

    threads = [threading.Thread(target=contender) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1
    assert results.count(False) == 7


def test_advance_logs_effective_progress():
    tracker = ImportProgressTracker()
    tracker.try_begin()

    with patch("kopfolio.backup.status.logger") as logger:
        tracker.advance(ImportStep.RESTORING)
        tracker.advance(ImportStep.EXTRACTING)

    messages = [call.args[0] for call in logger.info.call_args_list]
    assert messages == [
        "Import step: restoring (55%)",
        "Import step: extracting (55%)",
    ]
