import pytest

from gradedesk.client.buffer import GradeBuffer, GradeCommitter
from gradedesk.client.errors import NetworkError, NotFoundError, ValidationError
from gradedesk.client.outcome import RemoteStatus


@pytest.fixture()
def buffer():
    return GradeBuffer()


@pytest.fixture()
def committer(api, buffer):
    return GradeCommitter(api, buffer)


def test_over_max_grade_is_clamped_and_stays_local(backend, buffer, committer, snapshot):
    result = committer.commit(snapshot, 101, "150")

    assert result.grade == 100
    assert result.snapshot.find_row(101).grade == 100
    assert buffer.get(101) == 100
    assert result.applied_locally is True
    assert result.remote_outcome.status is RemoteStatus.NOT_ATTEMPTED
    assert backend.requests == []


def test_blank_input_clears_the_staged_grade(backend, buffer, committer, snapshot):
    snapshot = committer.commit(snapshot, 101, 60).snapshot
    result = committer.commit(snapshot, 101, "")

    assert result.grade is None
    assert result.snapshot.find_row(101).grade is None
    assert 101 in buffer
    assert buffer.pending() == []
    assert backend.requests == []


def test_returned_row_is_written_through_once_per_edit(backend, buffer, committer, snapshot):
    result = committer.commit(snapshot, 104, 90)

    assert result.remote_outcome.succeeded
    assert backend.calls == [("PATCH", "/submission/104/grade")]
    assert backend.row(104)["grade"] == 90
    assert 104 not in buffer

    committer.commit(result.snapshot, 104, 95)
    assert len(backend.requests) == 2


def test_failed_write_through_keeps_the_local_value(backend, committer, snapshot):
    backend.fail[("PATCH", "/submission/104/grade")] = 500

    result = committer.commit(snapshot, 104, 90)

    assert result.snapshot.find_row(104).grade == 90
    assert result.applied_locally is True
    assert result.remote_outcome.status is RemoteStatus.FAILED
    assert isinstance(result.remote_outcome.error, NetworkError)
    # not retried
    assert len(backend.requests) == 1


def test_unknown_submission_is_rejected(backend, committer, snapshot):
    with pytest.raises(NotFoundError):
        committer.commit(snapshot, 999, 10)
    assert backend.requests == []


def test_non_numeric_input_is_rejected(buffer, committer, snapshot):
    with pytest.raises(ValidationError):
        committer.commit(snapshot, 101, "A+")
    assert buffer.is_empty()


@pytest.mark.parametrize("raw", [-1000, -1, 0, 37, 99.6, 100, 101, 10**6, "55", ""])
def test_stored_grade_is_always_in_range(committer, snapshot, raw):
    grade = committer.commit(snapshot, 102, raw).snapshot.find_row(102).grade
    assert grade is None or 0 <= grade <= snapshot.max_points


def test_buffer_pending_keeps_entry_order_and_skips_cleared(buffer):
    buffer.stage(3, 30)
    buffer.stage(1, 10)
    buffer.stage(2, None)
    buffer.stage(3, 33)

    assert buffer.pending() == [(1, 10), (3, 33)]
    assert buffer.pending([3]) == [(3, 33)]
    assert len(buffer) == 3


def test_buffer_discard_except(buffer):
    buffer.stage(1, 10)
    buffer.stage(2, 20)
    buffer.stage(3, 30)

    assert buffer.discard_except({2}) == [1, 3]
    assert buffer.staged_map() == {2: 20}

    buffer.clear()
    assert buffer.is_empty()
