"""Tests for the diagnostic recorder."""

from issuance.journey.recorder import DiagnosticRecorder


def test_empty_recorder_has_no_last_call():
    recorder = DiagnosticRecorder()
    assert recorder.last is None
    assert recorder.history() == []


def test_record_keeps_request_and_response():
    recorder = DiagnosticRecorder()

    entry = recorder.record(method="POST", path="/quotes", status=201, request={"age": 35}, response={"id": "q-1"})

    assert recorder.last is entry
    assert entry.ok
    assert entry.request == {"age": 35}
    assert entry.response == {"id": "q-1"}


def test_error_and_transport_records_are_not_ok():
    recorder = DiagnosticRecorder()
    assert not recorder.record(method="GET", path="/products", status=401).ok
    assert not recorder.record(method="GET", path="/products", status=0).ok


def test_recorder_is_callable_as_observer():
    recorder = DiagnosticRecorder()

    recorder(method="GET", path="/policies?application_id=app-1", status=200, request=None, response={"items": []})

    assert recorder.last.path == "/policies?application_id=app-1"


def test_history_is_bounded_and_oldest_first():
    recorder = DiagnosticRecorder(history_size=3)
    for i in range(5):
        recorder.record(method="GET", path=f"/applications/{i}", status=200)

    assert [r.path for r in recorder.history()] == ["/applications/2", "/applications/3", "/applications/4"]
    assert recorder.last.path == "/applications/4"


def test_to_dict_is_json_friendly():
    recorder = DiagnosticRecorder()
    data = recorder.record(method="GET", path="/products", status=200, response=[]).to_dict()

    assert data["method"] == "GET"
    assert data["status"] == 200
    assert isinstance(data["recorded_at"], str)


def test_clear():
    recorder = DiagnosticRecorder()
    recorder.record(method="GET", path="/products", status=200)
    recorder.clear()
    assert recorder.last is None
