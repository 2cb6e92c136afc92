"""Repository behaviour over a RecordingSession (no database involved)."""

import pytest

from repowrap.core.constants import Operation
from repowrap.database import BackendHandle, RecordingSession, Row, Rows
from repowrap.repositories import SessionRepository, new_repository

from entities import Widget


@pytest.fixture
def repo(recording_db):
    return new_repository(Widget, recording_db)


class TestCreate:

    def test_create_records_call_and_succeeds(self, repo, recording_db, ctx):
        widget = Widget(name="Test Name")

        repo.create(ctx, widget)

        recording_db.recorder.with_context.assert_called_once_with(ctx)
        recording_db.recorder.create.assert_called_once_with(widget)
        assert recording_db.get_backend().error is None

    def test_create_raises_programmed_error_unchanged(self, repo, recording_db, ctx):
        fake_error = RuntimeError("create error")
        recording_db.fail(Operation.CREATE, fake_error)

        with pytest.raises(RuntimeError) as excinfo:
            repo.create(ctx, Widget(name="Test Name"))

        assert excinfo.value is fake_error
        recording_db.recorder.create.assert_called_once()
        recording_db.recorder.with_context.assert_called_once_with(ctx)

    def test_none_context_becomes_background(self, repo, recording_db):
        repo.create(None, Widget(name="x"))

        (passed_ctx,) = recording_db.recorder.with_context.call_args.args
        assert passed_ctx is not None
        assert passed_ctx.err() is None


class TestFind:

    def test_find_forwards_conditions_and_returns_empty_list(self, repo, recording_db, ctx):
        results = repo.find(ctx, {"name": "Test Name"}, 3)

        assert results == []
        rows, conditions = recording_db.recorder.find.call_args.args
        assert isinstance(rows, Rows)
        assert rows.model is Widget
        assert conditions == ({"name": "Test Name"}, 3)

    def test_find_returns_rows_filled_by_recorder(self, repo, recording_db, ctx):
        stored = [Widget(id=1, name="a"), Widget(id=2, name="b")]
        recording_db.recorder.find.side_effect = lambda rows, conditions: rows.extend(stored)

        results = repo.find(ctx)

        assert results == stored
        assert type(results) is list

    def test_find_raises_programmed_error(self, repo, recording_db, ctx):
        fake_error = RuntimeError("find error")
        recording_db.fail(Operation.FIND, fake_error)

        with pytest.raises(RuntimeError) as excinfo:
            repo.find(ctx, {"id": -1})

        assert excinfo.value is fake_error


class TestFirst:

    def test_first_returns_value_filled_by_recorder(self, repo, recording_db, ctx):
        stored = Widget(id=1, name="Test Name")

        def fill(row, conditions):
            row.value = stored

        recording_db.recorder.first.side_effect = fill

        result = repo.first(ctx, {"name": "Test Name"})

        assert result is stored
        row, conditions = recording_db.recorder.first.call_args.args
        assert isinstance(row, Row)
        assert row.model is Widget
        assert conditions == ({"name": "Test Name"},)

    def test_first_raises_programmed_error(self, repo, recording_db, ctx):
        fake_error = RuntimeError("first error")
        recording_db.fail(Operation.FIRST, fake_error)

        with pytest.raises(RuntimeError) as excinfo:
            repo.first(ctx, {"id": -1})

        assert excinfo.value is fake_error


class TestSaveAndDelete:

    def test_save_records_value(self, repo, recording_db, ctx):
        widget = Widget(id=1, name="Updated Name")

        repo.save(ctx, widget)

        recording_db.recorder.save.assert_called_once_with(widget)

    def test_save_uses_handle_returned_by_recorder(self, repo, recording_db, ctx):
        fake_error = RuntimeError("save error")
        recording_db.recorder.save.return_value = BackendHandle(error=fake_error)

        with pytest.raises(RuntimeError) as excinfo:
            repo.save(ctx, Widget(id=1, name="Updated Name"))

        assert excinfo.value is fake_error

    def test_delete_records_value_without_conditions(self, repo, recording_db, ctx):
        widget = Widget(id=1)

        repo.delete(ctx, widget)

        recording_db.recorder.delete.assert_called_once_with(widget, ())

    def test_delete_raises_programmed_error(self, repo, recording_db, ctx):
        fake_error = RuntimeError("delete error")
        recording_db.fail(Operation.DELETE, fake_error)

        with pytest.raises(RuntimeError) as excinfo:
            repo.delete(ctx, Widget(id=1))

        assert excinfo.value is fake_error


class TestRecordingSession:

    def test_calls_chain_on_the_same_wrapper(self, recording_db, ctx):
        widget = Widget(name="x")

        result = recording_db.with_context(ctx).create(widget)

        assert result is recording_db
        assert result.get_backend().error is None

    def test_error_slot_persists_until_reset(self, recording_db, ctx):
        repo = SessionRepository(Widget, recording_db)
        recording_db.fail(Operation.CREATE, RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            repo.create(ctx, Widget(name="x"))
        with pytest.raises(RuntimeError):
            repo.find(ctx)

        recording_db.reset()

        assert repo.find(ctx) == []
        recording_db.recorder.find.assert_called_once()

    def test_fail_accepts_operation_name(self, recording_db):
        recording_db.fail("save", ValueError("bad"))

        recording_db.save(Widget(name="x"))

        assert isinstance(recording_db.get_backend().error, ValueError)
