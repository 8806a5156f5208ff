import time
from datetime import timedelta
from threading import Timer

import pytest

from conftest import BlockingMicrosoftClient, mi_id
from fix_datasource_azure.context import ReadContext
from fix_datasource_azure.errors import ReadTimeoutError, ReadCancelledError, FetchError
from fix_datasource_azure.resource.base import DataSourceState
from fix_datasource_azure.resource.sql_managed_instance import SqlManagedInstanceDataSource


def test_default_timeout() -> None:
    ctx = ReadContext.with_timeout()
    assert ctx.timeout == 300
    assert 299 < ctx.remaining() <= 300
    assert not ctx.expired
    assert not ctx.cancelled


def test_run_returns_result() -> None:
    ctx = ReadContext.with_timeout(timedelta(seconds=5))
    assert ctx.run("id", lambda a, b: a + b, 1, b=2) == 3


def test_run_propagates_errors() -> None:
    def fail() -> None:
        raise KeyError("boom")

    with pytest.raises(KeyError):
        ReadContext.with_timeout(timedelta(seconds=5)).run("id", fail)


def test_run_times_out(blocking_client: BlockingMicrosoftClient) -> None:
    ctx = ReadContext.with_timeout(timedelta(milliseconds=200))
    start = time.monotonic()
    with pytest.raises(ReadTimeoutError) as ex:
        ctx.run("some-id", blocking_client.get, None)
    assert time.monotonic() - start < 5
    assert "some-id" in str(ex.value)
    assert ctx.expired
    assert isinstance(ex.value, FetchError)


def test_run_is_cancelled(blocking_client: BlockingMicrosoftClient) -> None:
    ctx = ReadContext.with_timeout(timedelta(seconds=30))
    Timer(0.1, ctx.cancel).start()
    start = time.monotonic()
    with pytest.raises(ReadCancelledError):
        ctx.run("some-id", blocking_client.get, None)
    assert time.monotonic() - start < 5
    assert ctx.cancelled


def test_cancelled_context_does_not_call() -> None:
    ctx = ReadContext.with_timeout()
    ctx.cancel()
    calls = []
    with pytest.raises(ReadCancelledError):
        ctx.run("id", calls.append, 1)
    assert calls == []


def test_child_context() -> None:
    parent = ReadContext.with_timeout(timedelta(seconds=1))
    child = ReadContext.with_timeout(timedelta(minutes=5), parent=parent)
    # never outlives the parent
    assert child.deadline <= parent.deadline
    assert child.timeout == 1
    parent.cancel()
    assert child.cancelled


def test_read_times_out(blocking_client: BlockingMicrosoftClient) -> None:
    state = DataSourceState(id=mi_id("mi1"))
    ctx = ReadContext.with_timeout(timedelta(milliseconds=200))
    with pytest.raises(ReadTimeoutError) as ex:
        SqlManagedInstanceDataSource().read(blocking_client, state, ctx)
    assert mi_id("mi1") in str(ex.value)
    assert blocking_client.started.is_set()
    assert state.id == mi_id("mi1")
    assert state.attributes == {}
