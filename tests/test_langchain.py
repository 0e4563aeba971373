"""Tests for the LangChain middleware integration.

Message types come from the real ``langchain`` package; the model request
is a minimal stand-in exposing ``messages`` and ``override()``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any
from unittest.mock import MagicMock

import pytest
from langchain.messages import AIMessage, HumanMessage
from langchain_core.runnables.config import var_child_runnable_config

from quietcall.errors import CallCanceledError, DebouncerClosedError
from quietcall.integrations.langchain import (
    DebounceMiddleware,
    _coalesce_human_messages,
    _thread_id,
)


@dataclass
class _ModelRequest:
    messages: list[Any] = field(default_factory=list)
    thread: str = "default"

    def override(self, **kwargs: Any) -> _ModelRequest:
        return _ModelRequest(messages=kwargs.get("messages", self.messages), thread=self.thread)


@dataclass
class _ModelResponse:
    content: str = ""


class _AsyncHandler:
    """Records every request that reaches the model."""

    def __init__(self, name: str = "model") -> None:
        self.name = name
        self.requests: list[_ModelRequest] = []

    async def __call__(self, request: _ModelRequest) -> _ModelResponse:
        self.requests.append(request)
        return _ModelResponse(content=f"{self.name} reply to {request.messages[-1].content}")


def _request(*texts: str, thread: str = "default") -> _ModelRequest:
    return _ModelRequest(messages=[HumanMessage(content=t) for t in texts], thread=thread)


async def _in_thread(mw, thread_id, request, handler):
    var_child_runnable_config.set({"configurable": {"thread_id": thread_id}})
    return await mw.awrap_model_call(request, handler)


class TestCoalesceHumanMessages:
    def test_empty_list(self):
        assert _coalesce_human_messages([]) == []

    def test_single_human(self):
        result = _coalesce_human_messages([HumanMessage(content="hello")])
        assert len(result) == 1
        assert result[0].content == "hello"

    def test_consecutive_humans_merged(self):
        result = _coalesce_human_messages(
            [HumanMessage(content="hi"), HumanMessage(content="everything ok?")]
        )
        assert len(result) == 1
        assert result[0].content == "hi\neverything ok?"

    def test_non_human_passthrough(self):
        ai = AIMessage(content="I'm fine")
        result = _coalesce_human_messages(
            [HumanMessage(content="hello"), ai, HumanMessage(content="bye")]
        )
        assert len(result) == 3
        assert result[1] is ai
        assert result[2].content == "bye"


class TestThreadId:
    def test_outside_run_is_none(self):
        assert _thread_id(_request("hi")) is None

    async def test_reads_thread_id_of_current_run(self):
        async def key():
            var_child_runnable_config.set({"configurable": {"thread_id": "t-1"}})
            return _thread_id(_request("hi"))

        assert await asyncio.create_task(key()) == "t-1"

    async def test_run_without_thread_id(self):
        async def key():
            var_child_runnable_config.set({"configurable": {}})
            return _thread_id(_request("hi"))

        assert await asyncio.create_task(key()) is None


class TestDebounceMiddleware:
    def test_creation(self):
        mw = DebounceMiddleware(interval=1.0, max_wait=5.0)
        assert mw.config.interval == 1.0
        assert mw.config.max_wait == 5.0
        assert mw.config.trailing is True
        assert mw.config.condense_executions is True
        assert mw.active_sessions == 0
        assert mw.closed is False

    def test_wrap_model_call_coalesces(self):
        mw = DebounceMiddleware(interval=1.0, coalesce=True)
        request = _request("hi", "how are you?")
        handler = MagicMock(return_value=_ModelResponse(content="ok"))

        result = mw.wrap_model_call(request, handler)

        handler.assert_called_once()
        passed_request = handler.call_args[0][0]
        assert len(passed_request.messages) == 1
        assert passed_request.messages[0].content == "hi\nhow are you?"
        assert result.content == "ok"

    def test_wrap_model_call_no_coalesce(self):
        mw = DebounceMiddleware(interval=1.0, coalesce=False)
        request = _request("hi")
        handler = MagicMock(return_value=_ModelResponse(content="ok"))

        mw.wrap_model_call(request, handler)

        handler.assert_called_once_with(request)

    async def test_rapid_model_calls_share_one_response(self):
        mw = DebounceMiddleware(interval=0.05, max_wait=1.0)
        handler = _AsyncHandler()

        responses = await asyncio.gather(
            mw.awrap_model_call(_request("hi"), handler),
            mw.awrap_model_call(_request("hi", "everything ok?"), handler),
        )

        assert len(handler.requests) == 1
        assert handler.requests[0].messages[0].content == "hi\neverything ok?"
        assert responses[0] is responses[1]
        assert responses[0].content == "model reply to hi\neverything ok?"

    async def test_conversations_are_not_merged(self):
        mw = DebounceMiddleware(interval=0.05, max_wait=1.0)
        handler_a = _AsyncHandler("A")
        handler_b = _AsyncHandler("B")

        alice, bob = await asyncio.gather(
            _in_thread(mw, "alice", _request("alice secret"), handler_a),
            _in_thread(mw, "bob", _request("bob question"), handler_b),
        )

        assert alice.content == "A reply to alice secret"
        assert bob.content == "B reply to bob question"
        assert len(handler_a.requests) == 1
        assert len(handler_b.requests) == 1

    async def test_custom_session_key(self):
        mw = DebounceMiddleware(interval=0.05, session_key=lambda request: request.thread)
        handler = _AsyncHandler()

        first, second, third = await asyncio.gather(
            mw.awrap_model_call(_request("one", thread="x"), handler),
            mw.awrap_model_call(_request("two", thread="y"), handler),
            mw.awrap_model_call(_request("three", thread="x"), handler),
        )

        assert mw.active_sessions == 2
        assert first is third
        assert first.content == "model reply to three"
        assert second.content == "model reply to two"
        assert len(handler.requests) == 2

    async def test_idle_sessions_are_dropped(self):
        mw = DebounceMiddleware(interval=0.0, session_key=lambda request: request.thread)
        handler = _AsyncHandler()

        await mw.awrap_model_call(_request("one", thread="x"), handler)
        await asyncio.sleep(0.01)
        await mw.awrap_model_call(_request("two", thread="y"), handler)

        assert mw.active_sessions == 1

    async def test_sync_handler_inside_async_path(self):
        mw = DebounceMiddleware(interval=0.0, coalesce=False)
        handler = MagicMock(return_value=_ModelResponse(content="ok"))
        request = _request("hi")

        response = await mw.awrap_model_call(request, handler)
        assert response.content == "ok"
        handler.assert_called_once_with(request)

    async def test_close_cancels_deferred_calls(self):
        mw = DebounceMiddleware(interval=10.0, max_wait=None)
        handler = _AsyncHandler()
        pending = [
            asyncio.ensure_future(_in_thread(mw, thread, _request("x"), handler))
            for thread in ("alice", "bob")
        ]
        await asyncio.sleep(0)
        assert mw.active_sessions == 2

        await mw.close()
        assert mw.closed is True
        assert mw.active_sessions == 0
        for task in pending:
            with pytest.raises(CallCanceledError):
                await task
        assert handler.requests == []

    async def test_call_after_close_raises(self):
        mw = DebounceMiddleware(interval=0.0)
        await mw.close()
        with pytest.raises(DebouncerClosedError, match="is closed"):
            await mw.awrap_model_call(_request("hi"), _AsyncHandler())
