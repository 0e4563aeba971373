"""LangChain AgentMiddleware integration for the quietcall library.

Provides :class:`DebounceMiddleware` — a LangChain ``AgentMiddleware``
that debounces model calls: rapid successive model invocations of one
conversation are merged into one call whose response is shared by every
merged caller.

Example::

    from langchain.agents import create_agent
    from quietcall.integrations.langchain import DebounceMiddleware

    middleware = DebounceMiddleware(interval=2.0, max_wait=10.0)

    agent = create_agent(
        model="gpt-4.1",
        tools=[...],
        middleware=[middleware],
    )
    await agent.ainvoke(inputs, {"configurable": {"thread_id": "user-42"}})
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any

from quietcall.config import DebounceConfig
from quietcall.core import DebouncedFunction
from quietcall.errors import DebouncerClosedError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Hashable

    from langchain.agents.middleware import ModelRequest, ModelResponse

logger = logging.getLogger(__name__)


def _coalesce_human_messages(messages: list[Any]) -> list[Any]:
    """Merge consecutive human messages into a single message.

    Takes a list of LangChain message objects. Adjacent ``HumanMessage``
    instances are combined into one by joining their text content with
    newlines. Non-human messages are passed through untouched.

    Returns:
        A new message list with consecutive human messages merged.
    """
    from langchain.messages import HumanMessage

    if not messages:
        return messages

    result: list[Any] = []
    pending_human: list[str] = []

    for msg in messages:
        if isinstance(msg, HumanMessage):
            content = msg.content if isinstance(msg.content, str) else str(msg.content)
            pending_human.append(content)
        else:
            if pending_human:
                result.append(HumanMessage(content="\n".join(pending_human)))
                pending_human.clear()
            result.append(msg)

    if pending_human:
        result.append(HumanMessage(content="\n".join(pending_human)))

    return result


def _thread_id(request: ModelRequest) -> Hashable:
    """Default conversation key: the ``thread_id`` of the current LangGraph run."""
    from langgraph.config import get_config

    try:
        config = get_config()
    except RuntimeError:
        return None
    return (config.get("configurable") or {}).get("thread_id")


class DebounceMiddleware:
    """LangChain ``AgentMiddleware`` that debounces model calls per conversation.

    ``awrap_model_call`` hands every model request to the condensing
    scheduler of its conversation.  Requests of one conversation arriving
    within *interval* of each other collapse into a single model invocation
    with the most recent request, and every caller receives that
    invocation's response.  Requests of different conversations never merge.

    Conversations are told apart by *session_key*.  The default key is the
    ``thread_id`` of the LangGraph run the request belongs to; requests made
    outside a run, or in a run without a ``thread_id``, share one session.

    Args:
        interval: Quiet period in seconds before the model is called.
        max_wait: Maximum time in seconds a model call can be deferred.
            ``None`` disables the cap.
        leading: Also call the model on the first request of a burst.
        coalesce: Whether to merge consecutive human messages into one
            before the request reaches the model.
        session_key: Maps a model request to its conversation key.
    """

    def __init__(
        self,
        interval: float = 2.0,
        max_wait: float | None = 10.0,
        *,
        leading: bool = False,
        coalesce: bool = True,
        session_key: Callable[[ModelRequest], Hashable] | None = None,
    ) -> None:
        self._coalesce = coalesce
        self._session_key = session_key or _thread_id
        self._config = DebounceConfig(
            interval=interval,
            leading=leading,
            trailing=True,
            max_wait=max_wait,
            condense_executions=True,
        )
        self._sessions: dict[Hashable, DebouncedFunction] = {}
        self._closed = False

    @property
    def config(self) -> DebounceConfig:
        """Configuration shared by every conversation's scheduler."""
        return self._config

    @property
    def active_sessions(self) -> int:
        """Number of conversations with a live scheduler."""
        return len(self._sessions)

    @property
    def closed(self) -> bool:
        return self._closed

    def session(self, key: Hashable) -> DebouncedFunction:
        """Return the debounced model call of conversation *key*."""
        debounced = self._sessions.get(key)
        if debounced is None:
            self._prune()
            debounced = DebouncedFunction(self._call_model, self._config)
            self._sessions[key] = debounced
            logger.debug("Opened debounce session %r", key)
        return debounced

    def _prune(self) -> None:
        # a scheduler with an empty queue carries no timing state
        idle = [
            key
            for key, debounced in self._sessions.items()
            if not debounced.scheduler.queue and not debounced.running
        ]
        for key in idle:
            del self._sessions[key]
        if idle:
            logger.debug("Dropped %d idle debounce session(s)", len(idle))

    def _prepare(self, request: ModelRequest) -> ModelRequest:
        if not self._coalesce:
            return request
        return request.override(messages=_coalesce_human_messages(list(request.messages)))

    async def _call_model(
        self,
        request: ModelRequest,
        handler: Callable[[ModelRequest], Awaitable[ModelResponse] | ModelResponse],
    ) -> ModelResponse:
        logger.debug("Forwarding debounced model request with %d message(s)", len(request.messages))
        response = handler(self._prepare(request))
        if inspect.isawaitable(response):
            response = await response
        return response

    def wrap_model_call(
        self,
        request: ModelRequest,
        handler: Callable[[ModelRequest], ModelResponse],
    ) -> ModelResponse:
        """Synchronous agents cannot wait on the scheduler: only coalesce."""
        return handler(self._prepare(request))

    async def awrap_model_call(
        self,
        request: ModelRequest,
        handler: Callable[[ModelRequest], Awaitable[ModelResponse]],
    ) -> ModelResponse:
        """Route the model call through its conversation's debounce scheduler."""
        if self._closed:
            raise DebouncerClosedError("DebounceMiddleware is closed")
        return await self.session(self._session_key(request))(request, handler)

    async def close(self) -> None:
        """Cancel deferred model calls and wait for in-flight ones, in every session."""
        self._closed = True
        sessions = list(self._sessions.values())
        self._sessions.clear()
        await asyncio.gather(*(debounced.aclose() for debounced in sessions))
