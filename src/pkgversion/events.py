"""Lifecycle events emitted while waiting on a package version create request."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import Union

from pydantic import BaseModel, Field

from .models import PackageVersionCreateRequestResult


class BaseEvent(BaseModel):
    """Base class for all lifecycle events."""

    request: PackageVersionCreateRequestResult | None = Field(
        ..., description="Create request snapshot the event refers to"
    )


class EnqueuedEvent(BaseEvent):
    """The create request is waiting in the queue."""

    type: str = Field(default="enqueued", description="Event type")
    remaining_wait_time: float = Field(..., description="Seconds left in the wait budget")


class InProgressEvent(BaseEvent):
    """The service is building the package version."""

    type: str = Field(default="in-progress", description="Event type")
    remaining_wait_time: float = Field(..., description="Seconds left in the wait budget")


class SuccessEvent(BaseEvent):
    """The package version was created."""

    type: str = Field(default="success", description="Event type")


class ErrorEvent(BaseEvent):
    """The create request finished with errors."""

    type: str = Field(default="error", description="Event type")

    @property
    def errors(self) -> list[str]:
        return self.request.error if self.request else []


class TimedOutEvent(BaseEvent):
    """Polling gave up before the request reached a final status."""

    type: str = Field(default="timed-out", description="Event type")


LifecycleEvent = Union[EnqueuedEvent, InProgressEvent, SuccessEvent, ErrorEvent, TimedOutEvent]

# Caller-supplied handler; may be a plain function or a coroutine function.
EventSink = Callable[[LifecycleEvent], Union[Awaitable[None], None]]


async def emit(sink: EventSink | None, event: LifecycleEvent) -> None:
    """Deliver an event to the sink, awaiting it when it is asynchronous."""
    if sink is None:
        return
    result = sink(event)
    if inspect.isawaitable(result):
        await result
