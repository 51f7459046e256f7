from __future__ import annotations

"""
Timed input injection.

Inputs are either bare strings, sent after the current default delay, or
`InputEvent`s carrying their own delay. An explicit delay also becomes the
default for every bare string that follows it:

    ["a", InputEvent("b", delay=0.5), "c"]   # waits 0.1, 0.5, 0.5

Each write is drained before the next delay starts, so inputs can never be
delivered out of order or concurrently.
"""

import asyncio
import logging
from dataclasses import dataclass
from functools import reduce
from typing import Any, Awaitable, Callable, Iterable, Mapping, Protocol, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InputEvent:
    payload: str
    delay: float | None = None


InputItem = Union[str, InputEvent, Mapping[str, Any]]


class InputStream(Protocol):
    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...

    def close(self) -> None: ...

    async def wait_closed(self) -> None: ...


def check_delay(delay: Any) -> float:
    if isinstance(delay, bool) or not isinstance(delay, (int, float)):
        raise TypeError(f"input delay must be a number of seconds, got {delay!r}")
    if delay < 0:
        raise ValueError(f"input delay must not be negative, got {delay}")
    return float(delay)


def coerce_input(item: InputItem) -> InputEvent:
    if isinstance(item, InputEvent):
        if not isinstance(item.payload, str):
            raise TypeError(f"input payload must be a string, got {item.payload!r}")
        if item.delay is not None:
            check_delay(item.delay)
        return item
    if isinstance(item, str):
        return InputEvent(item)
    if isinstance(item, Mapping):
        payload = item.get("payload", item.get("input"))
        if not isinstance(payload, str):
            raise TypeError(f"input mapping needs a string 'payload', got {dict(item)!r}")
        delay = item.get("delay", item.get("delay_before_send"))
        return InputEvent(payload, None if delay is None else check_delay(delay))
    raise TypeError(f"unsupported input {item!r}; expected str, InputEvent or mapping")


def schedule(inputs: Iterable[InputItem], default_delay: float) -> list[tuple[float, str]]:
    """Resolve every input to a `(delay, payload)` pair, in send order."""

    def step(acc: tuple[float, list[tuple[float, str]]], item: InputItem):
        current_default, planned = acc
        event = coerce_input(item)
        delay = current_default if event.delay is None else event.delay
        return delay, planned + [(delay, event.payload)]

    _, planned = reduce(step, inputs, (check_delay(default_delay), []))
    return planned


async def close_input(stdin: InputStream) -> None:
    try:
        stdin.close()
        await stdin.wait_closed()
    except (BrokenPipeError, ConnectionResetError):
        logger.debug("stdin already closed by the child process")


async def send_inputs(
    stdin: InputStream,
    inputs: Iterable[InputItem],
    default_delay: float,
    *,
    on_send: Callable[[str], None] | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> int:
    """Write each input after its delay, then close stdin.

    stdin is closed even when `inputs` is empty so a child reading until EOF
    always sees it. Returns the number of inputs actually written.
    """
    planned = schedule(inputs, default_delay)
    sent = 0
    try:
        for delay, payload in planned:
            await sleep(delay)
            stdin.write(payload.encode("utf-8"))
            await stdin.drain()
            sent += 1
            if on_send is not None:
                on_send(payload)
    except (BrokenPipeError, ConnectionResetError):
        logger.debug("child stopped reading after %d of %d inputs", sent, len(planned))
    finally:
        await close_input(stdin)
    return sent
