import asyncio
from typing import Any, Awaitable, Callable


async def wait_for_event_during(
    surface: Any,
    event: str,
    action: Callable[[], Awaitable[Any]],
    timeout: int,
) -> Any:
    """
    Wait for ``event`` on ``surface`` while running ``action`` that triggers it.

    The event wait is started (and given a chance to register its listener)
    before ``action`` runs, so an event fired as a side effect of a click cannot
    be missed. If ``action`` fails the pending wait is cancelled.

    Args:
        surface: Playwright page emitting the event.
        event: Event name, e.g. "popup" or "dialog".
        action: Zero-argument coroutine function, typically a click.
        timeout: Event wait timeout in milliseconds.

    Returns:
        The event payload (popup page, dialog, ...).

    Example:
        >>> popup = await wait_for_event_during(
        ...     page, "popup", lambda: page.click("a.status"), timeout=10000
        ... )
    """
    waiter = asyncio.ensure_future(surface.wait_for_event(event, timeout=timeout))
    # Let the waiter attach its listener before the action fires the event
    await asyncio.sleep(0)
    try:
        await action()
    except Exception:
        waiter.cancel()
        raise
    return await waiter
