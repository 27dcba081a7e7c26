"""Test doubles for provider streams."""

from __future__ import annotations


class FakeEvents:
    """Stand-in for a provider ``AsyncStream``.

    Yields *items* in order, then raises *error* if one is given.  Counts
    ``close()`` calls so tests can assert the upstream was released once.
    """

    def __init__(self, items, error: Exception | None = None):
        self.items = list(items)
        self.error = error
        self.close_calls = 0

    async def __aiter__(self):
        for item in self.items:
            yield item
        if self.error is not None:
            raise self.error

    async def close(self) -> None:
        self.close_calls += 1


def passthrough(event):
    """``to_text`` for fake streams whose events are already text."""
    return event
