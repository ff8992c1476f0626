"""Exceptions raised by the planner."""

from __future__ import annotations


class EmptyQueueError(IndexError):
    """``pop``/``peek`` on an empty :class:`~prm_nav.planning.queue.PriorityQueue`."""


class SolveCancelled(Exception):
    """A solve observed its cancel flag and stopped without producing output."""


class SolveFailed(RuntimeError):
    """Unexpected fault inside a background solve.

    The original exception is attached as ``__cause__``.
    """


__all__ = ["EmptyQueueError", "SolveCancelled", "SolveFailed"]
