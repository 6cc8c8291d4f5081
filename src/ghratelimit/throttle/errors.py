"""Exceptions raised by the API rate-limit throttle."""

from __future__ import annotations


class RateLimitError(Exception):
    """Base class for throttle errors."""


class RateLimitFetchError(RateLimitError):
    """The quota snapshot could not be obtained (HTTP error, malformed payload).

    The checker treats this as "quota unknown" and proceeds without waiting.
    """


class RateLimitWaitInterrupted(RateLimitError, InterruptedError):
    """A throttle sleep was cancelled; the caller must abandon its API call."""
