# SPDX-License-Identifier: ISC
#
# poller.py
# Eventual-state polling for DUT and OTG telemetry
#

"""
Bounded polling of a predicate until it holds.

Protocols such as LACP, BGP and ISIS converge asynchronously and give no
completion signal, so every check in the scenarios is expressed as a
predicate handed to `wait_for()`:

    outcome = wait_for(partial(lag_as_expected, otg, expected), 0.5, 60)
    assert outcome, "LAG did not converge"

The predicate is always evaluated once before the timeout is looked at.
Anything the predicate raises (in particular `TelemetryReadError`) is not
caught here and aborts the poll.
"""

import contextlib
import enum
import functools
import time
from collections import namedtuple

from atelib.topolog import logger

DEFAULT_INTERVAL = 0.5
DEFAULT_TIMEOUT = 120


class Outcome(enum.Enum):
    "Result of one poll operation."

    CONVERGED = "converged"
    TIMED_OUT = "timed out"

    def __bool__(self):
        return self is Outcome.CONVERGED


def _func_name(func):
    if isinstance(func, functools.partial):
        func = func.func
    return getattr(func, "__name__", repr(func))


def wait_for(predicate, interval=DEFAULT_INTERVAL, timeout=DEFAULT_TIMEOUT, condition=None):
    """
    Evaluate `predicate` every `interval` seconds until it returns a true
    value or `timeout` seconds have gone by since the first evaluation.

    * `predicate`: zero-argument callable
    * `interval`: seconds to sleep between evaluations
    * `timeout`: overall budget in seconds
    * `condition`: description used in log messages, defaults to the
      predicate's name

    Returns `Outcome.CONVERGED` or `Outcome.TIMED_OUT`. When `interval` is
    larger than `timeout` a second evaluation can never fit in the budget,
    so the poll ends after the first one.
    """
    if interval < 0 or timeout < 0:
        raise ValueError(
            "interval and timeout must not be negative (interval={}, timeout={})".format(
                interval, timeout
            )
        )

    what = condition or _func_name(predicate)
    logger.debug(
        "waiting for '%s' (interval %s secs, timeout %s secs)", what, interval, timeout
    )

    start_time = time.monotonic()
    tries = 0
    while True:
        tries += 1
        if predicate():
            logger.debug(
                "'%s' converged after %.2f seconds (%d tries)",
                what,
                time.monotonic() - start_time,
                tries,
            )
            return Outcome.CONVERGED

        elapsed = time.monotonic() - start_time
        if elapsed >= timeout or interval > timeout:
            logger.error(
                "'%s' timed out after %.2f seconds (%d tries)", what, elapsed, tries
            )
            return Outcome.TIMED_OUT

        time.sleep(interval)


class PollPolicy(namedtuple("PollPolicy", ["interval", "timeout"])):
    "Interval/timeout pair shared by a group of polls."

    __slots__ = ()

    def __new__(cls, interval=DEFAULT_INTERVAL, timeout=DEFAULT_TIMEOUT):
        if interval < 0 or timeout < 0:
            raise ValueError(
                "interval and timeout must not be negative (interval={}, timeout={})".format(
                    interval, timeout
                )
            )
        return super().__new__(cls, interval, timeout)

    def wait_for(self, predicate, condition=None):
        return wait_for(predicate, self.interval, self.timeout, condition=condition)

    def watch(self, read, predicate, condition=None):
        return watch(read, predicate, self.interval, self.timeout, condition=condition)


DEFAULT_POLICY = PollPolicy()


def watch(read, predicate, interval=DEFAULT_INTERVAL, timeout=DEFAULT_TIMEOUT, condition=None):
    """
    Read a value with `read()` until `predicate(value)` holds.

    Returns `(value, ok)` where `value` is the last value read, so a failing
    caller can report what it actually observed.
    """
    last = []

    def _check():
        value = read()
        last[:] = [value]
        return predicate(value)

    outcome = wait_for(
        _check, interval, timeout, condition=condition or _func_name(read)
    )
    return last[0], bool(outcome)


@contextlib.contextmanager
def timer(what):
    "Log how long the enclosed block took."
    start_time = time.monotonic()
    try:
        yield
    finally:
        logger.debug("%s took %.3f seconds", what, time.monotonic() - start_time)
