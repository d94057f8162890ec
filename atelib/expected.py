# SPDX-License-Identifier: ISC
#
# expected.py
# Expected telemetry state for the polling predicates
#

"""
Immutable expected-state values.

A scenario builds one `ExpectedState` per step and hands it to the
predicates through `functools.partial`. The next step derives its own
state with `replace()`, so nothing from the previous step leaks into it.
"""

from collections import namedtuple
from types import MappingProxyType

IN_SYNC = "in_sync"
OUT_SYNC = "out_sync"

# frames_rx is a lower bound, frames_tx exact.
ExpectedPortMetrics = namedtuple(
    "ExpectedPortMetrics", ["frames_rx", "frames_tx"], defaults=[None]
)

ExpectedFlowMetrics = namedtuple(
    "ExpectedFlowMetrics",
    ["frames_rx", "frames_rx_rate", "frames_tx"],
    defaults=[None, None],
)

ExpectedBgpMetrics = namedtuple(
    "ExpectedBgpMetrics", ["state", "advertised", "received"], defaults=[None, None]
)

ExpectedIsisMetrics = namedtuple(
    "ExpectedIsisMetrics",
    [
        "l1_sessions_up",
        "l2_sessions_up",
        "l1_database_size",
        "l2_database_size",
        "l1_session_flap",
        "l2_session_flap",
    ],
    defaults=[None, None, None, None],
)

ExpectedLagMetrics = namedtuple("ExpectedLagMetrics", ["status", "member_ports_up"])

ExpectedLacpMetrics = namedtuple(
    "ExpectedLacpMetrics",
    ["collecting", "distributing", "synchronization", "lag"],
    defaults=[None, None],
)

# DUT side uses the OpenConfig identity names (IN_SYNC/OUT_SYNC).
ExpectedDutLacpMember = namedtuple(
    "ExpectedDutLacpMember", ["synchronization", "collecting", "distributing"]
)

ExpectedBgpPrefixCount = namedtuple("ExpectedBgpPrefixCount", ["ipv4", "ipv6"])

ExpectedIsisLsp = namedtuple(
    "ExpectedIsisLsp",
    [
        "lsp_id",
        "pdu_type",
        "is_type",
        "hostnames",
        "extended_is_reachability_count",
        "extended_ipv4_reachability_count",
    ],
)

_STATE_FIELDS = ["port", "flow", "bgp4", "isis", "lag", "lacp"]


def _frozen(mapping):
    if isinstance(mapping, MappingProxyType):
        return mapping
    return MappingProxyType(dict(mapping or {}))


class ExpectedState(namedtuple("ExpectedState", _STATE_FIELDS)):
    """
    Expected OTG state keyed by object name, one read-only map per kind of
    metric. Build it with `ExpectedState.new()`.
    """

    __slots__ = ()

    @classmethod
    def new(cls, **maps):
        unknown = set(maps) - set(_STATE_FIELDS)
        if unknown:
            raise TypeError("unknown expected state maps: {}".format(sorted(unknown)))
        return cls(*[_frozen(maps.get(f)) for f in _STATE_FIELDS])

    def replace(self, **maps):
        "Returns a new state with the given maps swapped in."
        unknown = set(maps) - set(_STATE_FIELDS)
        if unknown:
            raise TypeError("unknown expected state maps: {}".format(sorted(unknown)))
        return self._replace(**{k: _frozen(v) for k, v in maps.items()})


def lacp_members(up=(), down=(), lag=None):
    """
    OTG LACP expectations for LAG member ports: `up` members are in sync,
    collecting and distributing, `down` members are none of those.
    """
    members = {}
    for name in up:
        members[name] = ExpectedLacpMetrics(True, True, IN_SYNC, lag)
    for name in down:
        members[name] = ExpectedLacpMetrics(False, False, OUT_SYNC, lag)
    return MappingProxyType(members)


def dut_lacp_members(up=(), down=(), down_sync="OUT_SYNC"):
    """
    Same as lacp_members() for the DUT side of the bundle. Members out of
    the bundle are neither collecting nor distributing and report
    `down_sync`; some DUTs keep them IN_SYNC.
    """
    members = {}
    for name in up:
        members[name] = ExpectedDutLacpMember("IN_SYNC", True, True)
    for name in down:
        members[name] = ExpectedDutLacpMember(down_sync, False, False)
    return MappingProxyType(members)
