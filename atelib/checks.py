# SPDX-License-Identifier: ISC
#
# checks.py
# Predicates over OTG and DUT telemetry
#

"""
Predicates for `wait_for()`.

Every predicate does one read of the telemetry it needs, logs what it saw
and returns True or False. Read failures are not handled here; they
surface as `TelemetryReadError` and abort the poll. Bind the arguments
with `functools.partial`:

    expected = ExpectedState.new(lag={"lag1": ExpectedLagMetrics("up", 8)})
    check = partial(lag_as_expected, ate.telemetry, expected)
    assert wait_for(check, 0.5, 60), "lag1 is not up with 8 members"
"""

from atelib import otgutils
from atelib.compare import elements_present, state_cmp, unordered_equal
from atelib.topolog import logger


def _mismatch(kind, name, field, got, want):
    logger.debug("%s %s: %s is %s, expected %s", kind, name, field, got, want)
    return False


def _matches(kind, name, observed, expected):
    """
    Compare the non-None fields of the `expected` namedtuple with the
    `observed` dict. A missing object never matches.
    """
    if observed is None:
        logger.debug("%s %s: not found in telemetry", kind, name)
        return False
    ok = True
    for field, want in expected._asdict().items():
        if want is None:
            continue
        got = observed.get(field)
        if got != want:
            ok = _mismatch(kind, name, field, got, want)
    return ok


#
# OTG
#


def bgp4_session_as_expected(otg, expected):
    "BGPv4 peers have the expected state and route counts."
    metrics = otg.bgpv4_metrics(list(expected.bgp4))
    otgutils.log_bgpv4_metrics(metrics)
    ok = True
    for name, want in expected.bgp4.items():
        observed = metrics.get(name)
        if observed is None:
            ok = _mismatch("bgpv4 peer", name, "presence", None, "present")
            continue
        if observed["session_state"] != want.state:
            ok = _mismatch("bgpv4 peer", name, "state", observed["session_state"], want.state)
        if want.advertised is not None and observed["routes_advertised"] != want.advertised:
            ok = _mismatch(
                "bgpv4 peer", name, "advertised", observed["routes_advertised"], want.advertised
            )
        if want.received is not None and observed["routes_received"] != want.received:
            ok = _mismatch(
                "bgpv4 peer", name, "received", observed["routes_received"], want.received
            )
    return ok


def _all_bgp_up(kind, metrics, expected_map):
    ok = True
    for name, observed in metrics.items():
        if observed["session_state"] != "up":
            ok = _mismatch(kind, name, "state", observed["session_state"], "up")
        want = expected_map.get(name)
        if want is None:
            continue
        if want.advertised is not None and observed["routes_advertised"] != want.advertised:
            ok = _mismatch(kind, name, "advertised", observed["routes_advertised"], want.advertised)
        if want.received is not None and observed["routes_received"] != want.received:
            ok = _mismatch(kind, name, "received", observed["routes_received"], want.received)
    missing = set(expected_map) - set(metrics)
    for name in sorted(missing):
        ok = _mismatch(kind, name, "presence", None, "present")
    return ok


def all_bgp4_session_up(otg, expected):
    "Every BGPv4 peer is up, with the expected route counts where given."
    metrics = otg.bgpv4_metrics()
    otgutils.log_bgpv4_metrics(metrics)
    return _all_bgp_up("bgpv4 peer", metrics, expected.bgp4)


def all_isis_session_up(otg, expected):
    "ISIS routers report the expected session and database counts."
    metrics = otg.isis_metrics(list(expected.isis))
    otgutils.log_isis_metrics(metrics)
    ok = True
    for name, want in expected.isis.items():
        if not _matches("isis router", name, metrics.get(name), want):
            ok = False
    return ok


def lag_as_expected(otg, expected):
    "LAGs have the expected oper status and number of members up."
    metrics = otg.lag_metrics(list(expected.lag))
    otgutils.log_lag_metrics(metrics)
    ok = True
    for name, want in expected.lag.items():
        observed = metrics.get(name)
        if observed is None:
            ok = _mismatch("lag", name, "presence", None, "present")
            continue
        if observed["oper_status"] != want.status:
            ok = _mismatch("lag", name, "oper_status", observed["oper_status"], want.status)
        if observed["member_ports_up"] != want.member_ports_up:
            ok = _mismatch(
                "lag", name, "member_ports_up", observed["member_ports_up"], want.member_ports_up
            )
    return ok


def lacp_as_expected(otg, expected):
    "LAG member ports have the expected LACP state."
    metrics = otg.lacp_metrics()
    otgutils.log_lacp_metrics(metrics)
    ok = True
    for port, want in expected.lacp.items():
        observed = metrics.get(port)
        if observed is None:
            ok = _mismatch("lacp member", port, "presence", None, "present")
            continue
        if want.lag is not None and observed["lag_name"] != want.lag:
            ok = _mismatch("lacp member", port, "lag", observed["lag_name"], want.lag)
        for field in ("collecting", "distributing", "synchronization"):
            value = getattr(want, field)
            if value is not None and observed[field] != value:
                ok = _mismatch("lacp member", port, field, observed[field], value)
    return ok


def flow_metrics_ok(otg, expected):
    "Flows received the expected frames (and rates / tx where given)."
    metrics = otg.flow_metrics(list(expected.flow))
    otgutils.log_flow_metrics(metrics)
    ok = True
    for name, want in expected.flow.items():
        if not _matches("flow", name, metrics.get(name), want):
            ok = False
    return ok


def port_metrics_ok(otg, expected):
    """
    Ports received at least the expected frames and, where given,
    transmitted exactly the expected frames.
    """
    metrics = otg.port_metrics(list(expected.port))
    otgutils.log_port_metrics(metrics)
    ok = True
    for name, want in expected.port.items():
        observed = metrics.get(name)
        if observed is None:
            ok = _mismatch("port", name, "presence", None, "present")
            continue
        rx = observed["frames_rx"] or 0
        if rx < want.frames_rx:
            ok = _mismatch("port", name, "frames_rx", rx, ">= {}".format(want.frames_rx))
        if want.frames_tx is not None and observed["frames_tx"] != want.frames_tx:
            ok = _mismatch("port", name, "frames_tx", observed["frames_tx"], want.frames_tx)
    return ok


def configured_packets(config):
    "Total number of packets the fixed_packets flows of `config` send."
    total = 0
    for flow in config.flows:
        if flow.duration.choice == "fixed_packets":
            total += flow.duration.fixed_packets.packets
    return total


def port_and_flow_metrics_ok(otg, config):
    "All packets the flows of `config` send are received."
    expected = configured_packets(config)
    fmetrics = otg.flow_metrics()
    pmetrics = otg.port_metrics()
    otgutils.log_flow_metrics(fmetrics)
    otgutils.log_port_metrics(pmetrics)
    actual = sum(m["frames_rx"] or 0 for m in fmetrics.values())
    if actual != expected:
        return _mismatch("flows", "total", "frames_rx", actual, expected)
    return True


def aggregate_flow_metrics_as_expected(otg, config, expected_rx):
    """
    The flows of `config` together sent every configured packet and
    received `expected_rx` of them.
    """
    expected_tx = configured_packets(config)
    metrics = otg.flow_metrics([f.name for f in config.flows])
    total_tx = sum(m["frames_tx"] or 0 for m in metrics.values())
    total_rx = sum(m["frames_rx"] or 0 for m in metrics.values())
    logger.info(
        otgutils.format_table(
            "Flow Metrics",
            ["Name", "Frames Tx", "Frames Rx"],
            [("Aggregated Flow", total_tx, total_rx)],
            width=25,
        )
    )
    ok = True
    if total_tx != expected_tx:
        ok = _mismatch("flows", "total", "frames_tx", total_tx, expected_tx)
    if total_rx != expected_rx:
        ok = _mismatch("flows", "total", "frames_rx", total_rx, expected_rx)
    return ok


def flow_loss_ok(otg, names=None):
    "Every flow has transmitted and received everything it sent."
    metrics = otg.flow_metrics(names)
    otgutils.log_flow_metrics(metrics)
    ok = bool(metrics)
    for name, m in metrics.items():
        tx = m["frames_tx"] or 0
        rx = m["frames_rx"] or 0
        if tx == 0:
            ok = _mismatch("flow", name, "frames_tx", tx, "> 0")
        elif rx < tx:
            loss_pct = (tx - rx) * 100.0 / tx
            ok = _mismatch("flow", name, "loss %", "{:.2f}".format(loss_pct), 0)
    return ok


def arp_entries_ok(otg, ip_type, expected_macs):
    "The OTG resolved neighbors with every MAC of `expected_macs`."
    actual = otg.neighbor_macs(ip_type)
    logger.info("Expected MAC entries: %s", list(expected_macs))
    logger.info("OTG MAC entries: %s", actual)
    return elements_present(expected_macs, actual)


def bgp_prefix_count_as_expected(otg, expected_counts):
    "BGP peers learned the expected number of IPv4/IPv6 prefixes."
    prefixes = otg.bgp_prefixes(list(expected_counts))
    ok = True
    for peer, want in expected_counts.items():
        learned = prefixes.get(peer)
        if learned is None:
            ok = _mismatch("bgp peer", peer, "presence", None, "present")
            continue
        logger.info(
            "BGP peer %s: %d IPv4 and %d IPv6 prefixes",
            peer,
            len(learned["ipv4"]),
            len(learned["ipv6"]),
        )
        if len(learned["ipv4"]) != want.ipv4:
            ok = _mismatch("bgp peer", peer, "ipv4 prefixes", len(learned["ipv4"]), want.ipv4)
        if len(learned["ipv6"]) != want.ipv6:
            ok = _mismatch("bgp peer", peer, "ipv6 prefixes", len(learned["ipv6"]), want.ipv6)
    return ok


def _lsp_matches(lsp, want):
    return (
        lsp["lsp_id"] == want.lsp_id
        and lsp["pdu_type"] == want.pdu_type
        and lsp["is_type"] == want.is_type
        and unordered_equal(lsp["hostnames"], want.hostnames)
        and lsp["extended_is_reachability_count"] == want.extended_is_reachability_count
        and lsp["extended_ipv4_reachability_count"]
        == want.extended_ipv4_reachability_count
    )


def isis_lsps_as_expected(otg, expected_lsps):
    """
    Every ISIS router holds an LSP matching each of its expected LSPs.

    * `expected_lsps`: router name to a list of `ExpectedIsisLsp`
    """
    lsps = otg.isis_lsps(list(expected_lsps))
    otgutils.log_isis_lsps(lsps)
    ok = True
    for router, wanted in expected_lsps.items():
        have = lsps.get(router, [])
        for want in wanted:
            if not any(_lsp_matches(lsp, want) for lsp in have):
                ok = _mismatch("isis router", router, "lsp", "missing", want.lsp_id)
    return ok


def receiving_port(otg, names, frames):
    """
    Returns the first port of `names` that received at least `frames`
    frames, or None. Used to find which LAG member a hashed flow egresses.
    """
    metrics = otg.port_metrics(list(names))
    otgutils.log_port_metrics(metrics)
    for name in names:
        observed = metrics.get(name)
        if observed is not None and (observed["frames_rx"] or 0) >= frames:
            logger.info("port %s received %s frames", name, observed["frames_rx"])
            return name
    return None


#
# DUT
#


def interface_status_as_expected(dut, name, status):
    "DUT interface `name` has oper status `status`."
    got = dut.interface_oper_status(name)
    if got != status:
        return _mismatch("dut interface", name, "oper-status", got, status)
    return True


def bundled_ports_as_expected(dut, expected):
    """
    DUT port channels bundle exactly the expected members.

    * `expected`: port channel name to a list of member interfaces
    """
    ok = True
    for lag, members in expected.items():
        actual = dut.lacp_member_names(lag)
        if not unordered_equal(members, actual):
            ok = _mismatch("dut port channel", lag, "members", sorted(actual), sorted(members))
    return ok


def dut_lacp_members_as_expected(dut, expected):
    """
    DUT LACP members have the expected state.

    * `expected`: port channel name to a map of member interface to
      `ExpectedDutLacpMember`
    """
    ok = True
    for lag, members in expected.items():
        observed = dut.lacp_members(lag)
        otgutils.log_dut_lacp_members(lag, observed)
        for member, want in members.items():
            if not _matches("dut lacp member", member, observed.get(member), want):
                ok = False
    return ok


def static_neighbor_as_expected(dut, interface, address, mac, ip_type="IPv4"):
    """
    DUT has neighbor `address` on `interface` with link layer address
    `mac`; `ip_type` is "IPv4" or "IPv6".
    """
    if ip_type == "IPv4":
        got = dut.ipv4_neighbor_mac(interface, address)
    elif ip_type == "IPv6":
        got = dut.ipv6_neighbor_mac(interface, address)
    else:
        raise ValueError("unknown ip type '{}'".format(ip_type))
    if (got or "").lower() != (mac or "").lower():
        return _mismatch("dut neighbor", address, "link-layer-address", got, mac)
    return True


def dut_lacp_members_cmp(dut, lag, expected):
    """
    state_cmp() of the LACP members of DUT port channel `lag` against
    `expected`, a map of member interface to a dict of the state leaves
    to check. Returns None on match, the error report otherwise.
    """
    observed = dut.lacp_members(lag)
    otgutils.log_dut_lacp_members(lag, observed)
    return state_cmp(observed, expected)
