# SPDX-License-Identifier: ISC
#
# telemetry.py
# Telemetry accessors for the OTG and the DUT
#

"""
Telemetry accessors.

Each accessor performs one bounded read and returns plain dicts and lists,
so predicates never deal with snappi objects or gNMI notifications. A read
that fails raises `TelemetryReadError`; it is never reported as "the
condition does not hold yet".
"""

import json

from atelib.poller import timer
from atelib.topolog import logger


class TelemetryReadError(Exception):
    "A telemetry read from the OTG or the DUT failed."

    def __init__(self, source, what, error=None):
        self.source = source
        self.what = what
        self.error = error
        msg = "{}: failed to read {}".format(source, what)
        if error is not None:
            msg += ": {}".format(error)
        super().__init__(msg)


def _fields(item, names):
    return {name: getattr(item, name, None) for name in names}


PORT_FIELDS = [
    "frames_tx",
    "frames_rx",
    "bytes_tx",
    "bytes_rx",
    "frames_tx_rate",
    "frames_rx_rate",
    "link",
]
FLOW_FIELDS = ["frames_tx", "frames_rx", "frames_tx_rate", "frames_rx_rate", "loss"]
LAG_FIELDS = [
    "oper_status",
    "member_ports_up",
    "frames_tx",
    "frames_rx",
    "bytes_tx",
    "bytes_rx",
]
LACP_FIELDS = [
    "lag_name",
    "synchronization",
    "collecting",
    "distributing",
    "aggregatable",
    "activity",
    "timeout",
    "system_id",
    "partner_id",
    "lacp_packets_rx",
    "lacp_packets_tx",
]
BGP_FIELDS = [
    "session_state",
    "session_flap_count",
    "routes_advertised",
    "routes_received",
    "route_withdraws_sent",
    "route_withdraws_received",
]
ISIS_FIELDS = [
    "l1_sessions_up",
    "l1_session_flap",
    "l1_database_size",
    "l2_sessions_up",
    "l2_session_flap",
    "l2_database_size",
]


class OtgTelemetry(object):
    """
    Reads metrics and states from an OTG through a snappi api object.

    `names` arguments restrict the query; None or an empty list asks for
    every object of that kind.
    """

    source = "otg"

    def __init__(self, api):
        self.api = api

    def _query(self, what, func):
        with timer("{} read of {}".format(self.source, what)):
            try:
                return func()
            except Exception as error:
                raise TelemetryReadError(self.source, what, error) from error

    def _metrics(self, choice, names_attr, names, response_attr):
        def _get():
            req = self.api.metrics_request()
            setattr(getattr(req, choice), names_attr, list(names or []))
            return list(getattr(self.api.get_metrics(req), response_attr))

        return self._query("{} metrics".format(choice), _get)

    def _states(self, choice, names_attr, names, response_attr):
        def _get():
            req = self.api.states_request()
            setattr(getattr(req, choice), names_attr, list(names or []))
            return list(getattr(self.api.get_states(req), response_attr))

        return self._query("{} states".format(choice), _get)

    def port_metrics(self, names=None):
        items = self._metrics("port", "port_names", names, "port_metrics")
        return {m.name: _fields(m, PORT_FIELDS) for m in items}

    def flow_metrics(self, names=None):
        items = self._metrics("flow", "flow_names", names, "flow_metrics")
        return {m.name: _fields(m, FLOW_FIELDS) for m in items}

    def lag_metrics(self, names=None):
        items = self._metrics("lag", "lag_names", names, "lag_metrics")
        return {m.name: _fields(m, LAG_FIELDS) for m in items}

    def lacp_metrics(self, lag_names=None):
        "LACP member metrics keyed by LAG member port name."
        items = self._metrics("lacp", "lag_names", lag_names, "lacp_metrics")
        return {m.lag_member_port_name: _fields(m, LACP_FIELDS) for m in items}

    def bgpv4_metrics(self, names=None):
        items = self._metrics("bgpv4", "peer_names", names, "bgpv4_metrics")
        return {m.name: _fields(m, BGP_FIELDS) for m in items}

    def isis_metrics(self, names=None):
        items = self._metrics("isis", "router_names", names, "isis_metrics")
        return {m.name: _fields(m, ISIS_FIELDS) for m in items}

    def ipv4_neighbors(self, ethernet_names=None):
        items = self._states(
            "ipv4_neighbors", "ethernet_names", ethernet_names, "ipv4_neighbors"
        )
        return [
            {
                "ethernet_name": n.ethernet_name,
                "ip_address": n.ipv4_address,
                "link_layer_address": n.link_layer_address,
            }
            for n in items
        ]

    def ipv6_neighbors(self, ethernet_names=None):
        items = self._states(
            "ipv6_neighbors", "ethernet_names", ethernet_names, "ipv6_neighbors"
        )
        return [
            {
                "ethernet_name": n.ethernet_name,
                "ip_address": n.ipv6_address,
                "link_layer_address": n.link_layer_address,
            }
            for n in items
        ]

    def neighbor_macs(self, ip_type):
        "Link layer addresses of all resolved neighbors, ip_type 'IPv4' or 'IPv6'."
        if ip_type == "IPv4":
            neighbors = self.ipv4_neighbors()
        elif ip_type == "IPv6":
            neighbors = self.ipv6_neighbors()
        else:
            raise ValueError("unknown ip type '{}'".format(ip_type))
        return [n["link_layer_address"] for n in neighbors if n["link_layer_address"]]

    def bgp_prefixes(self, peer_names=None):
        "Learned unicast prefixes keyed by BGP peer name."
        items = self._states(
            "bgp_prefixes", "bgp_peer_names", peer_names, "bgp_prefixes"
        )
        prefixes = {}
        for state in items:
            prefixes[state.bgp_peer_name] = {
                "ipv4": [
                    "{}/{}".format(p.ipv4_address, p.prefix_length)
                    for p in state.ipv4_unicast_prefixes
                ],
                "ipv6": [
                    "{}/{}".format(p.ipv6_address, p.prefix_length)
                    for p in state.ipv6_unicast_prefixes
                ],
            }
        return prefixes

    def isis_lsps(self, router_names=None):
        "Link state database of each ISIS router, as lists of LSP summaries."
        items = self._states("isis_lsps", "isis_router_names", router_names, "isis_lsps")
        lsps = {}
        for state in items:
            lsps[state.isis_router_name] = [_lsp_summary(lsp) for lsp in state.lsps]
        return lsps


def _lsp_summary(lsp):
    tlvs = lsp.tlvs
    return {
        "lsp_id": lsp.lsp_id,
        "pdu_type": lsp.pdu_type,
        "is_type": lsp.is_type,
        "hostnames": [h.hostname for h in tlvs.hostname_tlvs],
        "extended_is_reachability_count": sum(
            len(t.neighbors) for t in tlvs.extended_is_reachability_tlvs
        ),
        "extended_ipv4_reachability_count": sum(
            len(t.prefixes) for t in tlvs.extended_ipv4_reachability_tlvs
        ),
    }


def strip_prefixes(value):
    """
    Remove YANG module prefixes from JSON_IETF keys and identity values,
    e.g. {"openconfig-lacp:member": [...]} becomes {"member": [...]}.
    """
    if isinstance(value, dict):
        return {k.split(":", 1)[-1]: strip_prefixes(v) for k, v in value.items()}
    if isinstance(value, list):
        return [strip_prefixes(v) for v in value]
    if isinstance(value, str) and value.startswith("openconfig-") and ":" in value:
        return value.split(":", 1)[1]
    return value


class DutTelemetry(object):
    "Reads OpenConfig state from the DUT through `Dut.gnmi_get()`."

    def __init__(self, dut):
        self.dut = dut
        self.source = dut.name

    def get(self, path):
        return strip_prefixes(self.dut.gnmi_get(path))

    def _leaf(self, path):
        value = self.get(path)
        if value is None:
            raise TelemetryReadError(self.source, path, "no value")
        return value

    def interface_oper_status(self, name):
        status = self._leaf("/interfaces/interface[name={}]/state/oper-status".format(name))
        logger.info("Status of interface %s is %s", name, status)
        return status

    def interface_mac(self, name):
        return self._leaf(
            "/interfaces/interface[name={}]/ethernet/state/mac-address".format(name)
        )

    def lacp_members(self, lag):
        "LACP member state of `lag`, keyed by member interface."
        value = self.get("/lacp/interfaces/interface[name={}]/members".format(lag))
        members = {}
        if not value:
            return members
        if isinstance(value, dict):
            value = value.get("member", [])
        for member in value:
            state = member.get("state", {})
            members[member["interface"]] = {
                "synchronization": state.get("synchronization"),
                "collecting": state.get("collecting"),
                "distributing": state.get("distributing"),
            }
        return members

    def lacp_member_names(self, lag):
        names = list(self.lacp_members(lag))
        logger.info("Bundled ports for %s: %s", lag, names)
        return names

    def _neighbor_mac(self, family, interface, address):
        value = self.get(
            "/interfaces/interface[name={}]/subinterfaces/subinterface[index=0]"
            "/{}/neighbors/neighbor[ip={}]/state/link-layer-address".format(
                interface, family, address
            )
        )
        return value or None

    def ipv4_neighbor_mac(self, interface, address):
        "Link layer address of the IPv4 neighbor, None when there is no entry."
        return self._neighbor_mac("ipv4", interface, address)

    def ipv6_neighbor_mac(self, interface, address):
        return self._neighbor_mac("ipv6", interface, address)


def decode_gnmic_get(output, path, source):
    """
    Decode `gnmic get --format json` output and return the first update
    value, or None when the path has no data.
    """
    try:
        notifications = json.loads(output)
    except ValueError as error:
        raise TelemetryReadError(source, path, error) from error

    for notification in notifications:
        for update in notification.get("updates") or []:
            values = update.get("values") or {}
            for value in values.values():
                return value
    return None
