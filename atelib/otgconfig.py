# SPDX-License-Identifier: ISC
#
# otgconfig.py
# Building blocks of the OTG configurations
#

"""
Helpers adding the objects the scenarios share to a snappi config: a LACP
LAG, an IPv4 emulated device, an eBGP peer, an ISIS router and a port to
port flow.

Every helper returns the object it added so a scenario can adjust what the
helper leaves at its default. Names follow one scheme: a device "p1d1"
gets the ethernet "p1d1.eth1", the address "p1d1.eth1.ip1", the BGP peer
"p1d1.bgp1" and the ISIS router "p1d1.isis1".
"""

LACP_SYSTEM_ID = "01:01:01:01:01:01"


def add_lag(config, name, ports, min_links=None, lacpdu_timeout=3, lacpdu_interval=1):
    """
    Add LAG `name` over the ports named in `ports`, LACP active on every
    member.

    * `lacpdu_timeout`: seconds before received LACP information expires,
      0 lets the OTG pick
    * `lacpdu_interval`: periodic LACPDU interval, None to leave it unset
    """
    lag = config.lags.lag(name=name)[-1]
    if min_links is not None:
        lag.min_links = min_links
    lacp = lag.protocol.lacp
    lacp.actor_key = 1
    lacp.actor_system_id = LACP_SYSTEM_ID
    lacp.actor_system_priority = 1

    for i, port in enumerate(ports):
        member = lag.ports.port(port_name=port)[-1]
        member.lacp.actor_activity = "active"
        member.lacp.actor_port_number = i + 1
        member.lacp.actor_port_priority = 1
        if lacpdu_interval is not None:
            member.lacp.lacpdu_periodic_time_interval = lacpdu_interval
        member.lacp.lacpdu_timeout = lacpdu_timeout
        member.ethernet.name = "{}.port{}.eth".format(name, i + 1)
        member.ethernet.mac = "00:00:00:00:00:{}".format(16 + i)
    return lag


def add_ipv4_device(
    config, name, mac, address, gateway, port_name=None, lag_name=None, prefix=24
):
    "Add device `name` with one ethernet on port `port_name` or LAG `lag_name`."
    device = config.devices.device(name=name)[-1]
    eth = device.ethernets.add()
    eth.name = "{}.eth1".format(name)
    if lag_name is not None:
        eth.connection.lag_name = lag_name
    else:
        eth.connection.port_name = port_name
    eth.mac = mac
    eth.mtu = 1500
    ip = eth.ipv4_addresses.add()
    ip.name = "{}.eth1.ip1".format(name)
    ip.address = address
    ip.gateway = gateway
    ip.prefix = prefix
    return device


def add_bgp_peer(device, peer_as, route, count, keep_alive=None, hold_time=None):
    """
    Add an eBGP peer towards the gateway of `device`, advertising `count`
    /32 routes from `route` on.
    """
    ip = device.ethernets[0].ipv4_addresses[0]
    device.bgp.router_id = ip.address
    bgp_int = device.bgp.ipv4_interfaces.add()
    bgp_int.ipv4_name = ip.name
    peer = bgp_int.peers.add()
    peer.name = "{}.bgp1".format(device.name)
    peer.peer_address = ip.gateway
    peer.as_type = "ebgp"
    peer.as_number = peer_as
    if keep_alive is not None:
        peer.advanced.keep_alive_interval = keep_alive
    if hold_time is not None:
        peer.advanced.hold_time_interval = hold_time

    routes = peer.v4_routes.add(name="{}.v4".format(peer.name))
    routes.addresses.add(address=route, prefix=32, count=count)
    return peer


def add_isis_router(device, system_id, hostname, area, level="level_1", hello=5, dead=15):
    """
    Add a point to point ISIS router on the ethernet of `device`, at
    `level` ("level_1" or "level_2"), with wide metrics.
    """
    eth = device.ethernets[0]
    ip = eth.ipv4_addresses[0]
    isis = device.isis
    isis.name = "{}.isis1".format(device.name)
    isis.system_id = system_id
    isis.basic.ipv4_te_router_id = ip.address
    isis.basic.hostname = hostname
    isis.basic.enable_wide_metric = True
    isis.advanced.area_addresses = [area]
    isis.advanced.csnp_interval = 10000
    isis.advanced.enable_hello_padding = True
    isis.advanced.lsp_lifetime = 1200
    isis.advanced.lsp_mgroup_min_trans_interval = 5000
    isis.advanced.lsp_refresh_rate = 900
    isis.advanced.max_area_addresses = 3
    isis.advanced.max_lsp_size = 1492
    isis.advanced.psnp_interval = 2000
    isis.advanced.enable_attached_bit = False

    intf = isis.interfaces.add()
    intf.name = "{}.intf1".format(isis.name)
    intf.eth_name = eth.name
    intf.network_type = "point_to_point"
    intf.level_type = level
    intf.metric = 10
    settings = intf.l1_settings if level == "level_1" else intf.l2_settings
    settings.dead_interval = dead
    settings.hello_interval = hello
    settings.priority = 0
    intf.advanced.auto_adjust_supported_protocols = True
    intf.advanced.auto_adjust_area = True
    intf.advanced.auto_adjust_mtu = True
    return isis


def add_port_flow(config, name, tx, rx, packets, pps, size=128):
    "Add a fixed size, fixed count flow from port (or LAG) `tx` to port `rx`."
    flow = config.flows.flow(name=name)[-1]
    flow.metrics.enable = True
    flow.tx_rx.port.tx_name = tx
    flow.tx_rx.port.rx_names = [rx]
    flow.duration.fixed_packets.packets = packets
    flow.size.fixed = size
    flow.rate.pps = pps
    return flow
