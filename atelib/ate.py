# SPDX-License-Identifier: ISC
#
# ate.py
# Traffic generator session through the OTG API
#

"""
OTG (open traffic generator) session built on snappi.

Scenarios build their configuration with logical port names ("port1",
"port2", ...); `push_config()` fills in the locations from the testbed
before handing it to the OTG.
"""

import snappi

from atelib.telemetry import OtgTelemetry
from atelib.topolog import logger


class Ate(object):
    """
    One snappi API session.

    * `location`: OTG controller URL, e.g. "https://otg:8443"
    * `ports`: logical port name to OTG port location
    """

    def __init__(self, location, ports, verify=False, api=None):
        self.location = location
        self.ports = dict(ports)
        self.api = api if api is not None else snappi.api(location=location, verify=verify)
        self.config = None
        self.telemetry = OtgTelemetry(self.api)

    def __str__(self):
        return "Ate({})".format(self.location)

    def new_config(self):
        return self.api.config()

    def add_ports(self, config, *names):
        "Add logical ports `names` to `config`, returns them in order."
        ports = []
        for name in names:
            if name not in self.ports:
                raise KeyError("no ATE port '{}' in testbed".format(name))
            ports.append(config.ports.port(name=name, location=self.ports[name])[-1])
        return ports

    def push_config(self, config):
        for port in config.ports:
            if not port.location:
                port.location = self.ports[port.name]
        logger.info("%s: pushing config", self)
        self.api.set_config(config)
        self.config = config

    def _protocols(self, state):
        cs = self.api.control_state()
        cs.protocol.all.state = state
        self.api.set_control_state(cs)

    def start_protocols(self):
        logger.info("%s: starting protocols", self)
        self._protocols("start")

    def stop_protocols(self):
        logger.info("%s: stopping protocols", self)
        self._protocols("stop")

    def _traffic(self, state):
        cs = self.api.control_state()
        cs.traffic.flow_transmit.state = state
        self.api.set_control_state(cs)

    def start_traffic(self):
        logger.info("%s: starting traffic", self)
        self._traffic("start")

    def stop_traffic(self):
        logger.info("%s: stopping traffic", self)
        self._traffic("stop")

    def set_lacp_members(self, names, up):
        "Set the LACP admin state of LAG member ports `names`."
        logger.info(
            "%s: making LAG member(s) %s %s", self, ", ".join(names), "up" if up else "down"
        )
        cs = self.api.control_state()
        cs.protocol.lacp.admin.lag_member_names = list(names)
        cs.protocol.lacp.admin.state = "up" if up else "down"
        self.api.set_control_state(cs)

    def down_lacp_members(self, names):
        self.set_lacp_members(names, False)

    def up_lacp_members(self, names):
        self.set_lacp_members(names, True)
