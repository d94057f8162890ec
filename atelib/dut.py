# SPDX-License-Identifier: ISC
#
# dut.py
# Device under test reached through gNMI
#

"""
The DUT is driven through the `gnmic` client, run through a munet
`Commander` like every other external command in the tests.

Configuration is pushed as CLI text over gNMI (origin "cli"), rendered
from jinja2 templates so the files can refer to the testbed's port names:

    interface {{ ports.port2 }}
       channel-group 1 mode active
"""

import json
import os
import subprocess
import tempfile

import jinja2
from munet.base import Commander

from atelib.telemetry import DutTelemetry, TelemetryReadError, decode_gnmic_get
from atelib.topolog import logger


class Ports(dict):
    "Logical -> DUT port name map, also reachable as attributes in templates."

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None


class Dut(object):
    """
    A DUT reachable over gNMI.

    * `address`: "host:port" of the gNMI server
    * `ports`: logical port name ("port1") to DUT interface name
    * `tls`: use TLS (without certificate verification) instead of a
      plain text session
    """

    def __init__(
        self,
        name,
        address,
        username,
        password,
        ports,
        tls=False,
        gnmic="gnmic",
        commander=None,
    ):
        self.name = name
        self.address = address
        self.username = username
        self.password = password
        self.ports = Ports(ports)
        self.tls = tls
        self.gnmic = gnmic
        self.commander = commander if commander is not None else Commander(name)
        self._telemetry = None

    def __str__(self):
        return "Dut({} at {})".format(self.name, self.address)

    @property
    def telemetry(self):
        if self._telemetry is None:
            self._telemetry = DutTelemetry(self)
        return self._telemetry

    def port(self, name):
        "DUT interface name of logical port `name`."
        try:
            return self.ports[name]
        except KeyError:
            raise KeyError(
                "{}: no port '{}' in testbed (have {})".format(
                    self.name, name, ", ".join(sorted(self.ports))
                )
            ) from None

    def _gnmic(self, *args):
        cmd = [
            self.gnmic,
            "-a",
            self.address,
            "-u",
            self.username,
            "-p",
            self.password,
            "--skip-verify" if self.tls else "--insecure",
            "-e",
            "json_ietf",
            "--format",
            "json",
        ]
        return cmd + list(args)

    def gnmi_get(self, path):
        "Returns the decoded value at `path`, None when it has no data."
        cmd = self._gnmic("get", "--path", path)
        rc, stdout, stderr = self.commander.cmd_status(cmd, stderr=subprocess.PIPE)
        if rc:
            raise TelemetryReadError(
                self.name, path, "gnmic returned {}: {}".format(rc, stderr.strip())
            )
        return decode_gnmic_get(stdout, path, self.name)

    def append_config(self, text):
        "Merge CLI `text` into the running configuration."
        logger.info("%s: appending config:\n%s", self.name, text)
        self.commander.cmd_raises(self._gnmic("set", "--update-cli", text))

    def render_config(self, template, **params):
        "Render the jinja2 `template` file with the DUT ports and `params`."
        env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(os.path.dirname(os.path.abspath(template))),
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=True,
        )
        tmpl = env.get_template(os.path.basename(template))
        return tmpl.render(ports=self.ports, **params)

    def load_config(self, template, **params):
        "Render `template` and push it to the DUT."
        text = self.render_config(template, **params)
        logger.info("%s: loading config %s", self.name, template)
        logger.debug("%s: config text:\n%s", self.name, text)

        fd, path = tempfile.mkstemp(prefix="dut-", suffix=".cfg")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(text)
            self.commander.cmd_raises(self._gnmic("set", "--update-cli-file", path))
        finally:
            os.unlink(path)

    def replace(self, path, value):
        "gNMI replace of `path` with the JSON encoded `value`."
        logger.info("%s: replacing %s", self.name, path)
        self.commander.cmd_raises(
            self._gnmic(
                "set", "--replace-path", path, "--replace-value", json.dumps(value)
            )
        )
