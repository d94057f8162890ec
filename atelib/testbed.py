# SPDX-License-Identifier: ISC
#
# testbed.py
# Testbed description loading
#

"""
Testbed description, a JSON file naming the OTG controller, the DUT and
how their ports are wired:

    {
        "ate": {
            "location": "https://otg:8443",
            "verify": false,
            "ports": {"port1": "eth1", "port2": "eth2"}
        },
        "dut": {
            "name": "dut1",
            "address": "10.0.0.1:6030",
            "username": "admin",
            "password": "admin",
            "tls": false,
            "ports": {"port1": "Ethernet1", "port2": "Ethernet2"}
        }
    }

Logical port "portN" of the ATE is cabled to logical port "portN" of the
DUT.
"""

import json
import os

import pytest
from munet.config import ConfigOptionsProxy

from atelib.ate import Ate
from atelib.dut import Dut
from atelib.poller import DEFAULT_INTERVAL, DEFAULT_TIMEOUT, PollPolicy
from atelib.topolog import logger


class TestbedError(Exception):
    "The testbed file is missing or malformed."


def _require(section, key, where):
    if key not in section:
        raise TestbedError("testbed {}: missing '{}'".format(where, key))
    return section[key]


class Testbed(object):
    "Parsed testbed file."

    __test__ = False

    def __init__(self, data, path=None):
        self.path = path
        if not isinstance(data, dict):
            raise TestbedError("testbed must be a JSON object")
        self.ate_params = _require(data, "ate", "top level")
        self.dut_params = _require(data, "dut", "top level")
        _require(self.ate_params, "location", "ate")
        for where, section in (("ate", self.ate_params), ("dut", self.dut_params)):
            ports = _require(section, "ports", where)
            if not isinstance(ports, dict) or not ports:
                raise TestbedError("testbed {}: 'ports' must be a non-empty object".format(where))
        for key in ("address", "username", "password"):
            _require(self.dut_params, key, "dut")

    @property
    def ports(self):
        "Logical port names present on both sides, sorted by number."
        common = set(self.ate_params["ports"]) & set(self.dut_params["ports"])
        return sorted(common, key=lambda p: (len(p), p))

    def require_ports(self, count):
        "Skip the calling test module if fewer than `count` ports are wired."
        if len(self.ports) < count:
            pytest.skip(
                "testbed has {} ports, scenario needs {}".format(len(self.ports), count),
                allow_module_level=True,
            )

    def ate(self, api=None):
        return Ate(
            self.ate_params["location"],
            self.ate_params["ports"],
            verify=self.ate_params.get("verify", False),
            api=api,
        )

    def dut(self, commander=None):
        p = self.dut_params
        return Dut(
            p.get("name", "dut"),
            p["address"],
            p["username"],
            p["password"],
            p["ports"],
            tls=p.get("tls", False),
            gnmic=p.get("gnmic", "gnmic"),
            commander=commander,
        )


def load_testbed(path):
    "Load and validate the testbed file at `path`."
    logger.info("loading testbed %s", path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as error:
        raise TestbedError("can't read testbed {}: {}".format(path, error)) from error
    except ValueError as error:
        raise TestbedError("invalid JSON in testbed {}: {}".format(path, error)) from error
    return Testbed(data, path)


# Set by conftest.py pytest_configure()
g_pytest_config = ConfigOptionsProxy()
g_testbed = None


def get_testbed():
    """
    Returns the session testbed, loading it on first use from --testbed
    or the ATE_TESTBED environment variable. Returns None when neither is
    set.
    """
    global g_testbed

    if g_testbed is None:
        path = g_pytest_config.getoption("--testbed") or os.getenv("ATE_TESTBED")
        if not path:
            return None
        g_testbed = load_testbed(path)
    return g_testbed


def reset_testbed():
    global g_testbed
    g_testbed = None


def poll_policy(interval=None, timeout=None):
    """
    Poll policy for a check; --poll-interval and --poll-timeout replace the
    values given here when set.
    """
    interval = g_pytest_config.getoption("--poll-interval", interval)
    timeout = g_pytest_config.getoption("--poll-timeout", timeout)
    return PollPolicy(
        DEFAULT_INTERVAL if interval is None else interval,
        DEFAULT_TIMEOUT if timeout is None else timeout,
    )


class Session(object):
    """
    ATE and DUT handles of one scenario module.

    Like a topogen object, a session collects errors so that once a step
    fails the following steps of the module skip instead of failing on
    top of it.
    """

    def __init__(self, tb, modname, ate=None, dut=None):
        self.testbed = tb
        self.modname = modname
        self.ate = ate if ate is not None else tb.ate()
        self.dut = dut if dut is not None else tb.dut()
        self.errorsd = {}
        self.errors = ""

    def __str__(self):
        return "Session({})".format(self.modname)

    def set_error(self, message, code=None):
        "Sets an error message and signal other tests to skip."
        logger.info("setting error msg: %s", message)

        # If no code is defined use a sequential number
        if code is None:
            code = len(self.errorsd)

        self.errorsd[code] = message
        self.errors += "\n{}: {}".format(code, message)

    def has_errors(self):
        "Returns whether errors exist or not."
        return len(self.errorsd) > 0

    def skip_on_errors(self):
        if self.has_errors():
            pytest.skip(self.errors)


g_session = None


def start_session(modname, nports=1):
    """
    Open the session of scenario module `modname`. Skips the module when
    no testbed is configured or it has fewer than `nports` ports.
    """
    global g_session

    tb = get_testbed()
    if tb is None:
        pytest.skip("no testbed given (--testbed or ATE_TESTBED)", allow_module_level=True)
    tb.require_ports(nports)

    g_session = Session(tb, modname)
    logger.info("%s: ATE %s, DUT %s", g_session, g_session.ate, g_session.dut)
    return g_session


def get_session():
    return g_session


def stop_session():
    global g_session
    g_session = None
