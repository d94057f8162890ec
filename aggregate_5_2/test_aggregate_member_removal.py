#!/usr/bin/env python
# SPDX-License-Identifier: ISC

#
# test_aggregate_member_removal.py
# Port channel members removed on the DUT only
#

"""
test_aggregate_member_removal.py: the OTG keeps LACP running on every
member while the DUT drops them from its port channel one at a time.

    DUT Port-Channel1 (min-links 2) ---- port2 .. port5 ---- lag1 (OTG)

Removed | Port-Channel1
--------+-----------------
port2   | UP, port3-5
port3   | UP, port4-5
port4   | LOWER_LAYER_DOWN
"""

import os
import sys
import time
from functools import partial

import pytest

# Save the Current Working Directory to find configuration files.
CWD = os.path.dirname(os.path.realpath(__file__))
sys.path.append(os.path.join(CWD, "../"))

# pylint: disable=C0413
from atelib import checks, otgconfig
from atelib.testbed import get_session, poll_policy, start_session, stop_session
from atelib.topolog import logger

pytestmark = [pytest.mark.lacp]

LAG_MEMBERS = ("port2", "port3", "port4", "port5")
MIN_LINKS = 2
SETTLE_TIME = 20


def build_config(ate):
    config = ate.new_config()
    ate.add_ports(config, "port1", *LAG_MEMBERS)
    otgconfig.add_lag(config, "lag1", LAG_MEMBERS, lacpdu_timeout=0, lacpdu_interval=None)
    return config


def setup_module(mod):
    "Sets up the pytest environment"
    session = start_session(mod.__name__, 1 + len(LAG_MEMBERS))

    session.dut.load_config(
        os.path.join(CWD, "dut/set_config.j2"), members=LAG_MEMBERS, min_links=MIN_LINKS
    )

    ate = session.ate
    ate.push_config(build_config(ate))
    ate.start_protocols()


def teardown_module(_mod):
    "Teardown the pytest environment"
    session = get_session()
    try:
        session.ate.stop_protocols()
    finally:
        session.dut.load_config(
            os.path.join(CWD, "dut/unset_config.j2"), members=LAG_MEMBERS
        )
        stop_session()


def check_port_channel(status, bundled=()):
    dut = get_session().dut
    policy = poll_policy()

    logger.info("Check interface status on DUT")
    test_func = partial(
        checks.interface_status_as_expected, dut.telemetry, "Port-Channel1", status
    )
    assert policy.wait_for(test_func), "Port-Channel1 is not {}".format(status)

    if not bundled:
        return
    expected = {"Port-Channel1": [dut.port(p) for p in bundled]}
    test_func = partial(checks.bundled_ports_as_expected, dut.telemetry, expected)
    assert policy.wait_for(test_func), "Port-Channel1 does not bundle {}".format(bundled)


def remove_from_port_channel(port):
    dut = get_session().dut
    logger.info("Removing %s from Port-Channel1", dut.port(port))
    dut.append_config(
        "interface {}\nno channel-group 1 mode active\n!".format(dut.port(port))
    )


def test_all_members_bundled():
    get_session().skip_on_errors()

    check_port_channel("UP", LAG_MEMBERS)


def test_remove_above_min_links():
    "port2 removed, the port channel stays up for good."
    get_session().skip_on_errors()

    remove_from_port_channel("port2")
    check_port_channel("UP", LAG_MEMBERS[1:])

    time.sleep(SETTLE_TIME)
    check_port_channel("UP", LAG_MEMBERS[1:])


def test_remove_at_min_links():
    get_session().skip_on_errors()

    remove_from_port_channel("port3")
    check_port_channel("UP", LAG_MEMBERS[2:])


def test_remove_below_min_links():
    get_session().skip_on_errors()

    remove_from_port_channel("port4")
    check_port_channel("LOWER_LAYER_DOWN")


if __name__ == "__main__":
    args = ["-s"] + sys.argv[1:]
    sys.exit(pytest.main(args))
