#!/usr/bin/env python
# SPDX-License-Identifier: ISC

#
# test_testbed.py
# Tests for testbed loading and the session wide options.
#

"""
Tests for atelib.testbed.
"""

import json
import os
import sys

import pytest
from munet.config import ConfigOptionsProxy

# Save the Current Working Directory to find lib files.
CWD = os.path.dirname(os.path.realpath(__file__))
sys.path.append(os.path.join(CWD, "../../"))

# pylint: disable=C0413
from atelib import testbed
from atelib.poller import DEFAULT_INTERVAL, DEFAULT_TIMEOUT
from atelib.testbed import load_testbed


def _data(nports=3):
    return {
        "ate": {
            "location": "https://otg:8443",
            "ports": {"port{}".format(i): "eth{}".format(i) for i in range(1, nports + 1)},
        },
        "dut": {
            "name": "dut1",
            "address": "10.0.0.1:6030",
            "username": "admin",
            "password": "admin",
            "tls": True,
            "ports": {
                "port{}".format(i): "Ethernet{}".format(i) for i in range(1, nports + 1)
            },
        },
    }


def _write(tmp_path, data):
    path = tmp_path / "testbed.json"
    path.write_text(json.dumps(data))
    return str(path)


class FakeConfig(object):
    "Minimal pytest config answering getoption() from a dict."

    def __init__(self, **options):
        self.options = options
        self.option = None

    def getoption(self, opt):
        return self.options.get(opt)


@pytest.fixture
def session(monkeypatch):
    "Isolates the module globals the session options live in."
    monkeypatch.setattr(testbed, "g_testbed", None)
    monkeypatch.setattr(testbed, "g_session", None)
    monkeypatch.setattr(testbed, "g_pytest_config", ConfigOptionsProxy())
    monkeypatch.delenv("ATE_TESTBED", raising=False)
    return monkeypatch


def test_load(tmp_path):
    data = _data(12)
    tb = load_testbed(_write(tmp_path, data))
    # ordered by port number, not alphabetically
    assert tb.ports[:3] == ["port1", "port2", "port3"]
    assert tb.ports[-1] == "port12"


def test_ports_must_be_wired_on_both_sides(tmp_path):
    data = _data(3)
    del data["dut"]["ports"]["port3"]
    tb = load_testbed(_write(tmp_path, data))
    assert tb.ports == ["port1", "port2"]


@pytest.mark.parametrize(
    "section,key",
    [("ate", "location"), ("ate", "ports"), ("dut", "address"), ("dut", "password")],
)
def test_missing_keys(tmp_path, section, key):
    data = _data()
    del data[section][key]
    with pytest.raises(testbed.TestbedError, match="missing '{}'".format(key)):
        load_testbed(_write(tmp_path, data))


def test_bad_files(tmp_path):
    with pytest.raises(testbed.TestbedError, match="can't read"):
        load_testbed(str(tmp_path / "nope.json"))

    path = tmp_path / "broken.json"
    path.write_text("{")
    with pytest.raises(testbed.TestbedError, match="invalid JSON"):
        load_testbed(str(path))

    data = _data()
    data["dut"]["ports"] = {}
    with pytest.raises(testbed.TestbedError, match="non-empty"):
        load_testbed(_write(tmp_path, data))


def test_require_ports(tmp_path):
    tb = load_testbed(_write(tmp_path, _data(5)))
    tb.require_ports(5)
    with pytest.raises(pytest.skip.Exception):
        tb.require_ports(9)


def test_builders(tmp_path):
    tb = load_testbed(_write(tmp_path, _data(2)))
    api = object()
    ate = tb.ate(api=api)
    assert ate.api is api
    assert ate.ports == {"port1": "eth1", "port2": "eth2"}
    assert ate.telemetry.api is api

    commander = object()
    dut = tb.dut(commander=commander)
    assert dut.commander is commander
    assert dut.tls is True
    assert dut.port("port2") == "Ethernet2"


def test_get_testbed_from_env(tmp_path, session):
    assert testbed.get_testbed() is None

    session.setenv("ATE_TESTBED", _write(tmp_path, _data()))
    tb = testbed.get_testbed()
    assert tb is not None
    # loaded once per session
    assert testbed.get_testbed() is tb

    testbed.reset_testbed()
    assert testbed.get_testbed() is not tb


def test_get_testbed_option_wins(tmp_path, session):
    session.setenv("ATE_TESTBED", str(tmp_path / "missing.json"))
    path = _write(tmp_path, _data())
    config = FakeConfig(**{"--testbed": path})
    session.setattr(testbed, "g_pytest_config", ConfigOptionsProxy(config))
    assert testbed.get_testbed().path == path


def test_start_session_without_testbed(session):
    with pytest.raises(pytest.skip.Exception):
        testbed.start_session("test_aggregate_lacp", 9)
    assert testbed.get_session() is None


def test_session_errors(tmp_path, session):
    session.setenv("ATE_TESTBED", _write(tmp_path, _data(2)))

    # not enough ports for the scenario
    with pytest.raises(pytest.skip.Exception):
        testbed.start_session("test_aggregate_lacp", 9)

    tb = testbed.get_testbed()
    s = testbed.Session(tb, "test_static_arp", ate=object(), dut=object())
    assert not s.has_errors()
    s.skip_on_errors()

    s.set_error("test_static_arp/test_arp_learned")
    assert s.has_errors()
    assert "0: test_static_arp/test_arp_learned" in s.errors
    with pytest.raises(pytest.skip.Exception):
        s.skip_on_errors()


def test_poll_policy(session):
    assert testbed.poll_policy() == (DEFAULT_INTERVAL, DEFAULT_TIMEOUT)
    assert testbed.poll_policy(0.5, 60) == (0.5, 60)

    config = FakeConfig(**{"--poll-timeout": 5.0})
    session.setattr(testbed, "g_pytest_config", ConfigOptionsProxy(config))
    assert testbed.poll_policy(0.5, 60) == (0.5, 5.0)


if __name__ == "__main__":
    sys.exit(pytest.main())
