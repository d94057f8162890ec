# -*- coding: utf-8 eval: (blacken-mode 1) -*-
"""
OTG conformance tests conftest.py file.
"""
# pylint: disable=consider-using-f-string

import contextlib
import logging
import os
import subprocess
from pathlib import Path

import pytest
from munet.config import ConfigOptionsProxy

from atelib import testbed, topolog
from atelib.compare import state_cmp_result
from atelib.topolog import get_test_logdir, logger


@contextlib.contextmanager
def chdir(ndir, desc=""):
    odir = os.getcwd()
    os.chdir(ndir)
    if desc:
        logging.debug("%s: chdir from %s to %s", desc, odir, ndir)
    try:
        yield
    finally:
        if desc:
            logging.debug("%s: chdir back from %s to %s", desc, ndir, odir)
        os.chdir(odir)


@contextlib.contextmanager
def log_handler(basename, logpath):
    topolog.logstart(basename, logpath)
    try:
        yield
    finally:
        topolog.logfinish(basename, logpath)


def pytest_addoption(parser):
    """
    Add the testbed and polling options. Scenario modules are skipped when
    no testbed is given.
    """
    parser.addoption(
        "--testbed",
        metavar="FILE",
        help="Testbed JSON file (default: testbed ini value or $ATE_TESTBED)",
    )

    parser.addoption(
        "--rundir",
        metavar="DIR",
        help="Directory for logs (default: rundir ini value or /tmp/otgtests)",
    )

    parser.addoption(
        "--poll-interval",
        type=float,
        metavar="SECS",
        help="Override the interval of every telemetry poll",
    )

    parser.addoption(
        "--poll-timeout",
        type=float,
        metavar="SECS",
        help="Override the timeout of every telemetry poll",
    )

    parser.addini("rundir", "Directory for logs")
    parser.addini("testbed", "Testbed JSON file")


@pytest.fixture(autouse=True, scope="module")
def module_autouse(request):
    basename = get_test_logdir(request.node.nodeid, True)
    logdir = Path(request.config.option.rundir) / basename
    logpath = logdir / "exec.log"

    subprocess.check_call("mkdir -p -m 1777 {}".format(logdir), shell=True)

    with log_handler(basename, logpath):
        sdir = os.path.dirname(os.path.realpath(request.fspath))
        with chdir(sdir, "module autouse fixture"):
            yield


def pytest_assertrepr_compare(op, left, right):
    """
    Show proper assertion error message for state_cmp results.
    """
    del op

    cmp_result = left
    if not isinstance(cmp_result, state_cmp_result):
        cmp_result = right
        if not isinstance(cmp_result, state_cmp_result):
            return None

    return cmp_result.gen_report()


def pytest_runtest_makereport(item, call):
    "Log all assert messages to default logger with error level"

    if call.excinfo is None:
        return

    modname = item.parent.module.__name__

    # Treat skips as non errors
    if call.excinfo.typename == "Skipped":
        logger.info(
            'test skipped at "{}/{}": {}'.format(modname, item.name, call.excinfo.value)
        )
        return

    logger.error(
        'test failed at "{}/{}": {}'.format(modname, item.name, call.excinfo.value)
    )

    # Set session error to avoid advancing in the scenario.
    session = testbed.get_session()
    if session is not None and session.modname == modname:
        session.set_error("{}/{}".format(modname, item.name))


def pytest_configure(config):
    """
    Fill in option defaults from pytest.ini and make them available to the
    library.
    """
    testbed.g_pytest_config = ConfigOptionsProxy(config)

    rundir = config.option.rundir
    if not rundir:
        rundir = config.getini("rundir")
    if not rundir:
        rundir = "/tmp/otgtests"
    config.option.rundir = rundir

    if not config.option.testbed:
        config.option.testbed = config.getini("testbed") or None

    # Set the log_file (exec) to inside the rundir if not specified
    if not config.getoption("--log-file") and not config.getini("log_file"):
        config.option.log_file = os.path.join(rundir, "exec.log")

    if config.getoption("--collect-only"):
        return

    os.makedirs(rundir, exist_ok=True)
    logger.debug("rundir %s, testbed %s", rundir, config.option.testbed)


def pytest_unconfigure(config):
    del config
    testbed.reset_testbed()
