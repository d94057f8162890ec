# SPDX-License-Identifier: ISC
#
# topolog.py
# Logging helpers for the OTG conformance tests
#

"""
Logging utilities for the OTG conformance tests.

Every library module logs through `logger`; conftest.py attaches a file
handler per test module so each scenario gets its own exec.log.
"""

import logging
import os

FORMAT = "%(asctime)s %(levelname)s: %(name)s: %(message)s"

handlers = {}
logger = logging.getLogger("ate")


def get_test_logdir(nodeid=None, module=False):
    """Get log directory relative pathname."""
    xdist_worker = os.getenv("PYTEST_XDIST_WORKER", "")
    mode = os.getenv("PYTEST_XDIST_MODE", "no")

    # nodeid: aggregate_lacp/test_aggregate_lacp.py::test_lacp_all_members_up
    # may be missing "::testname" if module is True
    if not nodeid:
        nodeid = os.environ["PYTEST_CURRENT_TEST"].split(" ")[0]

    cur_test = nodeid.replace("[", "_").replace("]", "_")
    if module:
        idx = cur_test.rfind("::")
        path = cur_test if idx == -1 else cur_test[:idx]
        testname = ""
    else:
        path, testname = cur_test.split("::", 1)
        testname = testname.replace("/", ".").replace("::", ".")
    path = path[:-3].replace("/", ".")

    if mode == "each":
        if module:
            return os.path.join(path, "worker-logs", xdist_worker)
        return os.path.join(path, testname, xdist_worker)
    assert mode in ("no", "load", "loadfile", "loadscope"), f"Unknown dist mode {mode}"
    return path if module else os.path.join(path, testname)


def _handler_key(nodeid):
    return nodeid + os.getenv("PYTEST_XDIST_WORKER", "")


def logstart(nodeid, logpath):
    """
    Called from pytest before module setup: everything logged until
    logfinish() also goes to `logpath`.
    """
    logpath = logpath.absolute()
    logging.debug("logstart: adding logging for %s at %s", nodeid, logpath)

    handler = logging.FileHandler(logpath, mode="w")
    handler.setFormatter(logging.Formatter(FORMAT))
    logging.getLogger().addHandler(handler)
    handlers[_handler_key(nodeid)] = handler
    return handler


def logfinish(nodeid, logpath):
    """Called from pytest after module teardown."""
    handler = handlers.pop(_handler_key(nodeid), None)
    if handler is None:
        logging.critical("can't find log handler of %s to remove", nodeid)
        return

    logging.getLogger().removeHandler(handler)
    handler.close()
    logging.debug("logfinish: removed logging for %s at %s", nodeid, logpath)


# Records reach the per-module handlers through the root logger.
logger.addHandler(logging.NullHandler())
logger.setLevel(logging.DEBUG)
