# SPDX-License-Identifier: ISC
#
# otgutils.py
# Metric tables for the test logs
#

"""
Fixed width tables of OTG and DUT telemetry, logged at info level so a
failed poll leaves the last observed state in exec.log.
"""

from atelib.topolog import logger


def format_table(title, columns, rows, width=20):
    """
    Returns `rows` as a fixed width table.

    * `columns`: header names
    * `rows`: sequences with one value per column
    * `width`: column width; the rules span all columns
    """
    rule = "-" * (width * len(columns))
    cell = "{:<%d}" % width
    lines = ["", title, rule, "".join(cell.format(str(c)) for c in columns)]
    for row in rows:
        lines.append("".join(cell.format(str(v)) for v in row))
    lines.append(rule)
    lines.append("")
    return "\n".join(lines)


def _log(title, columns, rows, width=20):
    logger.info(format_table(title, columns, rows, width))


def log_flow_metrics(metrics):
    _log(
        "Flow Metrics",
        ["Name", "Frames Tx", "Frames Rx", "FPS Tx", "FPS Rx"],
        [
            (name, m["frames_tx"], m["frames_rx"], m["frames_tx_rate"], m["frames_rx_rate"])
            for name, m in metrics.items()
        ],
        width=25,
    )


def log_port_metrics(metrics):
    _log(
        "Port Metrics",
        ["Name", "Frames Tx", "Frames Rx", "FPS Tx", "FPS Rx", "Link"],
        [
            (
                name,
                m["frames_tx"],
                m["frames_rx"],
                m["frames_tx_rate"],
                m["frames_rx_rate"],
                m["link"],
            )
            for name, m in metrics.items()
        ],
    )


def log_lag_metrics(metrics):
    _log(
        "LAG Metrics",
        ["Name", "Oper Status", "Member Ports UP", "Frames Tx", "Frames Rx"],
        [
            (name, m["oper_status"], m["member_ports_up"], m["frames_tx"], m["frames_rx"])
            for name, m in metrics.items()
        ],
    )


def log_lacp_metrics(metrics):
    _log(
        "LACP Metrics",
        [
            "LAG",
            "Member Port",
            "Synchronization",
            "Collecting",
            "Distributing",
            "System Id",
            "Partner Id",
        ],
        [
            (
                m["lag_name"],
                port,
                m["synchronization"],
                m["collecting"],
                m["distributing"],
                m["system_id"],
                m["partner_id"],
            )
            for port, m in metrics.items()
        ],
    )


def log_bgpv4_metrics(metrics):
    _log(
        "BGPv4 Metrics",
        ["Name", "State", "Flaps", "Routes Adv.", "Routes Rec."],
        [
            (
                name,
                m["session_state"],
                m["session_flap_count"],
                m["routes_advertised"],
                m["routes_received"],
            )
            for name, m in metrics.items()
        ],
    )


def log_isis_metrics(metrics):
    _log(
        "ISIS Metrics",
        [
            "Name",
            "L1 Sessions UP",
            "L1 Database Size",
            "L2 Sessions UP",
            "L2 Database Size",
        ],
        [
            (
                name,
                m["l1_sessions_up"],
                m["l1_database_size"],
                m["l2_sessions_up"],
                m["l2_database_size"],
            )
            for name, m in metrics.items()
        ],
    )


def log_isis_lsps(lsps):
    rows = []
    for router, router_lsps in lsps.items():
        for lsp in router_lsps:
            rows.append(
                (
                    router,
                    lsp["lsp_id"],
                    lsp["pdu_type"],
                    lsp["is_type"],
                    ",".join(lsp["hostnames"]),
                    lsp["extended_is_reachability_count"],
                    lsp["extended_ipv4_reachability_count"],
                )
            )
    _log(
        "ISIS LSPs",
        ["Router", "LSP Id", "PDU Type", "IS Type", "Hostnames", "Ext. IS", "Ext. IPv4"],
        rows,
    )


def log_dut_lacp_members(lag, members):
    _log(
        "DUT LACP Metrics",
        ["Port Channel", "Member Interface", "Synchronization", "Collecting", "Distributing"],
        [
            (lag, port, m["synchronization"], m["collecting"], m["distributing"])
            for port, m in members.items()
        ],
        width=24,
    )
