# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Liveness probe and lifecycle of the shared ssh master connection.

Several sessions (in this process or others) can share one control socket.
Probe-then-start is not atomic, so two of them may both see "not running"
and both launch a master. ssh copes with that (ControlMaster=auto falls back
to a plain connection or the loser exits), so a failed start command is not
fatal by itself: the re-probe afterwards decides.
"""

import tempfile
import time
from typing import Callable, Optional

from rich.markup import escape

from muxtunnel.errors import MasterStartFailedError, MasterStopFailedError, ProbeFailedError
from muxtunnel.ssh_control import SSHControl
from muxtunnel.utils.logging import get_logger

logger = get_logger(__name__)

# `ssh -O check` exit status when no master listens on the control socket
NOT_RUNNING_EXIT_CODE = 255


def is_master_running(control: SSHControl) -> bool:
    """Ask the control socket whether a master is alive.

    Raises:
        ProbeFailedError: on any exit status other than 0 or 255
    """
    result = control.check()
    if result.returncode == 0:
        return True
    if result.returncode == NOT_RUNNING_EXIT_CODE:
        return False
    raise ProbeFailedError(
        f"Unexpected result checking SSH master for {control.config.destination}",
        command=list(result.args),
        returncode=result.returncode,
        stderr=result.stderr or "",
    )


def ensure_master_running(
    control: SSHControl,
    on_not_running: Optional[Callable[[], None]] = None,
) -> None:
    """Start the master connection unless one is already up.

    Args:
        control: Control interface for the target user/host/port
        on_not_running: Called when the first probe finds no master, before
            anything is started. Sessions use it to drop stale forward state.

    Raises:
        ProbeFailedError: if the probe itself fails
        MasterStartFailedError: if no master is running after the start attempt
    """
    if is_master_running(control):
        logger.info("SSH master already running.")
        return

    if on_not_running is not None:
        on_not_running()

    destination = control.config.destination
    logger.info(f"Starting SSH master for {destination}...")
    started = time.monotonic()

    with tempfile.TemporaryFile() as output:
        result = control.start_master(output)
        output.seek(0)
        captured = output.read().decode("utf-8", errors="replace")

    elapsed = time.monotonic() - started

    if control.config.debug_master_output:
        for line in captured.splitlines():
            logger.print(f"    {escape(line)}", style="dim")

    if result.returncode != 0:
        logger.warning(
            f"SSH master command for {destination} exited with {result.returncode}, "
            "re-checking control socket"
        )

    if is_master_running(control):
        logger.success(f"SSH master started in {elapsed:.3f}s")
        return

    # -v output is long; the tail has the reason
    tail = "\n".join(captured.strip().splitlines()[-10:])
    raise MasterStartFailedError(
        f"Could not start SSH master for {destination}",
        command=list(result.args),
        returncode=result.returncode,
        stderr=tail,
        hint="Check that key-based login works: ssh " + " ".join(control.destination_args()),
    )


def stop_master(control: SSHControl) -> bool:
    """Terminate the master connection, dropping every forward on it.

    Rarely needed: the master exits by itself once it has been idle for
    auto_disconnect_timeout.

    Returns:
        True if a master was stopped, False if none was running

    Raises:
        MasterStopFailedError: if `ssh -O exit` fails
    """
    if not is_master_running(control):
        return False

    result = control.exit()
    if result.returncode != 0:
        raise MasterStopFailedError(
            f"Could not stop SSH master for {control.config.destination}",
            command=list(result.args),
            returncode=result.returncode,
            stderr=result.stderr or "",
        )
    logger.info(f"SSH master for {control.config.destination} stopped.")
    return True
