# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""Process-wide registry of attached tunnel sessions.

Sessions add themselves when a forward attaches and remove themselves on a
clean stop. At interpreter exit (including SIGTERM, which is turned into a
normal exit when nobody else handles it) every session still registered
gets a best-effort stop(). Errors there are logged, never raised.

If none of this runs (SIGKILL, power loss) the master still closes itself
after its ControlPersist timeout.
"""

import atexit
import signal
import sys
import threading
from typing import TYPE_CHECKING, Dict, List

from muxtunnel.utils.logging import get_logger

if TYPE_CHECKING:
    from muxtunnel.tunnel import TunnelSession

logger = get_logger(__name__)

_sessions: Dict[int, "TunnelSession"] = {}
_installed = False


def register(session: "TunnelSession") -> None:
    """Track an attached session for exit-time teardown."""
    _install_hooks()
    _sessions[id(session)] = session


def unregister(session: "TunnelSession") -> None:
    _sessions.pop(id(session), None)


def live_sessions() -> List["TunnelSession"]:
    return list(_sessions.values())


def stop_all() -> None:
    """Best-effort stop of every registered session."""
    for session in live_sessions():
        logger.debug(f"Exit teardown: {session!r}")
        session.close()
        # close() never raises; drop it even if the cancel failed
        unregister(session)


def _handle_sigterm(signum, frame):
    """Turn SIGTERM into SystemExit so atexit handlers run."""
    logger.debug("Received SIGTERM, closing tunnels")
    sys.exit(128 + signum)


def _install_hooks() -> None:
    global _installed
    if _installed:
        return
    _installed = True
    atexit.register(stop_all)

    # signal.signal only works on the main thread; leave custom handlers alone
    if threading.current_thread() is not threading.main_thread():
        return
    try:
        if signal.getsignal(signal.SIGTERM) is signal.SIG_DFL:
            signal.signal(signal.SIGTERM, _handle_sigterm)
    except (ValueError, OSError) as e:
        logger.debug(f"Could not install SIGTERM handler: {e}")
