"""Host level port inspection and reclamation."""

import os
import socket

import psutil

from ..common.exceptions import PortReclaimError
from ..common.logging import get_logger
from ..common.utils import validate_port

logger = get_logger(__name__)


class HostPortInspector:
    """Answers which local processes hold a TCP port and terminates them."""

    def __init__(self, host: str = "127.0.0.1"):
        self.host = host

    def owner_pids(self, port: int) -> list[int]:
        """PIDs of processes with a socket bound locally to ``port``.

        When the system-wide socket table is not readable (macOS without
        root), the processes visible to this user are scanned one by one.
        """
        validate_port(port)
        try:
            connections = psutil.net_connections(kind="inet")
        except psutil.AccessDenied:
            logger.debug("System socket table not readable, scanning processes", port=port)
            return self._owner_pids_by_process(port)

        own_pid = os.getpid()
        pids: list[int] = []
        for conn in connections:
            if not conn.laddr or conn.laddr.port != port:
                continue
            if conn.pid is None or conn.pid == own_pid or conn.pid in pids:
                continue
            pids.append(conn.pid)
        return pids

    def _owner_pids_by_process(self, port: int) -> list[int]:
        own_pid = os.getpid()
        pids: list[int] = []
        for proc in psutil.process_iter():
            if proc.pid == own_pid:
                continue
            try:
                connections = proc.net_connections(kind="inet")
            except (psutil.AccessDenied, psutil.NoSuchProcess):
                continue
            if any(conn.laddr and conn.laddr.port == port for conn in connections):
                pids.append(proc.pid)
        return pids

    def is_port_in_use(self, port: int) -> bool:
        """Check whether a local process is bound to ``port``.

        Point-in-time snapshot: the answer may be stale by the time a
        tunnel binds.
        """
        if self.owner_pids(port):
            return True
        return self._accepts_connections(port)

    def _accepts_connections(self, port: int) -> bool:
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
                sock.settimeout(0.5)
                return sock.connect_ex((self.host, port)) == 0
        except OSError:
            return False

    def kill_port_owner(self, port: int, timeout: float = 3.0) -> list[int]:
        """Forcibly terminate every process bound to ``port``.

        Returns:
            The PIDs that were killed

        Raises:
            PortReclaimError: If no owner can be identified or a process
                survives SIGKILL
        """
        logger.info("Killing the process using port", port=port)
        pids = self.owner_pids(port)
        if not pids:
            raise PortReclaimError(port, "no owning process could be identified")

        for pid in pids:
            try:
                process = psutil.Process(pid)
                process.kill()
                process.wait(timeout=timeout)
            except psutil.NoSuchProcess:
                logger.debug("Process already gone", port=port, pid=pid)
            except psutil.AccessDenied as e:
                raise PortReclaimError(port, f"permission denied killing pid {pid}") from e
            except psutil.TimeoutExpired as e:
                raise PortReclaimError(port, f"pid {pid} did not exit after SIGKILL") from e

        logger.info("Successfully killed the process using port", port=port, pids=pids)
        return pids
