import logging
import time
from typing import List, Optional

from contracts.rpc import RPCResponse
from core.decoders import decode_active_users, decode_license_details, decode_server_status
from core.errors import DecodeError, InputError, TransportError
from core.metrics_manager import MetricsManager
from core.profiler import Profiler
from core.rpc_client import (
    COUNT_ACTIVATED_USERS,
    GET_LICENSE_DETAILS,
    SERVER_STATUS,
    RPCClient,
    build_probe_batch,
)

logger = logging.getLogger(__name__)


class ProbeHandler:
    """
    Runs one probe cycle per scrape: a single batched RPC exchange with the
    target, independent decoding of each reply, then an atomic update and
    render of the metrics registry.
    """

    def __init__(self, rpc_client: RPCClient, metrics_manager: MetricsManager):
        self.rpc_client = rpc_client
        self.metrics_manager = metrics_manager

    @Profiler.profile
    async def probe(self, target: Optional[str], timeout: Optional[float] = None) -> bytes:
        """
        Probe a target and return the rendered registry.

        Args:
            target (Optional[str]): URL of the OpenOTP server.
            timeout (Optional[float]): Upper bound for the RPC exchange in seconds.

        Returns:
            bytes: Prometheus text exposition of the probe registry.

        Raises:
            InputError: If target is missing or empty. Nothing is written.
        """
        if not target:
            raise InputError("Target parameter missing or empty")

        start = time.perf_counter()
        replies = await self._execute(target, timeout)
        success = replies is not None
        updates = []
        if success:
            try:
                updates = self._decode(target, replies)
            except Exception as e:
                logger.error(f"Unexpected error decoding replies from {target}", exc_info=e)
                success = False
        duration = time.perf_counter() - start

        async with self.metrics_manager.lock:
            try:
                for update in updates:
                    update()
            except Exception as e:
                logger.error(f"Unexpected error recording metrics for {target}", exc_info=e)
                success = False
            self.metrics_manager.set_probe_result(success, duration)
            logger.info(f"Probe of {target} finished: success={int(success)} duration={duration:.4f}s")
            return self.metrics_manager.render()

    async def _execute(self, target: str, timeout: Optional[float]) -> Optional[List[RPCResponse]]:
        try:
            return await self.rpc_client.call_batch(target, build_probe_batch(), timeout=timeout)
        except TransportError as e:
            logger.warning(f"Probe of {target} failed with {e}")
        except Exception as e:
            logger.error(f"Unexpected error probing {target}", exc_info=e)
        return None

    def _decode(self, target: str, replies: List[RPCResponse]) -> list:
        """
        Decode every reply independently and collect the registry writes for
        the ones that decoded. A failed decoder withholds only its own gauges.
        """
        mm = self.metrics_manager
        updates = []

        try:
            active_users = decode_active_users(replies[COUNT_ACTIVATED_USERS])
            updates.append(lambda: mm.set_active_users(active_users))
        except DecodeError as e:
            logger.warning(f"{target}: {e}")

        try:
            license_details, field_errors = decode_license_details(replies[GET_LICENSE_DETAILS])
            for error in field_errors:
                logger.warning(f"{target}: {error}")
            if license_details.error_message:
                logger.warning(f"{target}: license reports: {license_details.error_message}")
            updates.append(lambda: mm.set_license(license_details))
        except DecodeError as e:
            logger.warning(f"{target}: {e}")

        try:
            server_status = decode_server_status(replies[SERVER_STATUS])
            updates.append(lambda: mm.set_server_status(server_status))
        except DecodeError as e:
            logger.warning(f"{target}: {e}")

        return updates
