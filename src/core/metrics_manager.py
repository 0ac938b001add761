import asyncio
import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Gauge, generate_latest

from contracts.openotp import LicenseDetails, ServerStatus

logger = logging.getLogger(__name__)

PREFIX = "openotp"


def add_prefix(name: str) -> str:
    return f"{PREFIX}_{name}"


class MetricsManager:
    """
    Owner of the gauges published by /probe.

    The gauge set and label schemas are fixed at construction. Values are
    overwritten on every probe, never accumulated, and labelled series are
    never removed: a series from an earlier probe remains until overwritten
    or the process restarts.

    Callers hold ``lock`` while writing one probe's values and rendering, so
    concurrent probes never interleave their updates.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Args:
            registry: Registry to publish into. A private registry is created
                when omitted, keeping probe gauges off the process /metrics page.
        """
        self.registry = registry if registry is not None else CollectorRegistry()
        self.lock = asyncio.Lock()

        self.probe_duration = Gauge(
            "probe_duration_seconds",
            "How many seconds the probe took",
            registry=self.registry,
        )
        self.probe_success = Gauge(
            "probe_success",
            "Whether or not the probe succeeded",
            registry=self.registry,
        )
        self.users_active = Gauge(
            add_prefix("users_active"),
            "Current number of license-consuming users",
            registry=self.registry,
        )
        self.license_max_users = Gauge(
            add_prefix("license_users_max"),
            "Maximum number of users the current OpenOTP license permits",
            ["customer", "instance"],
            registry=self.registry,
        )
        self.license_valid_from = Gauge(
            add_prefix("license_valid_from"),
            "Epoch timestamp of license start date",
            ["customer", "instance"],
            registry=self.registry,
        )
        self.license_valid_to = Gauge(
            add_prefix("license_valid_to"),
            "Epoch timestamp of license end date",
            ["customer", "instance"],
            registry=self.registry,
        )
        self.server_enabled = Gauge(
            add_prefix("server_enabled"),
            "Is the OpenOTP server enabled",
            ["version"],
            registry=self.registry,
        )
        self.server_status = Gauge(
            add_prefix("server_status"),
            "Status of the OpenOTP server",
            ["version"],
            registry=self.registry,
        )
        self.server_services = Gauge(
            add_prefix("server_services"),
            "Status of the OpenOTP services",
            ["name"],
            registry=self.registry,
        )
        logger.info("MetricsManager initialized.")

    def set_probe_result(self, success: bool, duration: float):
        self.probe_success.set(1 if success else 0)
        self.probe_duration.set(duration)

    def set_active_users(self, count: int):
        self.users_active.set(count)

    def set_license(self, details: LicenseDetails):
        """
        Publish a decoded license. A maximum user count that failed to
        convert is withheld; the validity gauges are always written.
        """
        labels = (details.customer_id, details.instance_id)
        if details.max_users is not None:
            self.license_max_users.labels(*labels).set(details.max_users)
        self.license_valid_from.labels(*labels).set(details.valid_from)
        self.license_valid_to.labels(*labels).set(details.valid_to)

    def set_server_status(self, status: ServerStatus):
        self.server_enabled.labels(status.version).set(int(status.enabled))
        self.server_status.labels(status.version).set(int(status.status))
        for name, up in status.servers.by_service_name().items():
            self.server_services.labels(name).set(int(up))

    def render(self) -> bytes:
        """
        Serialize the registry in the Prometheus text exposition format.
        """
        return generate_latest(self.registry)
