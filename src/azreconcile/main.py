"""Process entry point: one reconcile pass over a topology file.

    python -m azreconcile.main topology.yaml

Configuration comes from the environment (see Config.from_env). Exit codes:
0 on success, 1 when configuration, topology or any resource failed, 2 when
no credential could be obtained.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO

from .cloud import AzureCloud
from .config import Config, ConfigurationError
from .credentials import CredentialError, get_credential, verify_credential
from .runner import reconcile
from .topology import TopologyLoadError, load_topology

# LogRecord attributes that are not user-supplied extra fields
_RESERVED_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: int = logging.INFO, stream: TextIO | None = None) -> None:
    """Configure structured logging with JSON output.

    Calling it again replaces the handler installed by the previous call.
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if isinstance(existing.formatter, JsonFormatter):
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Reduce noise from Azure SDK
    logging.getLogger("azure").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_cloud(config: Config) -> AzureCloud:
    """Obtain and verify a credential, then build the Azure clients.

    Raises:
        CredentialError: If no token can be acquired.
    """
    credential = get_credential(config.managed_identity_client_id)
    verify_credential(credential)
    return AzureCloud.from_credential(config, credential)


def main(topology_path: Path, dry_run: bool = False) -> int:
    """Run one reconcile pass.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    logger = logging.getLogger(__name__)

    try:
        config = Config.from_env()
    except ConfigurationError as e:
        logger.error("Configuration error", extra={"error": str(e)})
        return 1

    dry_run = dry_run or config.dry_run
    logger.info(
        "Starting reconcile pass",
        extra={
            "subscription_id": config.subscription_id,
            "resource_group": config.resource_group_name,
            "location": config.location,
            "dry_run": dry_run,
        },
    )

    try:
        topology = load_topology(topology_path)
    except TopologyLoadError as e:
        logger.error(
            "Topology loading failed",
            extra={"error": str(e), "topology": str(topology_path)},
        )
        return 1

    try:
        cloud = build_cloud(config)
    except CredentialError as e:
        logger.critical("Credential acquisition failed", extra={"error": str(e)})
        return 2

    try:
        result = reconcile(topology.to_tasks(config.resource_group_name), cloud, dry_run=dry_run)
    except Exception as e:
        logger.exception("Unhandled exception", extra={"error": str(e)})
        return 1

    return 0 if result.success else 1


def run() -> None:
    """Entry point for running one pass from a container."""
    setup_logging()
    if len(sys.argv) != 2:
        print("usage: python -m azreconcile.main TOPOLOGY", file=sys.stderr)
        sys.exit(1)
    sys.exit(main(Path(sys.argv[1])))


if __name__ == "__main__":
    run()
