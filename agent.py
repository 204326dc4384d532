from __future__ import annotations
import logging
import os
import socket
import time
from typing import Any, Dict
import yaml  # from pyyaml

from core.plugin import NetworkPlugin
from output.json_sink import JsonSink

SCHEMA_VERSION = "1.0"

logger = logging.getLogger("netstats.agent")

DEFAULTS: Dict[str, Any] = {
    "metric_key_prefix": "",
    "tempfile": None,
    "poll_interval_sec": 60.0,
    "procfs_path": "/proc",
    "ss_timeout_sec": 10.0,
    "once": False,
    "log_level": "INFO",
    "output": {"path": "-"},
}

ENV_STRINGS = {
    "NETSTATS_METRIC_KEY_PREFIX": "metric_key_prefix",
    "NETSTATS_TEMPFILE": "tempfile",
    "NETSTATS_PROCFS_PATH": "procfs_path",
    "NETSTATS_LOG_LEVEL": "log_level",
}

ENV_FLOATS = {
    "NETSTATS_POLL_INTERVAL": "poll_interval_sec",
    "NETSTATS_SS_TIMEOUT": "ss_timeout_sec",
}


def load_config(path: str = "config.yml") -> Dict[str, Any]:
    """
    Load configuration from a YAML file and override it with environment variables.

    Environment variables override YAML values:
    - NETSTATS_METRIC_KEY_PREFIX: Metric key prefix (default 'network')
    - NETSTATS_TEMPFILE: State file owned by the host for delta computation
    - NETSTATS_POLL_INTERVAL: Polling interval in seconds
    - NETSTATS_PROCFS_PATH: procfs mount point (e.g. /host/proc in a container)
    - NETSTATS_SS_TIMEOUT: Seconds before the `ss` command is killed
    - NETSTATS_ONCE: Collect a single snapshot and exit ('1', 'true', 'yes')
    - NETSTATS_OUTPUT_PATH: NDJSON output file, '-' for stdout
    - NETSTATS_LOG_LEVEL: Logging level name

    Args:
        path: Path to the YAML configuration file

    Returns:
        Defaults merged with the file and the environment
    """
    config: Dict[str, Any] = dict(DEFAULTS)
    config["output"] = dict(DEFAULTS["output"])

    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("config file %s not found, using defaults", path)
        loaded = {}
    output = loaded.pop("output", None) or {}
    config.update(loaded)
    config["output"].update(output)

    for env, key in ENV_STRINGS.items():
        if env in os.environ:
            config[key] = os.environ[env]

    for env, key in ENV_FLOATS.items():
        if env in os.environ:
            try:
                config[key] = float(os.environ[env])
            except ValueError:
                logger.warning("invalid %s value: %s", env, os.environ[env])

    if "NETSTATS_ONCE" in os.environ:
        config["once"] = os.environ["NETSTATS_ONCE"].strip().lower() in ("1", "true", "yes")

    if "NETSTATS_OUTPUT_PATH" in os.environ:
        config["output"]["path"] = os.environ["NETSTATS_OUTPUT_PATH"]

    return config


def build_plugin(cfg: Dict[str, Any]) -> NetworkPlugin:
    """
    Create the network plugin from a loaded configuration.

    Args:
        cfg: Configuration as returned by load_config

    Returns:
        NetworkPlugin reading from cfg["procfs_path"] and logging to netstats.collect
    """
    return NetworkPlugin(
        prefix=cfg.get("metric_key_prefix") or "",
        tempfile=cfg.get("tempfile"),
        procfs_path=cfg.get("procfs_path", "/proc"),
        ss_timeout=cfg.get("ss_timeout_sec"),
        logger=logging.getLogger("netstats.collect"),
    )


def run(cfg: Dict[str, Any], sink: JsonSink) -> None:
    """
    Write the graph definitions once, then one snapshot record per cycle.

    Stops after the first snapshot when cfg['once'] is set; otherwise loops
    until interrupted.
    """
    plugin = build_plugin(cfg)
    prefix = plugin.metric_key_prefix()
    interval = float(cfg.get("poll_interval_sec", 60.0))
    host = socket.gethostname()
    seq = 0

    sink.write({
        "schema_version": SCHEMA_VERSION,
        "record_type": "meta",
        "host": host,
        "prefix": prefix,
        "graphs": plugin.graph_definition(),
    })

    while True:
        ts = time.time()
        metrics = plugin.fetch_metrics()

        seq += 1
        sink.write({
            "schema_version": SCHEMA_VERSION,
            "record_type": "snapshot",
            "host": host,
            "ts_unix": ts,
            "seq": seq,
            "prefix": prefix,
            "payload": metrics,
            "meta": {"interval_sec": interval, "tempfile": plugin.tempfile},
        })

        if cfg.get("once"):
            return
        time.sleep(interval)


def main() -> None:
    """
    Entry point of the network metrics agent.

    Loads configuration, sets up logging, and runs the polling loop.
    """
    cfg = load_config(os.environ.get("NETSTATS_CONFIG", "config.yml"))
    logging.basicConfig(
        level=str(cfg.get("log_level", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sink = JsonSink(cfg["output"]["path"])
    try:
        run(cfg, sink)
    except KeyboardInterrupt:
        logger.info("interrupted, exiting")


if __name__ == "__main__":
    main()
