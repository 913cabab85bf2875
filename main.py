"""Entry point: read NDJSON metrics and ship them to a syslog collector."""

import argparse
import logging
import signal
import sys
import threading
from itertools import islice

from src.config import DESCRIPTION, SAMPLE_CONFIG, load_config, load_yaml_config
from src.errors import ConfigError, InvalidAddressError, PermanentSendError, TransientSendError
from src.output import SyslogOutput
from src.reader import read_metrics

logger = logging.getLogger(__name__)


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=DESCRIPTION)
    parser.add_argument(
        "--config", default=None,
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--input", default="-",
        help="NDJSON metrics file, or - for stdin (default: -)",
    )
    parser.add_argument(
        "--address", default=None,
        help="Override the configured address, e.g. tcp://127.0.0.1:6514",
    )
    parser.add_argument(
        "--framing", default=None, choices=["octet-counting", "non-transparent"],
        help="Override the configured framing",
    )
    parser.add_argument(
        "--batch-size", type=int, default=100,
        help="Metrics handed to the output per write (default: 100)",
    )
    parser.add_argument(
        "--log-level", default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--sample-config", action="store_true",
        help="Print a sample YAML config and exit",
    )
    return parser


def _batches(metrics, size: int):
    it = iter(metrics)
    while True:
        batch = list(islice(it, size))
        if not batch:
            return
        yield batch


def ship(output: SyslogOutput, lines, batch_size: int, shutdown_event: threading.Event) -> int:
    """Write every metric read from ``lines``. Returns the number of failed batches."""
    failures = 0
    for batch in _batches(read_metrics(lines), max(1, batch_size)):
        if shutdown_event.is_set():
            break
        try:
            output.write(batch)
        except TransientSendError as e:
            failures += 1
            logger.warning("Temporary send failure, batch of %d not fully sent: %s", len(batch), e)
        except PermanentSendError as e:
            failures += 1
            logger.error("Send failed, will reconnect on next batch: %s", e)
        except OSError as e:
            failures += 1
            logger.error("Unable to connect to %s: %s", output.config.address, e)
    return failures


def main(argv: list[str] | None = None) -> int:
    parser = build_cli_parser()
    args = parser.parse_args(argv)

    if args.sample_config:
        print(SAMPLE_CONFIG, end="")
        return 0

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(
            load_yaml_config(args.config),
            {"address": args.address, "framing": args.framing},
        )
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    shutdown_event = threading.Event()

    def signal_handler(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        shutdown_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info("Starting syslog output: address=%s, framing=%s",
                config.address, config.framing.value)

    try:
        stream = sys.stdin if args.input == "-" else open(args.input, "r", encoding="utf-8")
    except OSError as e:
        logger.error("Cannot read metrics from %s: %s", args.input, e)
        return 2

    output = SyslogOutput(config)
    try:
        failures = ship(output, stream, args.batch_size, shutdown_event)
    except (InvalidAddressError, ConfigError) as e:
        logger.error("Invalid configuration: %s", e)
        return 2
    finally:
        output.close()
        if stream is not sys.stdin:
            stream.close()

    stats = output.stats()
    print(
        f"[syslog] written={stats['written']} dropped={stats['dropped']} "
        f"failed_batches={failures}",
        file=sys.stderr,
        flush=True,
    )
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
