"""
Entry point for `python -m latency_receiver`.

Usage:
    python -m latency_receiver [-a localhost:5672] [-c 1] [-t topic] [-i 0]
                               [-p 100] [-S 0] [-l] [-u] [-v]
"""

import asyncio
import argparse
import logging
import signal
import sys
from typing import Optional, TextIO

from .config import ConfigError, ReceiverConfig
from .dispatcher import EventDispatcher
from .latency import LatencyRecorder
from .protocol import SequenceTypeError
from .reporter import Reporter, SampleTrace
from .session import SessionState
from .transport import WebSocketTransport

logger = logging.getLogger("LatencyReceiver")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Latency Receiver - link statistics")
    parser.add_argument("-a", "--address", default="localhost:5672", help="The host address")
    parser.add_argument("-c", "--count", type=int, default=1,
                        help="# of messages to receive (-1 == forever)")
    parser.add_argument("-t", "--target", default="topic", help="Topic address")
    parser.add_argument("-i", "--interval", type=int, default=0, help="Display interval (seconds)")
    parser.add_argument("-p", "--prefetch", type=int, default=100, help="Pre-fetch window size")
    parser.add_argument("-S", "--sequence", type=int, default=0, help="Expected first sequence #")
    parser.add_argument("-l", "--latency", action="store_true", help="Enable latency measurement")
    parser.add_argument("-u", "--csv", action="store_true", help="Output in CSV format")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase debug verbosity")
    return parser.parse_args(argv)


async def run(config: ReceiverConfig, stream: Optional[TextIO] = None) -> int:
    """Receive until the link closes or a signal arrives, then report.

    Returns:
        Process exit status.
    """
    state = SessionState(
        target_address=config.target,
        credit_window=config.credit_window,
        message_limit=config.message_count,
        expected_sequence=config.expected_sequence,
    )
    recorder = LatencyRecorder()
    reporter = Reporter(state, recorder, stream, config.csv_output, config.display_interval)
    trace = SampleTrace(stream, config.csv_output) if config.latency and config.verbosity else None

    transport = WebSocketTransport(config.peer_url())
    dispatcher = EventDispatcher(
        state,
        transport,
        recorder=recorder,
        reporter=reporter,
        measure_latency=config.latency,
        trace=trace,
    )

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    status = 0
    try:
        connected = await transport.connect()
        # drains the connect failure events when not connected
        await dispatcher.run(stop, interval_s=config.display_interval)
        if not connected:
            logger.error("Connection failed")
            status = 1
    except SequenceTypeError as e:
        logger.error(f"Error: {e}")
        status = 1
    finally:
        await transport.close()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

    if config.latency:
        reporter.report()
    logger.info(
        f"Stats: rx={state.received_count} dropped={state.dropped_count} "
        f"duplicate={state.duplicate_count}"
    )
    return status


def main(argv=None):
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    try:
        config = ReceiverConfig.from_args(args).validate()
    except ConfigError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    logger.debug(config.describe())

    try:
        sys.exit(asyncio.run(run(config)))
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
