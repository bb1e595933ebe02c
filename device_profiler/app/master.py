import argparse
import asyncio
import json
import signal
import sys
import time
from pathlib import Path
from typing import Optional

import aiofiles

from device_profiler import __version__
from device_profiler.app.session import DemoSession
from device_profiler.cli.common import (
    add_common_cli_arguments,
    non_negative_float,
    non_negative_int,
    positive_float,
    positive_int,
)
from device_profiler.core.api import APIServer, ProfilerAPIController
from device_profiler.core.instrumentation import DeviceProfiler, FrameScheduler, ReportQuery
from device_profiler.core.logging_config import configure_logging
from device_profiler.core.logging_utils import get_module_logger
from device_profiler.core.paths import PROFILER_LOG_FILE, ensure_directories
from device_profiler.core.settings import ProfilerSettings, load_settings_async, save_settings_async


logger = get_module_logger(__name__)


def parse_args(argv: Optional[list[str]] = None, settings: Optional[ProfilerSettings] = None) -> argparse.Namespace:
    """Parse command-line arguments with config file defaults."""
    settings = settings or ProfilerSettings()

    parser = argparse.ArgumentParser(
        description="Device Profiler - record per-frame call traces of a device API"
    )

    add_common_cli_arguments(
        parser,
        default_log_level=settings.log_level,
        default_console_output=settings.console_output,
    )

    parser.add_argument(
        "--frames",
        type=positive_int,
        default=120,
        help="Number of frames to render (default: 120)"
    )

    parser.add_argument(
        "--fps",
        type=positive_float,
        default=60.0,
        help="Target frame rate (default: 60)"
    )

    parser.add_argument(
        "--record-at",
        type=non_negative_int,
        default=None,
        help="Frame before which recording is armed (default: 0 unless record_on_start is set)"
    )

    parser.add_argument(
        "--stop-at",
        type=non_negative_int,
        default=None,
        help="Frame before which recording is stopped (default: record until the end)"
    )

    parser.add_argument(
        "--max-frames",
        type=positive_int,
        default=settings.max_frames_to_record,
        help=f"Maximum number of frames shown by the report (default: {settings.max_frames_to_record})"
    )

    parser.add_argument(
        "--latency-ms",
        type=non_negative_float,
        default=5.0,
        help="Simulated latency of asynchronous device calls (default: 5 ms)"
    )

    parser.add_argument(
        "--trace-frame",
        type=int,
        default=0,
        help="Frame whose call trace is printed; out-of-range values are clamped (default: 0)"
    )

    parser.add_argument(
        "--report-file",
        type=Path,
        default=None,
        help="Write the full JSON report to this file"
    )

    parser.add_argument(
        "--serve",
        action="store_true",
        default=False,
        help="Keep the REST API up after rendering"
    )

    parser.add_argument(
        "--serve-seconds",
        type=positive_float,
        default=None,
        help="How long to serve the REST API (default: until interrupted)"
    )

    parser.add_argument(
        "--host",
        type=str,
        default=settings.api_host,
        help=f"REST API host (default: {settings.api_host})"
    )

    parser.add_argument(
        "--port",
        type=positive_int,
        default=settings.api_port,
        help=f"REST API port (default: {settings.api_port})"
    )

    parser.add_argument(
        "--save-config",
        action="store_true",
        default=False,
        help="Store the resolved capacity, logging and API options as new config defaults"
    )

    return parser.parse_args(argv)


def print_report(report: ReportQuery, trace_frame: int) -> None:
    summaries = report.frame_summaries()
    if not summaries:
        print("No frames recorded")
        return

    print(f"Recorded {report.recorded_frame_count()} frames ({len(summaries)} shown)")
    for summary in summaries:
        marker = "  (slow)" if summary.slow else ""
        print(f"  {summary.summary_line()}{marker}")

    stats = report.timing_stats()
    print(
        f"Frame time: mean {stats.mean_ms:.2f} ms, median {stats.median_ms:.2f} ms, "
        f"p95 {stats.p95_ms:.2f} ms, max {stats.max_ms:.2f} ms"
    )
    print()
    for line in report.render_trace(trace_frame):
        print(line)


async def write_report(report: ReportQuery, path: Path) -> Path:
    path = path.expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(json.dumps(report.to_dict(), indent=2))
    logger.info("Report written to %s", path)
    return path


async def serve(server: APIServer, seconds: Optional[float]) -> None:
    """Serve the REST API until the timeout elapses or a signal arrives."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass  # Windows doesn't support add_signal_handler

    await server.start()
    print(f"Serving profiler API on {server.url}/api/v1 (Ctrl+C to stop)")
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass
    finally:
        await server.stop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                pass


async def main(argv: Optional[list[str]] = None) -> None:
    """
    Main entry point for the device profiler demo.

    Sequence:
    1. Load config defaults and parse the command line
    2. Instrument the stub device API and acquire a device
    3. Render the requested frames, arming/stopping recording between frames
    4. Print frame summaries and one trace, optionally write the JSON report
    5. Optionally keep the REST API up for inspection
    """
    settings = await load_settings_async()
    args = parse_args(argv, settings)

    ensure_directories()

    log_file = args.log_file or PROFILER_LOG_FILE
    configure_logging(
        args.log_level,
        force=True,
        console=args.console_output,
        log_file=log_file,
    )

    settings = settings.with_overrides(
        max_frames_to_record=args.max_frames,
        log_level=args.log_level,
        console_output=args.console_output,
        api_host=args.host,
        api_port=args.port,
    )

    if args.save_config:
        if await save_settings_async(settings):
            logger.info("Saved settings as config defaults")
        else:
            logger.warning("Could not save settings as config defaults")

    record_at = args.record_at
    if record_at is None and not settings.record_on_start:
        record_at = 0

    logger.info("=" * 60)
    logger.info("Device Profiler %s", __version__)
    logger.info("Frames: %d at %.1f fps, capacity %d", args.frames, args.fps, settings.max_frames_to_record)
    logger.info("Log file: %s", log_file)
    logger.info("=" * 60)

    profiler = DeviceProfiler.from_settings(settings)
    session = DemoSession(profiler, latency=args.latency_ms / 1000.0)
    scheduler = FrameScheduler(profiler, fps=args.fps)

    started = time.perf_counter()
    await session.setup()
    await session.run(scheduler, args.frames, record_at=record_at, stop_at=args.stop_at)
    await session.drain(timeout=5.0)
    logger.info("Rendered %d frames in %.3fs", args.frames, time.perf_counter() - started)

    print_report(profiler.report, args.trace_frame)

    if args.report_file is not None:
        await write_report(profiler.report, args.report_file)

    if args.serve:
        server = APIServer(
            ProfilerAPIController(profiler, version=__version__),
            host=settings.api_host,
            port=settings.api_port,
        )
        await serve(server, args.serve_seconds)


def run(argv: Optional[list[str]] = None) -> int:
    try:
        asyncio.run(main(argv))
        return 0
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 130
    except Exception as exc:  # pragma: no cover - fatal guard
        print(f"Fatal error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(run())
