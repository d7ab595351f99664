#!/usr/bin/env python3
import asyncio, signal, sys, threading
from config.logging_config import configure
from config.app_config import settings
from huereset.core.patterns import LoggingStatusObserver, StatusReporter
from huereset.orchestration import ResetState
from huereset.services import HueResetService


def _stdin_reader(loop: asyncio.AbstractEventLoop, lines: asyncio.Queue):
    # daemon thread: a blocked readline must not hold up interpreter exit
    for line in sys.stdin:
        loop.call_soon_threadsafe(lines.put_nowait, line)
    loop.call_soon_threadsafe(lines.put_nowait, None)


async def _drain(service: HueResetService, inflight: set):
    """Stdin closed: let running cycles reach IDLE before stopping."""
    if inflight:
        await asyncio.gather(*inflight, return_exceptions=True)
    while service.orchestrator.state is not ResetState.IDLE:
        await asyncio.sleep(0.5)


async def async_main():
    configure()
    reporter = StatusReporter()
    reporter.subscribe(LoggingStatusObserver())

    service = HueResetService(settings, reporter=reporter)
    await service.startup()

    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass

    lines: asyncio.Queue = asyncio.Queue()
    threading.Thread(target=_stdin_reader, args=(loop, lines), daemon=True).start()
    reporter.log("Scan a QR code or type a 6-character serial, one per line.")

    inflight = set()

    async def consume():
        while True:
            line = await lines.get()
            if line is None:
                await _drain(service, inflight)
                stop.set()
                return
            task = asyncio.create_task(service.intake.handle_line(line))
            inflight.add(task)
            task.add_done_callback(inflight.discard)

    consumer = asyncio.create_task(consume())
    try:
        await stop.wait()
    finally:
        consumer.cancel()
        await service.shutdown()


def main():
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        sys.exit("🌙  graceful shutdown")


if __name__ == "__main__":
    main()
