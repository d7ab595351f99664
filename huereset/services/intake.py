"""Turns manual input and decoded QR text into orchestrator submissions."""
from __future__ import annotations
import logging
import time
from typing import Callable, Optional

from huereset.core.exceptions import ResetOutcome
from huereset.core.patterns import LogLevel, StatusReporter
from huereset.serials import SerialExtractionPipeline, extract_z_field, normalize_serial


class SerialIntake:
    def __init__(self, orchestrator, reporter: StatusReporter,
                 pipeline: Optional[SerialExtractionPipeline] = None,
                 qr_repeat_window: float = 1.0,
                 clock: Callable[[], float] = time.monotonic):
        self.orchestrator = orchestrator
        self.reporter = reporter
        self.pipeline = pipeline or SerialExtractionPipeline()
        self.qr_repeat_window = qr_repeat_window
        self.clock = clock
        self.last_qr_text = ""
        self.last_qr_at = 0.0
        self.log = logging.getLogger(self.__class__.__name__)

    async def handle_qr_text(self, text: str) -> Optional[ResetOutcome]:
        """A scanner reports the same code many times a second; repeats inside the window are dropped."""
        now = self.clock()
        if text and text == self.last_qr_text and now - self.last_qr_at < self.qr_repeat_window:
            return None
        self.last_qr_text, self.last_qr_at = text, now
        if not text:
            return None

        if not self.pipeline.applies(text):
            self.reporter.log("QR detected, but no Z field or serial found.", LogLevel.WARNING,
                              outcome=ResetOutcome.INVALID_SERIAL)
            return ResetOutcome.INVALID_SERIAL

        serial = self.pipeline.process(text)
        if serial is None:
            self.reporter.log("QR detected, but failed to derive serial from Z field.", LogLevel.WARNING,
                              outcome=ResetOutcome.INVALID_SERIAL)
            return ResetOutcome.INVALID_SERIAL

        return await self.orchestrator.submit(serial, "qr")

    async def handle_manual(self, raw: str) -> ResetOutcome:
        serial = normalize_serial((raw or "").strip())
        if serial is None:
            self.reporter.log("Enter a 6-character serial (hex).", LogLevel.WARNING,
                              outcome=ResetOutcome.INVALID_SERIAL)
            return ResetOutcome.INVALID_SERIAL
        return await self.orchestrator.submit(serial, "manual")

    async def handle_line(self, line: str) -> Optional[ResetOutcome]:
        """Console input: a bare serial is manual entry, anything else is pasted QR text."""
        line = (line or "").strip()
        if not line:
            return None
        if extract_z_field(line) is None and normalize_serial(line) is not None:
            return await self.handle_manual(line)
        return await self.handle_qr_text(line)
