"""Live page observation via Playwright (optional dependency).

Each RTCPeerConnection the page creates gets its own addIceCandidate
wrapper; the shared prototype is left untouched. Candidate records are
forwarded to Python through an exposed binding, one CandidateSource per
connection.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from rtcleak.detector.source import CandidateSource

if TYPE_CHECKING:
    from rtcleak.detector.pipeline import LeakDetector

logger = logging.getLogger(__name__)

BINDING_NAME = "__rtcleakCandidate"

INIT_SCRIPT = """
(() => {
  const Native = window.RTCPeerConnection || window.webkitRTCPeerConnection;
  if (!Native) return;
  let nextId = 0;

  class ObservedPeerConnection extends Native {
    constructor(...args) {
      super(...args);
      const id = `pc-${++nextId}`;
      const nativeAdd = super.addIceCandidate.bind(this);
      Object.defineProperty(this, 'addIceCandidate', {
        value: function (candidate, ...rest) {
          try {
            let record = null;
            if (typeof candidate === 'string') record = candidate;
            else if (candidate && typeof candidate.candidate === 'string') record = candidate.candidate;
            window.%(binding)s(id, record);
          } catch (e) {}
          return nativeAdd(candidate, ...rest);
        },
        writable: true,
        configurable: true,
      });
    }
  }

  window.RTCPeerConnection = ObservedPeerConnection;
  if (window.webkitRTCPeerConnection) window.webkitRTCPeerConnection = ObservedPeerConnection;
})();
""" % {"binding": BINDING_NAME}


class BrowserSession:
    """Routes page-side candidate callbacks to per-connection sources."""

    def __init__(self, detector: LeakDetector) -> None:
        self.detector = detector
        self.sources: dict[str, CandidateSource] = {}

    def on_candidate(self, _source: Any, connection_id: str, record: str | None) -> None:
        source = self.sources.get(connection_id)
        if source is None:
            source = CandidateSource(name=connection_id)
            self.detector.attach(source)
            self.sources[connection_id] = source
        source.emit(record)

    def end(self) -> None:
        for source in self.sources.values():
            source.end()


async def observe_page(
    url: str,
    detector: LeakDetector,
    duration: float = 30.0,
    headless: bool = True,
) -> bool:
    """Open *url* and observe its peer connections for *duration* seconds.

    Returns False when detection could not be installed (Playwright missing
    or the browser failed to start).
    """
    try:
        from playwright.async_api import Error as PlaywrightError  # type: ignore[import-not-found]
        from playwright.async_api import async_playwright  # type: ignore[import-not-found]
    except ImportError:
        logger.warning("Playwright is not installed; WebRTC detection disabled")
        return False

    session = BrowserSession(detector)
    try:
        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=headless)
            try:
                context = await browser.new_context()
                await context.expose_binding(BINDING_NAME, session.on_candidate)
                await context.add_init_script(INIT_SCRIPT)
                page = await context.new_page()
                await page.goto(url)
                await asyncio.sleep(duration)
            finally:
                session.end()
                await browser.close()
    except PlaywrightError as exc:
        logger.warning("Browser observation failed, WebRTC detection disabled: %s", exc)
        return False

    return True
