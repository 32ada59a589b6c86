from __future__ import annotations

import argparse
import os
import threading
import time
import webbrowser

import uvicorn
from loguru import logger


def _open_browser_delayed(url: str, delay_s: float = 1.0) -> None:
    time.sleep(max(0.0, delay_s))
    try:
        opened = webbrowser.open(url)
    except Exception as exc:
        logger.debug(f"Could not open browser for {url}: {exc}")
        return
    if not opened:
        logger.info(f"No browser available; open {url} manually")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="cleanwater-server",
        description="Run the Clean Water Defense API with a realtime game clock.",
    )
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--config", default="", help="Optional JSON/YAML rules file.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for slowed-drop movement.")
    parser.add_argument("--poll-ms", type=int, default=50, help="Realtime clock pump period.")
    parser.add_argument("--no-browser", action="store_true")
    parser.add_argument("--log-level", default="info")
    args = parser.parse_args(argv)

    if args.config:
        os.environ["CLEANWATER_CONFIG"] = args.config
    if args.seed is not None:
        os.environ["CLEANWATER_SEED"] = str(args.seed)

    # Import after env setup so api.py builds its service from the chosen rules.
    from cleanwater.api import app as api_app, service
    from cleanwater.service import RealtimeDriver

    driver = RealtimeDriver(service, poll_ms=args.poll_ms, max_catch_up_ms=service.rules.tick_ms * 2)
    driver.start()

    url = f"http://{args.host}:{args.port}/docs"
    logger.info(f"Clean Water Defense API on {url}")
    if not args.no_browser:
        threading.Thread(target=_open_browser_delayed, args=(url, 1.0), daemon=True).start()

    try:
        uvicorn.run(api_app, host=args.host, port=args.port, log_level=args.log_level)
    finally:
        driver.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
