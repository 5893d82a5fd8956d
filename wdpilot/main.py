from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any

import httpx
from rich import print as console_print
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from wdpilot.browser.client import Client
from wdpilot.config import Settings
from wdpilot.wire.commands import Locator
from wdpilot.wire.errors import CmdError, NewSessionError, ServerUnreachableError

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Open a page through a WebDriver server")
    parser.add_argument("--url", required=True, help="Page to open")
    parser.add_argument("--webdriver", help="WebDriver server URL (default: WEBDRIVER_URL)")
    parser.add_argument("--browser", choices=["chrome", "firefox"], help="Browser to request")
    parser.add_argument("--headless", action="store_true", help="Run the browser headless")
    parser.add_argument("--wait-for", metavar="SELECTOR", help="CSS selector to wait for after loading")
    parser.add_argument("--keep-open", action="store_true", help="Leave the session running on exit")
    return parser.parse_args(argv)


@retry(
    retry=retry_if_exception_type(httpx.TransportError),
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    reraise=True,
)
async def _check_status(webdriver_url: str, http_transport: httpx.AsyncBaseTransport | None = None) -> dict[str, Any]:
    async with httpx.AsyncClient(base_url=webdriver_url, timeout=10, transport=http_transport) as client:
        response = await client.get("status")
        logger.info(f"WebDriver status check: {response.status_code}")
        try:
            return response.json()
        except ValueError:
            return {}


async def _run(
    args: argparse.Namespace,
    settings: Settings,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any]:
    if args.webdriver:
        settings.webdriver_url = args.webdriver
    if args.browser:
        settings.browser = args.browser
    if args.headless:
        settings.headless = True

    try:
        await _check_status(settings.webdriver_url, http_transport)
    except httpx.TransportError as exc:
        raise ServerUnreachableError(str(exc)) from exc

    client = await Client.connect(
        settings.webdriver_url,
        settings.capabilities(),
        user_agent=settings.user_agent,
        timeout_seconds=settings.request_timeout_seconds,
        http_transport=http_transport,
    )
    async with client:
        await client.goto(args.url)
        if args.wait_for:
            await client.wait(settings.wait_config()).on_element(Locator.css(args.wait_for))
        result = {
            "url": await client.current_url(),
            "title": await client.title(),
            "session_id": await client.session_id(),
            "legacy": client.legacy,
        }
        if args.keep_open:
            await client.persist()
    return result


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        result = asyncio.run(_run(args, settings))
    except (CmdError, NewSessionError) as exc:
        console_print("\n" + "=" * 60)
        console_print("[bold red]FAILED[/bold red]")
        console_print(f"Error: {exc}")
        console_print("=" * 60 + "\n")
        return 1

    console_print("\n" + "=" * 60)
    console_print(f"URL:     {result['url']}")
    console_print(f"Title:   {result['title']}")
    console_print(f"Session: {result['session_id']}" + (" (kept open)" if args.keep_open else ""))
    console_print("=" * 60 + "\n")

    if settings.verbose:
        console_print("\nDetailed result:")
        console_print(result)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
