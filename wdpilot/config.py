from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from dotenv import find_dotenv, load_dotenv

from wdpilot.control.wait import WaitConfig

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


@dataclass(slots=True)
class Settings:
    webdriver_url: str = "http://localhost:4444"
    browser: str = "chrome"
    headless: bool = False
    user_agent: str | None = None
    request_timeout_seconds: float = 60.0
    wait_timeout_seconds: float = 30.0
    wait_period_seconds: float = 0.25
    log_level: str = "INFO"
    verbose: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        load_dotenv(find_dotenv(usecwd=True))
        browser = os.getenv("BROWSER", "chrome").strip().lower()
        if browser not in {"chrome", "firefox"}:
            raise ValueError(f"Unsupported BROWSER {browser!r}; expected chrome or firefox")
        return cls(
            webdriver_url=os.getenv("WEBDRIVER_URL", "http://localhost:4444"),
            browser=browser,
            headless=_flag("HEADLESS"),
            user_agent=os.getenv("USER_AGENT") or None,
            request_timeout_seconds=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "60")),
            wait_timeout_seconds=float(os.getenv("WAIT_TIMEOUT_SECONDS", "30")),
            wait_period_seconds=float(os.getenv("WAIT_PERIOD_SECONDS", "0.25")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            verbose=_flag("VERBOSE"),
        )

    def capabilities(self) -> dict[str, Any]:
        if self.browser == "firefox":
            caps: dict[str, Any] = {"browserName": "firefox"}
            if self.headless:
                caps["moz:firefoxOptions"] = {"args": ["-headless"]}
            return caps

        caps = {"browserName": "chrome"}
        if self.headless:
            caps["goog:chromeOptions"] = {"args": ["--headless=new", "--disable-gpu"]}
        return caps

    def wait_config(self) -> WaitConfig:
        return WaitConfig(timeout=self.wait_timeout_seconds, period=self.wait_period_seconds)
