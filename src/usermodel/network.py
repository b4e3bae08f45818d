"""Wireless network identifier lookup."""

from __future__ import annotations

import logging
import shutil
import subprocess
import sys
import threading
from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

LOGGER = logging.getLogger(__name__)

ProbeCallback = Callable[[Exception | None, str | None], None]
AIRPORT = (
    "/System/Library/PrivateFrameworks/Apple80211.framework/Versions/Current/Resources/airport"
)
PROBE_TIMEOUT_SECONDS = 5.0


class NetworkProbeError(RuntimeError):
    """Raised when no network identifier could be determined."""


@runtime_checkable
class NetworkProbe(Protocol):
    def probe(self, callback: ProbeCallback) -> None:
        """Look up the network identifier and report it through ``callback``."""


class SSIDProbe:
    """Runs a platform utility in a background thread to find the current SSID."""

    def __init__(
        self,
        *,
        platform: str | None = None,
        runner: Callable[[Sequence[str]], str] | None = None,
        background: bool = True,
    ) -> None:
        self._platform = platform or sys.platform
        self._runner = runner or _run_command
        self._background = background

    def probe(self, callback: ProbeCallback) -> None:
        if not self._background:
            self._report(callback)
            return
        thread = threading.Thread(
            target=self._report, args=(callback,), name="usermodel-ssid", daemon=True
        )
        thread.start()

    def lookup(self) -> str:
        errors: list[str] = []
        for command, parser in self._strategies():
            try:
                output = self._runner(command)
            except (OSError, subprocess.SubprocessError) as exc:
                errors.append(f"{command[0]}: {exc}")
                continue
            ssid = parser(output)
            if ssid:
                return ssid
            errors.append(f"{command[0]}: no SSID reported")
        raise NetworkProbeError("; ".join(errors) or "no SSID lookup available on this platform")

    def _report(self, callback: ProbeCallback) -> None:
        try:
            ssid = self.lookup()
        except NetworkProbeError as exc:
            callback(exc, None)
            return
        callback(None, ssid)

    def _strategies(self) -> list[tuple[list[str], Callable[[str], str | None]]]:
        if self._platform == "darwin":
            return [([AIRPORT, "-I"], _parse_ssid_field)]
        if self._platform.startswith("win"):
            return [(["netsh", "wlan", "show", "interfaces"], _parse_ssid_field)]
        strategies: list[tuple[list[str], Callable[[str], str | None]]] = []
        if shutil.which("iwgetid"):
            strategies.append((["iwgetid", "-r"], _parse_plain))
        if shutil.which("nmcli"):
            strategies.append((["nmcli", "-t", "-f", "active,ssid", "dev", "wifi"], _parse_nmcli))
        return strategies


def _run_command(command: Sequence[str]) -> str:
    completed = subprocess.run(
        list(command),
        capture_output=True,
        text=True,
        timeout=PROBE_TIMEOUT_SECONDS,
        check=True,
    )
    return completed.stdout


def _parse_plain(output: str) -> str | None:
    value = output.strip()
    return value or None


def _parse_nmcli(output: str) -> str | None:
    for line in output.splitlines():
        active, _, ssid = line.partition(":")
        if active.strip().lower() == "yes" and ssid.strip():
            return ssid.strip()
    return None


def _parse_ssid_field(output: str) -> str | None:
    for line in output.splitlines():
        key, _, value = line.strip().partition(":")
        if key.strip() == "SSID" and value.strip():
            return value.strip()
    return None


__all__ = ["NetworkProbe", "NetworkProbeError", "ProbeCallback", "SSIDProbe"]
