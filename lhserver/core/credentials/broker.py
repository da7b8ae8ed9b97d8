from __future__ import annotations

import ast
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Tuple

from lhserver.core.errors import AuthError


class CredentialBroker(ABC):
    """A privileged, host-local service that issues service-account credentials."""

    name: str = "broker"

    @abstractmethod
    def get_credentials(self, account: str) -> Tuple[str, str]:
        """Return (identifier, secret) or raise AuthError."""
        raise NotImplementedError


@dataclass
class GDBusCredentialBroker(CredentialBroker):
    """
    Calls the system-bus credential service through the `gdbus` CLI.

    The method signature is GetCredentials(s) -> (ss); gdbus prints the reply
    tuple in GVariant text form, e.g. ('lh-server', 's3cr3t').
    """

    gdbus_path: str = "gdbus"
    bus_name: str = "com.axis.HTTPConf1"
    object_path: str = "/com/axis/HTTPConf1/VAPIXServiceAccounts1"
    method: str = "com.axis.HTTPConf1.VAPIXServiceAccounts1.GetCredentials"
    timeout_seconds: float = 5.0
    name: str = "gdbus"

    def command(self, account: str) -> list[str]:
        return [
            self.gdbus_path,
            "call",
            "--system",
            "--dest",
            self.bus_name,
            "--object-path",
            self.object_path,
            "--method",
            self.method,
            "--timeout",
            str(max(1, int(self.timeout_seconds))),
            str(account),
        ]

    def get_credentials(self, account: str) -> Tuple[str, str]:
        try:
            proc = subprocess.run(  # noqa: S603
                self.command(account),
                capture_output=True,
                text=True,
                timeout=float(self.timeout_seconds) + 1.0,
                check=False,
            )
        except FileNotFoundError as e:
            raise AuthError("Credential broker client not installed.", broker=self.name, error=str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise AuthError("Credential broker timed out.", broker=self.name) from e
        except OSError as e:
            raise AuthError("Credential broker call failed.", broker=self.name, error=str(e)) from e
        if proc.returncode != 0:
            # stderr carries the D-Bus error name (AccessDenied, ServiceUnknown, ...)
            raise AuthError("Credential broker refused the request.", broker=self.name, returncode=proc.returncode, error=(proc.stderr or "").strip()[:200])
        return parse_gvariant_pair(proc.stdout)


def parse_gvariant_pair(text: str) -> Tuple[str, str]:
    raw = str(text or "").strip()
    try:
        value = ast.literal_eval(raw)
    except (ValueError, SyntaxError) as e:
        raise AuthError("Credential broker returned malformed output.") from e
    if not isinstance(value, tuple) or len(value) != 2 or not all(isinstance(x, str) for x in value):
        raise AuthError("Credential broker returned malformed output.")
    identifier, secret = value
    if not identifier or not secret:
        raise AuthError("Credential broker returned empty credentials.")
    return identifier, secret
