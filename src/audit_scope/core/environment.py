"""Environment metadata capture.

EnvironmentInfoProvider gathers the values stored in
AuditEventEnvironment. Each value comes from its own overridable method,
so tests and hosts with better sources (a web request's authenticated
user, a container's pod name) can subclass and replace individual pieces.
"""

from __future__ import annotations

import getpass
import locale
import logging
import os
import socket
import sys
from types import FrameType
from typing import Optional

from audit_scope.types import AuditEventEnvironment

logger = logging.getLogger(__name__)

# Frames from these modules are skipped when resolving the calling method
_INTERNAL_PREFIXES = ("audit_scope.", "contextlib")


class EnvironmentInfoProvider:
    """Default environment source for new scopes.

    Host-level values (machine and domain name) are resolved once per
    provider instance; user, culture and caller are resolved per scope.

    Example:
        >>> class RequestEnvironment(EnvironmentInfoProvider):
        ...     def user_name(self):
        ...         return current_request().user.username
        >>> set_environment_provider(RequestEnvironment())
    """

    def __init__(self) -> None:
        self._machine_name: Optional[str] = None
        self._domain_name: Optional[str] = None
        self._host_resolved = False

    def collect(self) -> AuditEventEnvironment:
        """Gather a fresh environment record."""
        return AuditEventEnvironment(
            user_name=self.user_name(),
            machine_name=self.machine_name(),
            domain_name=self.domain_name(),
            calling_method_name=self.calling_method_name(),
            exception=None,
            culture=self.culture(),
        )

    def user_name(self) -> Optional[str]:
        try:
            return getpass.getuser()
        except (KeyError, OSError, ImportError) as e:
            logger.debug(f"Could not resolve user name: {e}")
            return None

    def machine_name(self) -> Optional[str]:
        self._resolve_host()
        return self._machine_name

    def domain_name(self) -> Optional[str]:
        self._resolve_host()
        return self._domain_name

    def culture(self) -> Optional[str]:
        try:
            name = locale.getlocale()[0]
        except ValueError as e:
            logger.debug(f"Could not resolve locale: {e}")
            name = None
        if name:
            return name
        lang = os.environ.get("LC_ALL") or os.environ.get("LANG")
        if lang:
            return lang.split(".")[0]
        return None

    def calling_method_name(self) -> Optional[str]:
        """Qualified name of the first frame outside this library."""
        frame: Optional[FrameType] = sys._getframe(1)
        while frame is not None:
            module = frame.f_globals.get("__name__", "")
            if not module.startswith(_INTERNAL_PREFIXES) and module != "audit_scope":
                code = frame.f_code
                name = getattr(code, "co_qualname", code.co_name)
                return f"{module}.{name}" if module else name
            frame = frame.f_back
        return None

    def _resolve_host(self) -> None:
        if self._host_resolved:
            return
        self._host_resolved = True
        try:
            hostname = socket.gethostname()
        except OSError as e:
            logger.debug(f"Could not resolve host name: {e}")
            return
        self._machine_name = hostname.split(".")[0]

        domain = os.environ.get("USERDOMAIN")
        if not domain:
            fqdn = socket.getfqdn(hostname)
            if "." in fqdn:
                domain = fqdn.split(".", 1)[1]
            elif "." in hostname:
                domain = hostname.split(".", 1)[1]
        self._domain_name = domain or None
