"""Authenticated API sessions to RouterOS devices."""

import hashlib
import logging
import ssl
from functools import partial
from typing import Any, Dict, List, Optional

import librouteros
from librouteros.exceptions import LibRouterosError

from ..config.models import DeviceConfig
from ..errors import AuthError, CollectError, ConnectError

API_PORT = 8728
API_PORT_TLS = 8729
DEFAULT_TIMEOUT = 5.0
# Words on the wire, passwords included, are UTF-8
API_ENCODING = "utf-8"

# Challenges are 16 raw bytes, sent as 32 hex characters
CHALLENGE_HEX_LENGTH = 32


def challenge_response(challenge: bytes, password: str) -> str:
    """
    Answer a pre-6.43 login challenge.

    Args:
        challenge: Raw challenge bytes sent by the device
        password: Clear-text password

    Returns:
        str: "00" followed by the lowercase hex MD5 of 0x00 + password + challenge
    """
    md5 = hashlib.md5()
    md5.update(b"\x00")
    md5.update(password.encode("utf-8"))
    md5.update(challenge)
    return "00" + md5.hexdigest()


def _challenge_hex(value: Any) -> str:
    # librouteros turns all-digit words into ints, which drops leading zeros
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value).zfill(CHALLENGE_HEX_LENGTH)
    return str(value)


def login(api: Any, username: str, password: str) -> None:
    """
    Log in with whichever protocol variant the device speaks.

    The first request always carries the clear-text password. Devices on
    6.43 and later accept it and answer with a bare ``!done``; older firmware
    ignores the password and answers with a ``ret`` challenge that must be
    hashed and sent back in a second request.

    Args:
        api: librouteros Api instance (anything with ``rawCmd``)
        username: Login name
        password: Clear-text password

    Raises:
        AuthError: If the device rejects either request or the challenge is malformed
    """
    try:
        reply = tuple(api.rawCmd("/login", f"=name={username}", f"=password={password}"))
    except LibRouterosError as e:
        raise AuthError(f"/login rejected: {e}") from e
    except UnicodeError as e:
        raise AuthError(f"/login: credentials cannot be encoded: {e}") from e

    challenge = next((r["ret"] for r in reply if "ret" in r), None)
    if challenge is None:
        return

    try:
        challenge_bytes = bytes.fromhex(_challenge_hex(challenge))
    except ValueError as e:
        raise AuthError(f"/login: invalid ret (challenge) hex string received: {e}") from e

    response = challenge_response(challenge_bytes, password)
    try:
        tuple(api.rawCmd("/login", f"=name={username}", f"=response={response}"))
    except (LibRouterosError, UnicodeError) as e:
        raise AuthError(f"/login challenge response rejected: {e}") from e


class DeviceSession:
    """A live, authenticated connection bound to one device for one scrape."""

    def __init__(self, api: Any, device: DeviceConfig, logger: logging.Logger):
        self._api = api
        self.device = device
        self.logger = logger
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def run(self, command: str, *words: str) -> List[Dict[str, Any]]:
        """
        Run one API command and return its records.

        Args:
            command: Command word, e.g. "/interface/print"
            *words: Attribute (``=k=v``) or query (``?k=v``) words

        Returns:
            List[Dict[str, Any]]: One dict per ``!re`` record, plus the ``!done``
            attributes when the device sent any

        Raises:
            CollectError: If the session is closed or the query fails
        """
        if self._closed:
            raise CollectError(f"{command}: session already closed", device=self.device.name)

        try:
            return [dict(record) for record in self._api.rawCmd(command, *words)]
        except (LibRouterosError, OSError) as e:
            raise CollectError(f"{command}: {e}", device=self.device.name) from e

    def close(self) -> None:
        """Close the connection; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._api.close()
            self.logger.debug("API connection closed", extra={"device": self.device.name})
        except (LibRouterosError, OSError) as e:
            self.logger.warning(
                f"Error closing API connection: {e}",
                extra={"device": self.device.name}
            )

    def __enter__(self) -> "DeviceSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SessionEstablisher:
    """Dial and authenticate device sessions."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        use_tls: bool = False,
        insecure_tls: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize session establisher.

        Args:
            timeout: Dial timeout in seconds
            use_tls: Wrap connections in TLS (API-SSL service)
            insecure_tls: Accept any certificate when using TLS
            logger: Logger instance
        """
        self.timeout = timeout
        self.use_tls = use_tls
        self.insecure_tls = insecure_tls
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)

    def port_for(self, device: DeviceConfig) -> int:
        """Configured port, or the API default for the transport in use."""
        if device.port:
            return device.port
        return API_PORT_TLS if self.use_tls else API_PORT

    def _ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if self.insecure_tls:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    @staticmethod
    def _login(api: Any, username: str, password: str) -> None:
        # librouteros only closes the transport for its own fatal errors
        try:
            login(api, username, password)
        except Exception:
            api.close()
            raise

    def open(self, device: DeviceConfig) -> DeviceSession:
        """
        Dial the device and log in.

        Args:
            device: Resolved device

        Returns:
            DeviceSession: Ready-to-query session; the caller must close it

        Raises:
            ConnectError: If the device cannot be reached within the timeout
            AuthError: If login fails
        """
        port = self.port_for(device)
        extra = {"device": device.name}
        kwargs = {
            "port": port,
            "timeout": self.timeout,
            "encoding": API_ENCODING,
            "login_method": self._login,
        }
        if self.use_tls:
            kwargs["ssl_wrapper"] = partial(
                self._ssl_context().wrap_socket,
                server_hostname=device.address
            )

        self.logger.debug(f"Dialing {device.address}:{port}", extra=extra)
        try:
            api = librouteros.connect(
                host=device.address,
                username=device.user,
                password=device.password,
                **kwargs
            )
        except AuthError as e:
            e.device = device.name
            raise
        except (OSError, LibRouterosError) as e:
            raise ConnectError(
                f"error dialing {device.address}:{port}: {e}",
                device=device.name
            ) from e

        self.logger.debug("Login complete", extra=extra)
        return DeviceSession(api, device, self.logger)
