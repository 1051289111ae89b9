"""Session handle over the OpenNebula XML-RPC API.

One session is created per endpoint and passed explicitly into every
driver. Calls are synchronous; failures are translated into the error
taxonomy at this boundary so drivers never see pyone exceptions.
"""
import functools
import logging
import xmlrpc.client
from typing import Any, Optional, Union

import pyone

from .config.settings import EndpointConfig
from .errors import NotFound, RemoteCallError
from .utils.logging_config import timed_section

logger = logging.getLogger(__name__)


class OneSession:
    """Thin wrapper over ``pyone.OneServer``."""

    def __init__(self, config: EndpointConfig, server: Optional[Any] = None):
        self.config = config
        self.server = server or pyone.OneServer(
            config.endpoint, session=config.credentials
        )

    @classmethod
    def from_env(cls) -> "OneSession":
        return cls(EndpointConfig.from_env())

    @property
    def endpoint(self) -> str:
        return self.config.endpoint

    def call(
        self,
        method: str,
        *args: Any,
        kind: Optional[str] = None,
        identity: Union[int, str, None] = None,
    ) -> Any:
        """Invoke ``one.<method>`` with positional arguments.

        Args:
            method: API method without the ``one.`` prefix, e.g. ``"vn.hold"``
            *args: Positional arguments, in API order
            kind: Resource kind, for error context
            identity: Resource ID or name, for error context

        Raises:
            NotFound: the object does not exist
            RemoteCallError: any other API or transport failure
        """
        target = functools.reduce(getattr, method.split("."), self.server)
        logger.debug(f"one.{method}{args!r}")

        with timed_section(f"one.{method}", identity):
            try:
                return target(*args)
            except pyone.OneNoExistsException as e:
                raise NotFound(str(e), kind, identity) from e
            except pyone.OneException as e:
                raise RemoteCallError(
                    f"one.{method} failed: {e}", kind, identity, method=method
                ) from e
            except (OSError, xmlrpc.client.Error) as e:
                raise RemoteCallError(
                    f"one.{method} transport failure: {e}", kind, identity, method=method
                ) from e
            except (TypeError, OverflowError) as e:
                # xmlrpc cannot marshal None or ints beyond 32 bits
                raise RemoteCallError(
                    f"one.{method} arguments could not be encoded: {e}",
                    kind, identity, method=method,
                ) from e
