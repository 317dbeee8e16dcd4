"""
Protocol version negotiation.

A client is expected to complete the handshake before calling tools, but
tool calls are not refused without one.
"""

import logging
import threading
from typing import Dict, Optional, Union

from .protocol import (
    ErrorCode,
    ErrorResponse,
    InitializeRequest,
    InitializeResponse,
    ServerInfo,
)


logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"

CAPABILITIES: Dict[str, bool] = {
    "tools": True,
    "batch": True,
    "introspection": True,
}


class HandshakeState:
    """
    Whether a client completed initialization.

    Goes from uninitialized to initialized once and never back.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def mark_initialized(self) -> bool:
        """Set the flag. Returns True if this call made the transition."""
        with self._lock:
            if self._initialized:
                return False
            self._initialized = True
            return True


class HandshakeGate:
    """Validates the offered protocol version and answers the handshake."""

    def __init__(
        self,
        server_info: ServerInfo,
        state: Optional[HandshakeState] = None,
        protocol_version: str = PROTOCOL_VERSION,
        capabilities: Optional[Dict[str, bool]] = None,
    ):
        self.server_info = server_info
        self.state = state or HandshakeState()
        self.protocol_version = protocol_version
        self._capabilities = dict(capabilities if capabilities is not None else CAPABILITIES)

    @property
    def capabilities(self) -> Dict[str, bool]:
        return dict(self._capabilities)

    def negotiate(
        self, request: InitializeRequest
    ) -> Union[InitializeResponse, ErrorResponse]:
        """Handle an initialize request."""
        if request.protocol_version != self.protocol_version:
            logger.warning(
                f"Rejected handshake with protocol version {request.protocol_version!r}"
            )
            return ErrorResponse.from_code(
                ErrorCode.UNSUPPORTED_VERSION,
                f"Unsupported protocol version: {request.protocol_version}",
                data={
                    "requested": request.protocol_version,
                    "supported": [self.protocol_version],
                },
            )

        if self.state.mark_initialized():
            logger.info(f"Client initialized with protocol {self.protocol_version}")
            if request.params:
                logger.info(f"Client info: {request.params}")
        else:
            logger.debug("Repeated handshake, session already initialized")

        return InitializeResponse(
            protocol_version=self.protocol_version,
            capabilities=self.capabilities,
            server_info=self.server_info,
        )
