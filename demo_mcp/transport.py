"""
MCP Transport layer implementations.

Provides the persistent-connection transport used by the streaming
session loop:
- StdioTransport: newline-delimited JSON via stdin/stdout
"""

import sys
import json
import logging
from abc import ABC, abstractmethod
from typing import Optional

from .protocol import (
    ErrorCode,
    MCPError,
    TransportReadError,
    TransportWriteError,
)


logger = logging.getLogger(__name__)


def encode_error_envelope(message: str) -> str:
    """Encode a best-effort error envelope that is always serialisable."""
    error = MCPError.from_code(ErrorCode.INTERNAL_ERROR, message)
    return json.dumps({"error": error.to_dict()})


class Transport(ABC):
    """Abstract base class for MCP transports."""

    @abstractmethod
    async def send(self, message: dict) -> None:
        """Send a message."""
        pass

    @abstractmethod
    async def receive(self) -> Optional[str]:
        """Receive one raw message. Returns None on EOF/close."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the transport."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class StdioTransport(Transport):
    """
    Transport using stdin/stdout for communication.

    One JSON message per line in both directions.
    """

    def __init__(
        self,
        input_stream=None,
        output_stream=None,
    ):
        self.input = input_stream or sys.stdin
        self.output = output_stream or sys.stdout
        self._closed = False

    async def send(self, message: dict) -> None:
        """Write a message as a single line to stdout."""
        if self._closed:
            raise TransportWriteError("Transport is closed")

        try:
            content = json.dumps(message)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to encode response: {e}")
            content = encode_error_envelope(f"Failed to encode response: {e}")

        try:
            self.output.write(content + "\n")
            self.output.flush()
        except (OSError, ValueError) as e:
            raise TransportWriteError(f"Failed to send: {e}") from e

    async def receive(self) -> Optional[str]:
        """Read the next line from stdin, without its terminator."""
        if self._closed:
            return None

        try:
            line = self.input.readline()
        except UnicodeDecodeError as e:
            raise TransportReadError(f"Undecodable input: {e}") from e
        except ValueError as e:
            # readline on a closed file
            if "closed" in str(e).lower():
                return None
            raise TransportReadError(str(e)) from e
        except OSError as e:
            raise TransportReadError(str(e)) from e

        if not line:
            return None  # EOF

        if isinstance(line, bytes):
            try:
                line = line.decode("utf-8")
            except UnicodeDecodeError as e:
                raise TransportReadError(f"Undecodable input: {e}") from e

        return line.rstrip("\r\n")

    async def close(self) -> None:
        """Close the transport."""
        self._closed = True
