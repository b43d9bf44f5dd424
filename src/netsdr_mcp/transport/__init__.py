"""Transport layer: raw TCP control channel."""

from .tcp_connection import TcpConnection, Transport
