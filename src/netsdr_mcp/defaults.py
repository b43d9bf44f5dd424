"""Default ports, sizes and timeouts for the NetSDR client."""

TCP_PORT = 50000                # TCP control channel
UDP_PORT = 60000                # UDP IQ data channel

HEADER_SIZE = 4                 # 2-byte frame header + 2-byte item code / sequence number
MAX_FRAME_LENGTH = 0x1FFF       # 13-bit length field

READ_BUFFER_SIZE = 1024         # one recv() per command response
UDP_BUFFER_SIZE = 65536

CONNECT_TIMEOUT = 5.0
READ_TIMEOUT = 5.0
RECEIVE_POLL_INTERVAL = 0.2     # how often the capture loop checks for stop
CAPTURE_STOP_TIMEOUT = 5.0

DEFAULT_OUTPUT_PATH = "iq_data.bin"
