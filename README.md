# omronfins

A client library for the Omron FINS protocol. It talks to PLCs over UDP or
over FINS/TCP, which includes the node-address handshake. Memory is addressed
with plain strings such as `D100`, `WR200` or `CIO0.00`.

The package has no runtime dependencies.

## Addresses

`omronfins.address.parse_address` returns a `ParsedAddress` with the
`area_code`, `address`, `bit_no`, `is_bit` and `original` fields. It accepts:

- word addresses: `D100`, `CIO100`, `WR200`, `HR300`, `A0`, `T0`, `C0`
- bit addresses: `CIO0.00`, `WR10.15`, `HR200.01`, `A5.0`

Case and spaces do not matter. Bit addresses are allowed only in the CIO, WR,
HR and A areas. The bit number must be 0 to 15 and the address 0 to 65535.
A malformed address raises `InvalidAddressError`.

## Reading and writing

```python
from omronfins.client import FinsClient
from omronfins.models import default_config

config = default_config("192.168.250.1")
config.local_node = 0x01
config.server_node = 0x64

with FinsClient(config, use_tcp=False) as client:
    client.connect()

    value = client.read_word("D100")
    values = client.read_words("D100", 10)
    client.write_word("D100", 1234)
    client.write_words("D200", [111, 222, 333])

    raw = client.read_bytes("D300", 4)
    client.write_bytes("D400", b"FINS Protocol")

    flag = client.read_bit("CIO0.00")
    client.write_bit("WR10.15", True)

    print(client.stats())
```

Pass `use_tcp=True` to use FINS/TCP instead of UDP. You can also pass any
object that follows the `omronfins.client.Transport` protocol as
`transport=`. Such an object needs `connect`, `close`, `send_request`,
`is_connected` and `stats`.

Some details of the behaviour:

- Word operations reject bit addresses, and bit operations reject word
  addresses, with `InvalidAddressError`.
- `read_bytes` reads whole words and cuts the result to the requested length.
- `write_bytes` pads data of odd length with one zero byte.
- A response with a failure end code raises `FinsError`. The message of that
  error carries the end code.

### Configuration

`FinsClientConfig` (built with `default_config(ip)`) has these fields:

- `ip` and `port`, where the port defaults to 9600.
- `local_node` and `server_node`.
- `timeout`, in seconds, default 5.
- `sid_mode`: `SIDMode.FIXED` uses `fixed_sid`. `SIDMode.INCREMENT` counts
  from `start_sid` up to `max_sid` and then wraps back to `start_sid`.

With FINS/TCP the node numbers come from the handshake. If the configured
`local_node` is 0, the client uses the node that the PLC assigns. If the PLC
assigns 0, the client takes the last octet of the local IPv4 address, and if
that is not usable either, it uses 1. If the configured `local_node` is not 0,
the last octet of the local IPv4 address is used when it is usable. The server
node reported by the handshake wins over the configured one when it is
not 0.

## Retries

`omronfins.retry.RetryableClient` wraps a `FinsClient`. It retries an
operation that fails with one of the policy's `retryable_errors`. By default
these are `FinsTimeoutError` and `ConnectionClosedError`. The delay between
retries grows by `backoff_factor` and is capped at `max_delay`. Delays are in
seconds.

```python
from omronfins.retry import RetryableClient, RetryPolicy

retrying = RetryableClient(client, RetryPolicy(max_retries=3, initial_delay=0.2))
value = retrying.read_word("D100")
```

Other errors are raised at once. When every retry fails, the client raises
`FinsError`.

## Automatic reconnection

`omronfins.reconnect.ReconnectableClient` wraps a `FinsClient`. When an
operation fails with a connection error, it reconnects and runs the operation
once more. The function `is_connection_error` decides what counts as a
connection error.

If `health_check_interval` is above 0, a background thread checks the
connection at that interval and reconnects when the connection is down.

```python
from omronfins.reconnect import ReconnectableClient, ReconnectPolicy

robust = ReconnectableClient(
    client,
    ReconnectPolicy(max_reconnect_attempts=5),
    on_reconnect=lambda: print("reconnected"),
    on_disconnect=lambda: print("disconnected"),
)
robust.connect()
robust.write_word("D100", 42)
print(robust.reconnect_count(), robust.last_reconnect_time())
robust.close()
```

A `max_reconnect_attempts` of 0 means the client retries without limit.

## Frames

You can use the frame codecs on their own:

- `omronfins.udp_frame` covers FINS frames and the parameters of memory read
  and write commands.
- `omronfins.tcp_frame` covers the FINS/TCP outer frame. It includes
  `read_tcp_frame`, which reads one whole frame from a stream.

## Errors

All protocol errors derive from `omronfins.errors.FinsError`:

- `FinsTimeoutError`
- `InvalidFrameError`
- `InvalidMagicError`
- `ConnectionClosedError`
- `InvalidResponseError`
- `InvalidSIDError`
- `InvalidAddressError`
- `InvalidDataLengthError`

## What this package does not do

- It is a library only. It has no command-line tool.
- It does not provide a PLC or simulator to test against.
- Only the memory area read, write and bit write commands are implemented.
  Codes for parameter and controller commands are defined in
  `omronfins.constants`, but they have no client methods.

## Running the tests

```
pip install omronfins[test]
pytest
```