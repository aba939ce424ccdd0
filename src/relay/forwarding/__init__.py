"""Delivery of normalized messages to the downstream HTTP API.

Public API:
    :class:`ForwardClient` -- single-attempt JSON POST client.
    :class:`ForwardResult` -- outcome of one POST.
    :class:`DeliveryMode` -- per-message or batched delivery.
    :func:`deliver` -- send one channel's payloads in oldest-first order.
"""

from relay.forwarding.client import (
    ForwardClient,
    ForwardError,
    ForwardResult,
    RemoteRejected,
    TransportFailure,
)
from relay.forwarding.delivery import DeliveryMode, build_envelope, deliver, order_oldest_first

__all__ = [
    "DeliveryMode",
    "ForwardClient",
    "ForwardError",
    "ForwardResult",
    "RemoteRejected",
    "TransportFailure",
    "build_envelope",
    "deliver",
    "order_oldest_first",
]
