# -*- coding: utf-8 -*-
"""
OSC wire framing for the bridge, on top of python-osc.

Inbound: a datagram must be a bare message or a bundle of exactly one
message. Outbound: one message per response, bare or wrapped in a
single-element bundle.
"""

from __future__ import annotations

from loguru import logger
from pythonosc import osc_bundle, osc_bundle_builder, osc_message
from pythonosc.osc_bundle import OscBundle
from pythonosc.osc_message import OscMessage
from pythonosc.parsing import osc_types

from qbridge.types import (
    DecodeError,
    FramingError,
    OutboundFraming,
    Request,
    Response,
)

OscPacket = OscMessage | OscBundle


def decode_packet(dgram: bytes) -> OscPacket:
    """Parse raw datagram bytes into an OSC message or bundle.

    Raises
    ------
    DecodeError
        If the bytes are not a well formed OSC packet.
    """
    try:
        if OscBundle.dgram_is_bundle(dgram):
            return OscBundle(dgram)
        if OscMessage.dgram_is_message(dgram):
            return OscMessage(dgram)
    except (
        osc_bundle.ParseError,
        osc_message.ParseError,
        osc_types.ParseError,
        IndexError,
        ValueError,  # includes UnicodeDecodeError on bad address strings
    ) as e:
        raise DecodeError(f"Malformed OSC packet: {e}") from e
    raise DecodeError(f"Not an OSC packet ({len(dgram)} bytes).")


def unwrap_single_message(packet: OscPacket) -> OscMessage:
    """Resolve a packet to its one and only message.

    Raises
    ------
    FramingError
        Empty bundle, multiple messages in one bundle or a nested bundle.
    """
    if isinstance(packet, OscMessage):
        logger.warning("Message without Bundle")
        return packet
    if packet.num_contents == 0:
        raise FramingError("Received empty bundle.")
    if packet.num_contents != 1:
        raise FramingError("Multiple messages in same bundle.")
    content = packet.content(0)
    if isinstance(content, OscBundle):
        raise FramingError("Received nested bundle.")
    return content


def decode_request(dgram: bytes) -> Request:
    """Datagram bytes -> Request. Raises a `ProtocolError` subclass on failure."""
    return Request.from_osc(unwrap_single_message(decode_packet(dgram)))


def encode_response(
    response: Response, framing: OutboundFraming = OutboundFraming.BARE
) -> bytes:
    msg = response.to_osc()
    if framing is OutboundFraming.BARE:
        return msg.dgram
    builder = osc_bundle_builder.OscBundleBuilder(osc_bundle_builder.IMMEDIATELY)
    builder.add_content(msg)
    return builder.build().dgram


def encode_request(request: Request, bundle: bool = True) -> bytes:
    """Client side: Request -> datagram, bundled (standard) or bare."""
    msg = request.to_osc()
    if not bundle:
        return msg.dgram
    builder = osc_bundle_builder.OscBundleBuilder(osc_bundle_builder.IMMEDIATELY)
    builder.add_content(msg)
    return builder.build().dgram


def decode_response(dgram: bytes) -> Response:
    """Client side: datagram -> Response (bare or single-element bundle)."""
    packet = decode_packet(dgram)
    if isinstance(packet, OscBundle):
        return Response.from_osc(unwrap_single_message(packet))
    return Response.from_osc(packet)
