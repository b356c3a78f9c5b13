#!/usr/bin/env python3
"""
Packet forwarder protocol constants
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import ClassVar, Tuple


@dataclass(frozen=True)
class LoRaConfig:
    """Wire-level limits and fixed values"""
    # Integer widths
    UINT8_MAX: ClassVar[int] = 0xFF
    UINT16_MAX: ClassVar[int] = 0xFFFF
    UINT32_MAX: ClassVar[int] = 0xFFFFFFFF
    UINT64_MAX: ClassVar[int] = 0xFFFFFFFFFFFFFFFF

    # Frequency conversion
    HZ_PER_MHZ: ClassVar[int] = 1_000_000

    # FSK 'fdev' is divided by this before storing
    FDEV_DIVISOR: ClassVar[int] = 1000

    # GPS time
    GPS_EPOCH: ClassVar[datetime] = datetime(1980, 1, 6, tzinfo=timezone.utc)
    GPS_LEAP_SECONDS: ClassVar[int] = 18  # GPS - UTC since 2017-01-01

    # RFC 3339 at one second resolution, always UTC
    TIME_FORMAT: ClassVar[str] = "%Y-%m-%dT%H:%M:%SZ"

    # rxpk key order
    RXPK_KEYS_LORA: ClassVar[Tuple[str, ...]] = (
        "tmst", "time", "chan", "rfch", "freq", "stat", "modu",
        "datr", "codr", "lsnr", "rssi", "size", "data",
    )
    RXPK_KEYS_FSK: ClassVar[Tuple[str, ...]] = (
        "tmst", "time", "chan", "rfch", "freq", "stat", "modu",
        "datr", "rssi", "size", "data",
    )

    # Envelope keys of PULL_RESP / PUSH_DATA bodies
    TXPK_KEY: ClassVar[str] = "txpk"
    RXPK_KEY: ClassVar[str] = "rxpk"
