#!/usr/bin/env python3
"""
LoRa/FSK packet forwarder definitions

Shared by the txpk decoder and the rxpk encoder. The tables are built once at
import time and exposed read-only.
"""

from enum import Enum, IntEnum
from types import MappingProxyType


class Modulation(str, Enum):
    """Modulation identifiers as they appear in 'modu'"""
    LORA = "LORA"
    FSK = "FSK"


class Bandwidth(IntEnum):
    """LoRa bandwidth codes"""
    BW7K8 = 0x01
    BW10K4 = 0x02
    BW15K6 = 0x03
    BW20K8 = 0x04
    BW31K2 = 0x05
    BW41K7 = 0x06
    BW62K5 = 0x07
    BW125K = 0x08
    BW250K = 0x09
    BW500K = 0x0A


class CodingRate(IntEnum):
    """LoRa ECC coding rates"""
    CR_4_5 = 0x05
    CR_4_6 = 0x06
    CR_4_7 = 0x07
    CR_4_8 = 0x08


class CRCStatus(IntEnum):
    """CRC status of a received frame ('stat')"""
    FAIL = -1
    ABSENT = 0
    OK = 1


class ScheduleMode(Enum):
    """Which txpk field drives the transmit time"""
    IMMEDIATE = "imme"
    TIMESTAMP = "tmst"
    GPS = "tmms"


# Bandwidth code -> kHz label used in 'datr'
BANDWIDTH_LABELS = MappingProxyType({
    Bandwidth.BW7K8: "7.8",
    Bandwidth.BW10K4: "10.4",
    Bandwidth.BW15K6: "15.6",
    Bandwidth.BW20K8: "20.8",
    Bandwidth.BW31K2: "31.2",
    Bandwidth.BW41K7: "41.7",
    Bandwidth.BW62K5: "62.5",
    Bandwidth.BW125K: "125",
    Bandwidth.BW250K: "250",
    Bandwidth.BW500K: "500",
})

# Integer kHz (as parsed from "SF<n>BW<int>") -> bandwidth code
BANDWIDTH_BY_KHZ = MappingProxyType({
    int(label.split(".")[0]): code for code, label in BANDWIDTH_LABELS.items()
})

# Coding rate code -> canonical fraction emitted in 'codr'
CODING_RATE_FRACTIONS = MappingProxyType({
    CodingRate.CR_4_5: "4/5",
    CodingRate.CR_4_6: "4/6",
    CodingRate.CR_4_7: "4/7",
    CodingRate.CR_4_8: "4/8",
})

# Every 'codr' string accepted on decode
CODING_RATE_ALIASES = MappingProxyType({
    "4/5": CodingRate.CR_4_5,
    "4/6": CodingRate.CR_4_6,
    "2/3": CodingRate.CR_4_6,
    "4/7": CodingRate.CR_4_7,
    "4/8": CodingRate.CR_4_8,
    "2/4": CodingRate.CR_4_8,
    "1/2": CodingRate.CR_4_8,
})


def bandwidth_label(code: int) -> str:
    """Return the 'datr' bandwidth suffix for a code, e.g. 'BW7.8'

    Raises:
        KeyError: If code is not a known bandwidth
    """
    return "BW" + BANDWIDTH_LABELS[code]
