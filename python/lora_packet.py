#!/usr/bin/env python3
"""
LoRa/FSK packet handler for the packet forwarder JSON protocol

TransmitPacket is decoded from a 'txpk' object sent by the network server.
ReceivePacket is encoded into an 'rxpk' object reported to the network server.
"""

import base64
import binascii
import json
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from lora_config import LoRaConfig
from lora_defines import (
    BANDWIDTH_BY_KHZ,
    BANDWIDTH_LABELS,
    CODING_RATE_ALIASES,
    CODING_RATE_FRACTIONS,
    Bandwidth,
    CodingRate,
    CRCStatus,
    Modulation,
    ScheduleMode,
    bandwidth_label,
)
from lora_errors import (
    DatarateParseError,
    DatarateTypeError,
    FieldValueError,
    PayloadDecodeError,
    RxpkEncodeError,
    SchedulingError,
    TxpkDecodeError,
    UnknownBandwidthError,
    UnknownCodingRateError,
    UnknownModulationError,
)

# "SF7BW125"; a fractional bandwidth ("SF7BW7.8") is truncated to its integer part
_LORA_DATR = re.compile(r"SF([0-9]+)BW([0-9]+)(?:\.[0-9]+)?")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _code_in(code: Any, table: Mapping[int, str]) -> Optional[int]:
    """Return code if it is an integer key of table, else None"""
    if isinstance(code, bool) or not isinstance(code, int):
        return None
    return code if code in table else None


def _get_bool(txpk: Mapping, key: str) -> bool:
    value = txpk.get(key, False)
    if not isinstance(value, bool):
        raise FieldValueError(f"'{key}' is not a boolean: {value!r}", key, value)
    return value


def _get_uint(txpk: Mapping, key: str, maximum: int,
              default: Optional[int] = 0) -> Optional[int]:
    """Read an unsigned integer field, rejecting floats and out of range values"""
    if key not in txpk:
        return default
    value = txpk[key]
    if not isinstance(value, int) or isinstance(value, bool):
        raise FieldValueError(f"'{key}' is not an integer: {value!r}", key, value)
    if not 0 <= value <= maximum:
        raise FieldValueError(
            f"'{key}' out of range: {value} not in 0-{maximum}", key, value
        )
    return value


def _mhz_to_hz(freq: Any) -> int:
    """Convert 'freq' in MHz to Hz, truncating below 1 Hz"""
    if not _is_number(freq) or not math.isfinite(freq):
        raise FieldValueError(f"'freq' is not a number: {freq!r}", "freq", freq)
    # str() gives the shortest repr, so 868.1 scales to exactly 868100000
    hz = int(Decimal(str(freq)) * LoRaConfig.HZ_PER_MHZ)
    if not 0 <= hz <= LoRaConfig.UINT32_MAX:
        raise FieldValueError(f"'freq' out of range: {freq} MHz", "freq", freq)
    return hz


def _gps_millis_to_utc(tmms: int, leap_seconds: int) -> datetime:
    try:
        return (LoRaConfig.GPS_EPOCH + timedelta(milliseconds=tmms)
                - timedelta(seconds=leap_seconds))
    except OverflowError:
        raise FieldValueError(f"'tmms' out of range: {tmms}", "tmms", tmms)


def _resolve_schedule(immediate: bool, tmst: Optional[int], tmms: Optional[int],
                      strict: bool) -> ScheduleMode:
    """Pick the authoritative scheduling field

    Precedence is imme, then tmst, then tmms. In strict mode exactly one of
    them may be set.
    """
    given = [
        mode for mode, present in (
            (ScheduleMode.IMMEDIATE, immediate),
            (ScheduleMode.TIMESTAMP, tmst is not None),
            (ScheduleMode.GPS, tmms is not None),
        ) if present
    ]
    if not given:
        raise SchedulingError("No scheduling field: need one of imme, tmst or tmms")
    if strict and len(given) > 1:
        names = ", ".join(mode.value for mode in given)
        raise SchedulingError(f"Conflicting scheduling fields: {names}", "schedule", names)
    return given[0]


@dataclass(frozen=True)
class TransmitPacket:
    """Downlink packet to transmit"""
    immediate: bool = False
    count_us: int = 0
    gps_time: Optional[datetime] = None
    schedule: ScheduleMode = ScheduleMode.IMMEDIATE
    freq_hz: int = 0
    power_dbm: int = 0
    rf_chain: int = 0
    modulation: Modulation = Modulation.LORA
    # LoRa only
    bandwidth: Optional[Bandwidth] = None
    coding_rate: Optional[CodingRate] = None
    invert_polarity: bool = False
    # Spreading factor for LoRa, bits per second for FSK
    datarate: int = 0
    preamble_length: int = 0
    no_crc: bool = False
    # FSK only, whole kHz
    freq_deviation: Optional[int] = None
    payload: bytes = field(default_factory=bytes)

    @classmethod
    def decode(cls, txpk: Mapping[str, Any], strict_schedule: bool = False,
               leap_seconds: int = LoRaConfig.GPS_LEAP_SECONDS) -> 'TransmitPacket':
        """Decode a txpk object

        Args:
            txpk: Parsed JSON object (the value under the "txpk" key)
            strict_schedule: Require exactly one of imme, tmst and tmms
            leap_seconds: GPS - UTC offset applied to tmms

        Returns:
            Decoded TransmitPacket

        Raises:
            TypeError: If txpk is not a mapping
            TxpkDecodeError: If any field fails to decode
        """
        if not isinstance(txpk, Mapping):
            raise TypeError(f"Expected mapping, got {type(txpk)}")

        try:
            immediate = _get_bool(txpk, "imme")
            tmst = _get_uint(txpk, "tmst", LoRaConfig.UINT32_MAX, default=None)
            tmms = _get_uint(txpk, "tmms", LoRaConfig.UINT64_MAX, default=None)
            schedule = _resolve_schedule(immediate, tmst, tmms, strict_schedule)
            gps_time = _gps_millis_to_utc(tmms, leap_seconds) if tmms is not None else None

            fields = dict(
                immediate=immediate,
                count_us=tmst or 0,
                gps_time=gps_time,
                schedule=schedule,
                no_crc=_get_bool(txpk, "ncrc"),
                freq_hz=_mhz_to_hz(txpk.get("freq", 0)),
                rf_chain=_get_uint(txpk, "rfch", LoRaConfig.UINT8_MAX),
                power_dbm=_get_uint(txpk, "powe", LoRaConfig.UINT8_MAX),
                preamble_length=_get_uint(txpk, "prea", LoRaConfig.UINT16_MAX),
            )

            modu = txpk.get("modu")
            if modu == Modulation.LORA.value:
                fields.update(cls._decode_lora(txpk))
            elif modu == Modulation.FSK.value:
                fields.update(cls._decode_fsk(txpk))
            else:
                raise UnknownModulationError(f"Unknown modulation: {modu!r}", "modu", modu)

            payload = cls._decode_payload(txpk)
            return cls(payload=payload, **fields)

        except TxpkDecodeError as e:
            raise e
        except Exception as e:
            raise TxpkDecodeError(f"Unexpected error: {e}")

    @staticmethod
    def _decode_lora(txpk: Mapping[str, Any]) -> Dict[str, Any]:
        datr = txpk.get("datr")
        if not isinstance(datr, str):
            raise DatarateTypeError(
                f"Can not parse lora datarate (not a string): {datr!r}", "datr", datr
            )

        match = _LORA_DATR.fullmatch(datr)
        if match is None:
            raise DatarateParseError(f"Can not parse lora datarate: {datr!r}", "datr", datr)
        try:
            spreading_factor, khz = int(match.group(1)), int(match.group(2))
        except ValueError:
            # int() refuses digit strings past sys.get_int_max_str_digits()
            raise DatarateParseError(f"Can not parse lora datarate: {datr!r}", "datr", datr)
        if spreading_factor > LoRaConfig.UINT32_MAX:
            raise DatarateParseError(
                f"Spreading factor out of range: {datr!r}", "datr", datr
            )

        try:
            bandwidth = BANDWIDTH_BY_KHZ[khz]
        except KeyError:
            raise UnknownBandwidthError(
                f"Can not parse lora datarate {datr!r}: unknown bandwidth {khz}",
                "datr", datr
            )

        codr = txpk.get("codr", "")
        try:
            coding_rate = CODING_RATE_ALIASES[codr]
        except (KeyError, TypeError):
            raise UnknownCodingRateError(
                f"Can not parse lora coderate: {codr!r}", "codr", codr
            )

        return dict(
            modulation=Modulation.LORA,
            datarate=spreading_factor,
            bandwidth=bandwidth,
            coding_rate=coding_rate,
            invert_polarity=_get_bool(txpk, "ipol"),
        )

    @staticmethod
    def _decode_fsk(txpk: Mapping[str, Any]) -> Dict[str, Any]:
        datr = txpk.get("datr")
        if not _is_number(datr):
            raise DatarateTypeError(
                f"Can not parse fsk datarate (not a number): {datr!r}", "datr", datr
            )
        if not math.isfinite(datr) or not 0 <= datr <= LoRaConfig.UINT32_MAX:
            raise FieldValueError(f"'datr' out of range: {datr}", "datr", datr)

        fdev = txpk.get("fdev", 0)
        if not _is_number(fdev) or not math.isfinite(fdev):
            raise FieldValueError(f"'fdev' is not a number: {fdev!r}", "fdev", fdev)
        freq_deviation = math.floor(fdev / LoRaConfig.FDEV_DIVISOR)
        if not 0 <= freq_deviation <= LoRaConfig.UINT8_MAX:
            raise FieldValueError(f"'fdev' out of range: {fdev}", "fdev", fdev)

        return dict(
            modulation=Modulation.FSK,
            datarate=int(datr),
            freq_deviation=freq_deviation,
        )

    @staticmethod
    def _decode_payload(txpk: Mapping[str, Any]) -> bytes:
        data = txpk.get("data", "")
        if not isinstance(data, str):
            raise PayloadDecodeError(f"'data' is not a string: {data!r}", "data", data)
        try:
            payload = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise PayloadDecodeError(f"Can not decode data: {e}", "data", data)

        size = txpk.get("size")
        if size is not None and size != len(payload):
            logging.warning(
                f"txpk size mismatch: 'size' is {size}, 'data' holds {len(payload)} bytes"
            )
        return payload


@dataclass
class ReceivePacket:
    """Uplink packet received by the concentrator"""
    count_us: int = 0
    time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    freq_hz: int = 0
    if_chain: int = 0
    rf_chain: int = 0
    crc_status: CRCStatus = CRCStatus.OK
    modulation: Modulation = Modulation.LORA
    # LoRa only
    bandwidth: Optional[Bandwidth] = None
    coding_rate: Optional[CodingRate] = None
    # Spreading factor for LoRa, bits per second for FSK
    datarate: int = 0
    rssi: float = 0.0
    # LoRa only
    snr: float = 0.0
    payload: bytes = field(default_factory=bytes)

    def to_wire(self) -> Dict[str, Any]:
        """Build the rxpk object with keys in protocol order

        Raises:
            RxpkEncodeError: If a LoRa packet carries an invalid bandwidth or coding rate
        """
        text = self._fixed_point()
        wire: Dict[str, Any] = {
            "tmst": int(self.count_us),
            "time": self._format_time(),
            "chan": int(self.if_chain),
            "rfch": int(self.rf_chain),
            "freq": float(text["freq"]),
            "stat": int(self.crc_status),
            "rssi": int(text["rssi"]),
            "size": len(self.payload),
            "data": base64.b64encode(self.payload).decode("ascii"),
        }

        if self.is_lora:
            bandwidth = _code_in(self.bandwidth, BANDWIDTH_LABELS)
            if bandwidth is None:
                raise RxpkEncodeError(f"Invalid LoRa bandwidth code: {self.bandwidth!r}")
            coding_rate = _code_in(self.coding_rate, CODING_RATE_FRACTIONS)
            if coding_rate is None:
                raise RxpkEncodeError(f"Invalid LoRa coding rate code: {self.coding_rate!r}")
            wire["modu"] = Modulation.LORA.value
            wire["datr"] = f"SF{self.datarate}{bandwidth_label(bandwidth)}"
            wire["codr"] = CODING_RATE_FRACTIONS[coding_rate]
            wire["lsnr"] = float(text["lsnr"])
            keys = LoRaConfig.RXPK_KEYS_LORA
        else:
            wire["modu"] = Modulation.FSK.value
            wire["datr"] = int(self.datarate)
            keys = LoRaConfig.RXPK_KEYS_FSK

        return {key: wire[key] for key in keys}

    @property
    def is_lora(self) -> bool:
        return self.modulation == Modulation.LORA

    def encode(self) -> bytes:
        """Encode to rxpk JSON text

        Numbers keep their fixed decimal places (freq 6, lsnr 1, rssi 0).
        """
        text = self._fixed_point()
        parts = []
        for key, value in self.to_wire().items():
            parts.append(f'"{key}":{text[key] if key in text else json.dumps(value)}')
        return ("{" + ",".join(parts) + "}").encode("ascii")

    def _fixed_point(self) -> Dict[str, str]:
        # snr is only emitted for LoRa
        names = ("rssi", "snr") if self.is_lora else ("rssi",)
        for name in names:
            if not math.isfinite(getattr(self, name)):
                raise RxpkEncodeError(f"Non-finite {name}: {getattr(self, name)}")
        text = {
            "freq": f"{self.freq_hz / LoRaConfig.HZ_PER_MHZ:.6f}",
            "rssi": f"{self.rssi:.0f}",
        }
        if self.is_lora:
            text["lsnr"] = f"{self.snr:.1f}"
        return text

    def _format_time(self) -> str:
        if self.time.tzinfo is None:
            utc = self.time.replace(tzinfo=timezone.utc)
        else:
            utc = self.time.astimezone(timezone.utc)
        return utc.strftime(LoRaConfig.TIME_FORMAT)
