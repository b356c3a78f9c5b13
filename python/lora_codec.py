#!/usr/bin/env python3
"""
LoRa packet codec front end

Turns PULL_RESP bodies into TransmitPacket objects and ReceivePacket objects
into PUSH_DATA bodies. Datagram headers are handled by the transport.
"""

import json
import logging
from typing import Any, Mapping, Union

from conf import CodecSettings, read_config
from lora_config import LoRaConfig
from lora_errors import TxpkDecodeError
from lora_packet import ReceivePacket, TransmitPacket


class PacketCodec:
    """Configured txpk decoder and rxpk encoder"""

    def __init__(self, settings: CodecSettings = None):
        self.settings = settings or CodecSettings()

    @classmethod
    def from_config(cls, conf_file: str) -> 'PacketCodec':
        """Create a codec from an INI configuration file"""
        return cls(CodecSettings.from_config(read_config(conf_file)))

    def setup_logging(self):
        """Initialize logging from the configured display level"""
        logging.basicConfig(level=self.settings.display_level * 10)
        logging.info(f"LoRa codec using {self.settings.scheduling} scheduling")

    def decode_txpk(self, txpk: Mapping[str, Any]) -> TransmitPacket:
        """Decode a txpk object

        Raises:
            TxpkDecodeError: If the object can not be decoded
        """
        try:
            packet = TransmitPacket.decode(
                txpk,
                strict_schedule=self.settings.strict_schedule,
                leap_seconds=self.settings.gps_leap_seconds,
            )
        except TxpkDecodeError as e:
            logging.error(f"Failed to decode txpk ({e.field}={e.value!r}): {e}")
            raise

        logging.debug(
            f"txpk {packet.modulation.value} {packet.freq_hz} Hz, "
            f"{len(packet.payload)} bytes, {packet.schedule.name.lower()}"
        )
        return packet

    def decode_pull_resp(self, body: Union[str, bytes]) -> TransmitPacket:
        """Decode the JSON body of a PULL_RESP datagram

        Raises:
            TxpkDecodeError: If the body is not JSON, has no txpk object or
                the txpk object can not be decoded
        """
        try:
            document = json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            logging.error(f"Malformed PULL_RESP body: {e}")
            raise TxpkDecodeError(f"Malformed JSON: {e}")

        txpk = document.get(LoRaConfig.TXPK_KEY) if isinstance(document, dict) else None
        if not isinstance(txpk, dict):
            logging.error("PULL_RESP body has no txpk object")
            raise TxpkDecodeError(
                "Missing txpk object", LoRaConfig.TXPK_KEY, txpk
            )
        return self.decode_txpk(txpk)

    def encode_rxpk(self, packet: ReceivePacket) -> bytes:
        """Encode one rxpk object"""
        data = packet.encode()
        logging.debug(f"rxpk {packet.modulation.value} {packet.freq_hz} Hz, {len(packet.payload)} bytes")
        return data

    def encode_push_data(self, packet: ReceivePacket) -> bytes:
        """Encode a PUSH_DATA body holding a single rxpk object"""
        return b'{"' + LoRaConfig.RXPK_KEY.encode("ascii") + b'":[' + self.encode_rxpk(packet) + b']}'
