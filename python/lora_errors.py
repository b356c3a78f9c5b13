#!/usr/bin/env python3
"""
LoRa packet codec error types
"""


class LoRaCodecError(Exception):
    """Base class for codec exceptions"""
    pass


class TxpkDecodeError(LoRaCodecError):
    """Error decoding a downlink transmit request"""

    def __init__(self, message: str, field: str = None, value=None):
        super().__init__(message)
        self.field = field
        self.value = value


class FieldValueError(TxpkDecodeError):
    """Scalar field has the wrong JSON type or is out of range"""
    pass


class UnknownModulationError(TxpkDecodeError):
    """'modu' is neither LORA nor FSK"""
    pass


class DatarateTypeError(TxpkDecodeError):
    """'datr' has the wrong type for the declared modulation"""
    pass


class DatarateParseError(TxpkDecodeError):
    """LoRa 'datr' string does not match SF<int>BW<int>"""
    pass


class UnknownBandwidthError(TxpkDecodeError):
    """Bandwidth not present in the bandwidth table"""
    pass


class UnknownCodingRateError(TxpkDecodeError):
    """'codr' not present in the coding rate table"""
    pass


class PayloadDecodeError(TxpkDecodeError):
    """'data' is not valid base64"""
    pass


class SchedulingError(TxpkDecodeError):
    """No usable (or, in strict mode, more than one) scheduling field"""
    pass


class RxpkEncodeError(LoRaCodecError):
    """Receive packet violates an internal invariant and cannot be encoded"""
    pass
