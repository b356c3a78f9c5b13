#!/usr/bin/env python3
"""
Configuration handler for the LoRa packet codec
"""

from configparser import ConfigParser
from dataclasses import dataclass
import os

from lora_config import LoRaConfig

SCHEDULING_POLICIES = ('precedence', 'strict')


def read_config(config_file: str) -> ConfigParser:
    """Read and parse the configuration file"""
    config = ConfigParser(inline_comment_prefixes=('#', ';'))
    if not os.path.exists(config_file):
        raise FileNotFoundError(f"Configuration file '{config_file}' does not exist")
    config.read(config_file)
    return config


@dataclass(frozen=True)
class CodecSettings:
    """Runtime settings of the codec front end"""
    display_level: int = 2  # 0=NOTSET, 1=DEBUG, 2=INFO, etc.
    scheduling: str = 'precedence'
    gps_leap_seconds: int = LoRaConfig.GPS_LEAP_SECONDS

    @property
    def strict_schedule(self) -> bool:
        return self.scheduling == 'strict'

    @classmethod
    def from_config(cls, config: ConfigParser) -> 'CodecSettings':
        """Build settings from the [Log] and [Codec] sections

        Raises:
            ValueError: If Scheduling is not a known policy
        """
        scheduling = config.get('Codec', 'Scheduling', fallback='precedence').strip().lower()
        if scheduling not in SCHEDULING_POLICIES:
            raise ValueError(f"Unknown scheduling policy: {scheduling}")

        return cls(
            display_level=config.getint('Log', 'DisplayLevel', fallback=2),
            scheduling=scheduling,
            gps_leap_seconds=config.getint(
                'Codec', 'GPSLeapSeconds', fallback=LoRaConfig.GPS_LEAP_SECONDS
            ),
        )
