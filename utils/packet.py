"""
Command packets for the companion ring device.

Every packet is 16 bytes: a command byte, up to 14 payload bytes
(zero-filled) and a trailing checksum of the preceding bytes modulo 255.
"""

from enum import IntEnum
from typing import Optional, Sequence

PACKET_SIZE = 16
MAX_SUB_DATA_LENGTH = PACKET_SIZE - 2


class RealTimeReading(IntEnum):
    HEART_RATE = 1


class Action(IntEnum):
    START = 1
    PAUSE = 2
    CONTINUE = 3
    STOP = 4


class PacketError(ValueError):
    """Base error for rejected packet requests."""


class InvalidCommandError(PacketError):
    pass


class InvalidSubDataLengthError(PacketError):
    pass


def checksum(packet: Sequence[int]) -> int:
    """
    Calculate the packet checksum.

    For a full packet the trailing checksum slot is excluded; shorter
    sequences are summed entirely.

    Args:
        packet: Packet bytes

    Returns:
        Sum of the covered bytes modulo 255
    """
    covered = packet[:PACKET_SIZE - 1] if len(packet) == PACKET_SIZE else packet
    return sum(covered) % 255


def make_packet(command: int, sub_data: Optional[Sequence[int]] = None) -> bytes:
    """
    Build a 16-byte command packet.

    Args:
        command: Command byte (0-255)
        sub_data: Optional payload of at most 14 bytes

    Returns:
        Encoded packet

    Raises:
        InvalidCommandError: If command does not fit in a byte
        InvalidSubDataLengthError: If payload exceeds 14 bytes
    """
    if not 0 <= command <= 255:
        raise InvalidCommandError(f"Command must fit in one byte, got {command}")

    packet = bytearray(PACKET_SIZE)
    packet[0] = command

    if sub_data is not None:
        if len(sub_data) > MAX_SUB_DATA_LENGTH:
            raise InvalidSubDataLengthError(
                f"Sub-data length {len(sub_data)} exceeds {MAX_SUB_DATA_LENGTH} bytes"
            )
        packet[1:1 + len(sub_data)] = bytes(sub_data)

    packet[-1] = checksum(packet)
    return bytes(packet)
