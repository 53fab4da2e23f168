import functools
import operator
from pathlib import Path


def make_connector(drm: Path, name: str, status: str = 'connected') -> Path:
    '''Create a DRM connector directory like `card1-DP-2`'''
    connector = drm / name
    connector.mkdir()
    (connector / 'status').write_text(status + '\n')
    return connector


def add_backlight(root: Path, name: str, brightness: int, max_brightness: int) -> Path:
    device = root / name
    device.mkdir()
    (device / 'brightness').write_text(f'{brightness}\n')
    (device / 'max_brightness').write_text(f'{max_brightness}\n')
    return device


def ddc_frame(payload: bytes) -> bytes:
    '''Wrap a payload the way a monitor does when replying to the host'''
    frame = bytes([0x6e, len(payload) | 0x80]) + payload
    return frame + bytes([functools.reduce(operator.xor, frame, 0x50)])


def vcp_reply(current: int, maximum: int, vcp_code: int = 0x10, result: int = 0, opcode: int = 0x02) -> bytes:
    return ddc_frame(bytes([
        opcode, result, vcp_code, 0x00,
        maximum >> 8, maximum & 0xff,
        current >> 8, current & 0xff
    ]))
