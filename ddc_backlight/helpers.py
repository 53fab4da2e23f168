'''
Helper functions for the library
'''
from __future__ import annotations

import logging
import math
import re
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from .exceptions import CommandError, InvalidDeviceStateError, InvalidInputError
from .types import IntPercentage, Percentage, RawValue

_logger = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(r'([+-]?)([0-9]+)')


@dataclass(frozen=True)
class VCPValue:
    '''
    A brightness reading: the current register value and the maximum the display allows.
    '''
    current: RawValue
    maximum: RawValue

    @classmethod
    def from_bytes(cls, sh: int, sl: int, mh: int, ml: int) -> 'VCPValue':
        '''
        Reconstruct the value from the four 8 bit fields of a VCP feature reply

        Args:
            sh: high byte of the current value
            sl: low byte of the current value
            mh: high byte of the maximum value
            ml: low byte of the maximum value
        '''
        return cls(current=sh * 256 + sl, maximum=mh * 256 + ml)


@dataclass(frozen=True)
class BrightnessCommand:
    '''
    A requested brightness change. Either an absolute percentage or a signed
    delta to add to the current percentage.
    '''
    value: int
    relative: bool = False

    @classmethod
    def absolute(cls, value: int) -> 'BrightnessCommand':
        return cls(value=value, relative=False)

    @classmethod
    def delta(cls, value: int) -> 'BrightnessCommand':
        return cls(value=value, relative=True)

    @classmethod
    def parse(cls, token: Percentage) -> 'BrightnessCommand':
        '''
        Build a command from a single user supplied token.

        Tokens prefixed with `+` or `-` are relative and may be any size, since
        the result is clamped anyway. Bare integers are absolute and must be
        between 0 and 100. Integers (not strings) are treated as absolute values
        and are clamped rather than rejected.

        Args:
            token: the brightness value, eg: `'50'`, `'+10'`, `'-5'` or `50`

        Raises:
            InvalidInputError: if the token is malformed or out of range

        Example:
            ```python
            from ddc_backlight.helpers import BrightnessCommand

            BrightnessCommand.parse('50')   # BrightnessCommand(value=50, relative=False)
            BrightnessCommand.parse('-20')  # BrightnessCommand(value=-20, relative=True)
            ```
        '''
        if isinstance(token, bool) or not isinstance(token, (int, str)):
            raise InvalidInputError(f'brightness must be an int or str, not {type(token).__name__!r}')
        if isinstance(token, int):
            return cls.absolute(token)

        match = _TOKEN_PATTERN.fullmatch(token)
        if match is None:
            raise InvalidInputError(f'brightness must be a number, got {token!r}')

        sign, digits = match.groups()
        if sign:
            return cls.delta(int(sign + digits))

        value = int(digits)
        if value > 100:
            raise InvalidInputError(f'brightness must be between 0 and 100, got {token!r}')
        return cls.absolute(value)


class BrightnessMethod(ABC):
    '''
    A single open display whose brightness can be read and written in raw units.
    Instances hold their underlying resource until `close` is called, and can be
    used as a context manager.
    '''

    @abstractmethod
    def get_value(self) -> VCPValue:
        '''
        Returns:
            The current and maximum raw brightness of the display
        '''
        ...

    @abstractmethod
    def set_value(self, value: RawValue):
        '''
        Args:
            value (.types.RawValue): the new raw brightness
        '''
        ...

    def close(self):
        '''Release any resources held by this method'''
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


def round_half_up(value: float) -> int:
    '''
    Round to the nearest integer, with halves rounding away from zero.
    The builtin `round` rounds halves to even, which would turn 62.5% into 62.
    '''
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def clamp(value: int, lower: int = 0, upper: int = 100) -> int:
    return min(upper, max(lower, value))


def to_percentage(value: VCPValue) -> IntPercentage:
    '''
    Convert a raw brightness reading into a percentage

    Args:
        value: the reading from the display

    Raises:
        InvalidDeviceStateError: if the maximum is zero or the current value
            exceeds the maximum

    Example:
        ```python
        from ddc_backlight.helpers import VCPValue, to_percentage

        to_percentage(VCPValue(current=32, maximum=64))  # 50
        ```
    '''
    if value.maximum == 0:
        raise InvalidDeviceStateError('display reported a maximum brightness of 0')
    if value.current > value.maximum:
        raise InvalidDeviceStateError(
            f'display reported brightness {value.current} above its maximum of {value.maximum}'
        )
    return round_half_up(value.current / value.maximum * 100)


def to_raw(percentage: IntPercentage, maximum: RawValue) -> RawValue:
    '''Scale a percentage (0-100) onto the display's raw range'''
    return round_half_up(percentage / 100 * maximum)


def target_percentage(command: BrightnessCommand, current: IntPercentage) -> IntPercentage:
    '''
    Work out the percentage a command asks for.

    Relative commands are added to `current` and clamped to 0-100 afterwards, so
    `+20` from 95% gives 100% and `-20` from 5% gives 0%.
    Absolute commands are clamped on their own.
    '''
    if command.relative:
        return clamp(current + command.value)
    return clamp(command.value)


def resolve_target(command: BrightnessCommand, current: IntPercentage, maximum: RawValue) -> RawValue:
    '''
    Resolve a command into the raw value to write to the display

    Args:
        command: the requested change
        current: the current brightness percentage, used by relative commands
        maximum: the display's maximum raw brightness

    Example:
        ```python
        from ddc_backlight.helpers import BrightnessCommand, resolve_target

        resolve_target(BrightnessCommand.parse('50'), 20, 64)   # 32
        resolve_target(BrightnessCommand.parse('+10'), 50, 64)  # 38
        ```
    '''
    return to_raw(target_percentage(command, current), maximum)


def check_output(command: List[str]) -> bytes:
    '''
    Run a command and return its output. Failures are not retried.

    Args:
        command: the command to run

    Returns:
        The output from the command

    Raises:
        CommandError: if the command exits with a non-zero status
        FileNotFoundError: if the executable does not exist
    '''
    try:
        output = subprocess.check_output(command, stderr=subprocess.PIPE)
    except subprocess.CalledProcessError as e:
        raise CommandError(f'{command[0]} exited with status {e.returncode}', e) from e
    _logger.debug(f'command {command} returned {len(output)} bytes')
    return output
