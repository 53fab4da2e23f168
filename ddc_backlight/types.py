'''
Type aliases shared by the rest of the package.

The aliases are plain builtin types. They exist so that signatures say which
unit a value is in (percentage or raw register value) and what an argument names.
'''
from typing import Union

IntPercentage = int
'''
An integer between 0 and 100 (inclusive) that represents a brightness level.
Other than the implied bounds, this is just a normal integer.
'''
Percentage = Union[IntPercentage, str]
'''
An `IntPercentage` or a string representing an `IntPercentage`.

String values may come in two forms:
- Absolute values: for example `'40'` converts directly to `int('40')`.
    These must be between 0 and 100.
- Relative values: strings prefixed with `+`/`-` will be interpreted relative to the
    current brightness level. In this case, the integer value of your string will be added to the
    current brightness level and the result clamped to 0-100.
    For example, if the current brightness is 50%, a value of `'+40'` would imply 90% brightness
    and a value of `'+80'` would imply 100% brightness.

String values are parsed by `.helpers.BrightnessCommand.parse`.
'''

RawValue = int
'''
The protocol-native brightness register value, between 0 and the maximum
reported by the display. For DDC/CI this is an unsigned 16 bit integer.
For kernel backlights it is between 0 and `max_brightness`.
'''

DisplayOutput = str
'''
The name of a video output (connector) as reported by the compositor,
eg: `'DP-2'`, `'HDMI-A-1'` or `'eDP-1'`
'''

I2CDevicePath = str
'''Path to an I2C character device, eg: `'/dev/i2c-7'`'''
