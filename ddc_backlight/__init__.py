import logging
from typing import Optional, Union

from ._version import __author__, __version__  # noqa: F401
from .exceptions import (CommandError, CompositorError,  # noqa: F401
                         DDCBacklightError, DeviceAccessError,
                         DeviceNotFoundError, InvalidDeviceStateError,
                         InvalidInputError, OutputNotFoundError, ProtocolError,
                         UnsupportedOutputError)
from .helpers import (BrightnessCommand, BrightnessMethod, VCPValue,  # noqa: F401
                      resolve_target, target_percentage, to_percentage)
from .types import DisplayOutput, I2CDevicePath, IntPercentage, Percentage
from . import config, linux


_logger = logging.getLogger(__name__)
_logger.addHandler(logging.NullHandler())


@config.default_params
def open_display(
    i2c_path: Optional[I2CDevicePath] = None,
    output: Optional[DisplayOutput] = None,
    backlight: Optional[str] = None,
    compositor: Optional[linux.SwayIPC] = None,
    session: Optional[linux.LogindSession] = None,
    drm_path: Optional[str] = None,
    backlight_path: Optional[str] = None
) -> BrightnessMethod:
    '''
    Work out how to reach a display and open it.

    In order of precedence:
    1. an explicit `i2c_path` is opened directly over DDC/CI
    2. an explicit `backlight` device is adjusted through the kernel backlight
    3. otherwise the `output` (defaulting to the focused output reported by
       `compositor`) is resolved with `.linux.resolve_output`. Embedded panels
       use the kernel backlight instead

    Args:
        i2c_path (.types.I2CDevicePath): the I2C device to use, eg: `/dev/i2c-7`
        output (.types.DisplayOutput): the output to adjust, eg: `DP-2`
        backlight: the `/sys/class/backlight` device to adjust, eg: `intel_backlight`
        compositor: queried for the focused output when no output is given.
            Defaults to `.linux.SwayIPC`
        session: used to write embedded panel brightness. See `.linux.LogindSession`
        drm_path: the DRM class directory. Defaults to `.config.DRM_PATH`
        backlight_path: the backlight class directory. Defaults to `.config.BACKLIGHT_PATH`

    Returns:
        An open `.helpers.BrightnessMethod`. Close it when done, or use it as a context manager

    Example:
        ```python
        import ddc_backlight

        with ddc_backlight.open_display(output='DP-2') as display:
            print(display.get_value())
        ```
    '''
    if i2c_path is not None:
        _logger.debug(f'using I2C device {i2c_path}')
        return linux.I2C(i2c_path)

    if backlight is None:
        if output is None:
            if compositor is None:
                compositor = linux.SwayIPC()
            output = compositor.get_focused_output()
            _logger.debug(f'focused output is {output!r}')

        if not linux.is_embedded(output):
            return linux.I2C(linux.resolve_output(output, drm_path=drm_path))

        backlight = linux.SysFiles.find_device(backlight_path=backlight_path)
        _logger.info(f'{output} is an embedded panel, using backlight {backlight}')

    return linux.SysFiles(backlight, session=session, backlight_path=backlight_path)


@config.default_params
def get_brightness(
    i2c_path: Optional[I2CDevicePath] = None,
    output: Optional[DisplayOutput] = None,
    backlight: Optional[str] = None,
    compositor: Optional[linux.SwayIPC] = None,
    drm_path: Optional[str] = None,
    backlight_path: Optional[str] = None
) -> IntPercentage:
    '''
    Returns the current brightness of a display as a percentage.
    See `open_display` for how the display is chosen.

    Example:
        ```python
        import ddc_backlight

        # the focused output
        print(ddc_backlight.get_brightness())

        # a specific I2C bus
        print(ddc_backlight.get_brightness(i2c_path='/dev/i2c-7'))
        ```
    '''
    with open_display(
        i2c_path=i2c_path, output=output, backlight=backlight, compositor=compositor,
        drm_path=drm_path, backlight_path=backlight_path
    ) as display:
        return to_percentage(display.get_value())


@config.default_params
def set_brightness(
    value: Union[Percentage, BrightnessCommand],
    i2c_path: Optional[I2CDevicePath] = None,
    output: Optional[DisplayOutput] = None,
    backlight: Optional[str] = None,
    compositor: Optional[linux.SwayIPC] = None,
    session: Optional[linux.LogindSession] = None,
    drm_path: Optional[str] = None,
    backlight_path: Optional[str] = None
) -> IntPercentage:
    '''
    Sets the brightness of a display.
    See `open_display` for how the display is chosen.

    The current value is always read first, since the display's maximum is needed to
    scale the percentage. The read and the write happen over the same connection.

    Args:
        value (.types.Percentage): the new brightness. Strings like `'+10'` and `'-10'`
            are relative to the current brightness. Integers are clamped to 0-100

    Returns:
        The brightness percentage that was set

    Raises:
        InvalidInputError: if `value` cannot be parsed. Nothing is opened in this case

    Example:
        ```python
        import ddc_backlight

        # set brightness to 50%
        ddc_backlight.set_brightness(50)

        # increase brightness by 10%
        ddc_backlight.set_brightness('+10')

        # decrease the brightness of DP-2 by 25%
        ddc_backlight.set_brightness('-25', output='DP-2')
        ```
    '''
    command = value if isinstance(value, BrightnessCommand) else BrightnessCommand.parse(value)

    with open_display(
        i2c_path=i2c_path, output=output, backlight=backlight, compositor=compositor,
        session=session, drm_path=drm_path, backlight_path=backlight_path
    ) as display:
        reading = display.get_value()
        current = to_percentage(reading)
        target = target_percentage(command, current)
        raw = resolve_target(command, current, reading.maximum)
        _logger.debug(f'brightness {current}% -> {target}% (raw {reading.current} -> {raw}/{reading.maximum})')
        display.set_value(raw)

    return target
