'''
Contains globally applicable configuration variables.
'''
from functools import wraps
from typing import Callable


def default_params(func: Callable):
    '''
    This decorator sets default kwarg values using global configuration variables.
    '''
    @wraps(func)
    def wrapper(*args, **kwargs):
        kwargs.setdefault('drm_path', DRM_PATH)
        kwargs.setdefault('backlight_path', BACKLIGHT_PATH)
        return func(*args, **kwargs)
    return wrapper


DRM_PATH: str = '/sys/class/drm'
'''
Directory the kernel lists display connectors under, eg: `card1-DP-2`.
'''

BACKLIGHT_PATH: str = '/sys/class/backlight'
'''
Directory containing kernel backlight devices for embedded panels.
'''

DEVICE_PATH: str = '/dev'
'''
Directory containing the I2C character devices (requires the `i2c-dev` kernel module).
'''

EMBEDDED_PREFIX: str = 'eDP'
'''
Output names starting with this are embedded display port panels. These do not
support DDC/CI and are controlled through the kernel backlight instead.
'''

LOGIND_SESSION_PATH: str = '/org/freedesktop/login1/session/auto'
'''
The logind session object used to set embedded panel brightness.
`auto` refers to the session of the calling process.
'''
