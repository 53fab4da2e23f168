import subprocess


def format_exc(e: Exception) -> str:
    '''@private'''
    return f'{type(e).__name__}: {e}'


class DDCBacklightError(Exception):
    '''
    Generic error class designed to make catching errors under one umbrella easy.
    '''
    stage: str = 'internal'
    '''Which part of a brightness command failed. Used in command line diagnostics'''


class InvalidInputError(DDCBacklightError, ValueError):
    '''Brightness value is non-numeric or out of range'''
    stage = 'input'


class CompositorError(DDCBacklightError):
    '''Could not determine the focused output'''
    stage = 'compositor'


class UnsupportedOutputError(DDCBacklightError):
    '''Output is an embedded panel, which does not speak DDC/CI'''
    stage = 'resolution'


class OutputNotFoundError(DDCBacklightError, LookupError):
    '''No DRM connector matches the output name'''
    stage = 'resolution'


class DeviceNotFoundError(DDCBacklightError, LookupError):
    '''Connector (or backlight) exists but no usable device could be derived from it'''
    stage = 'resolution'


class DeviceAccessError(DDCBacklightError, OSError):
    '''Device path does not exist or cannot be opened'''
    stage = 'device'


class ProtocolError(DDCBacklightError):
    '''Malformed, rejected or missing DDC/CI reply'''
    stage = 'protocol'


class InvalidDeviceStateError(DDCBacklightError):
    '''
    The display reported a brightness pair that cannot be turned into a percentage,
    eg: a maximum of zero or a current value above the maximum.
    '''
    stage = 'protocol'


class CommandError(DDCBacklightError, subprocess.CalledProcessError):
    '''
    An external command exited with a non-zero status.

    Example:
        ```python
        try:
            subprocess.check_output(['swaymsg', '-t', 'get_outputs'])
        except subprocess.CalledProcessError as e:
            raise CommandError('swaymsg failed', e)
        ```
    '''
    def __init__(self, message: str, exc: subprocess.CalledProcessError):
        self.message: str = message
        DDCBacklightError.__init__(self, message)
        super().__init__(exc.returncode, exc.cmd, exc.stdout, exc.stderr)

    def __str__(self):
        string = super().__str__()
        string += f'\n\t-> {self.message}'
        return string
