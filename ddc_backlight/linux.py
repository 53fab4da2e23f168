import fcntl
import functools
import json
import logging
import operator
import os
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple, Type

from . import config
from .exceptions import (CommandError, CompositorError, DeviceAccessError,
                         DeviceNotFoundError, InvalidDeviceStateError,
                         InvalidInputError, OutputNotFoundError, ProtocolError,
                         UnsupportedOutputError, format_exc)
from .helpers import BrightnessMethod, VCPValue, check_output
from .types import DisplayOutput, I2CDevicePath, RawValue

_logger = logging.getLogger(__name__)

BRIGHTNESS_VCP_CODE = 0x10
'''VCP feature code for display luminance'''
BUS_PREFIX = 'i2c-'
'''Name prefix of I2C adapters in sysfs and of their device nodes in `/dev`'''


class BusLocator(ABC):
    '''
    Finds the I2C bus behind a DRM connector directory for one GPU driver layout.

    Different drivers expose the DDC channel at different depths in sysfs, so each
    layout gets its own locator. `resolve_output` tries every class in `LOCATORS`
    in order and uses the first bus found.
    '''

    @classmethod
    @abstractmethod
    def locate(cls, output_dir: str) -> Optional[str]:
        '''
        Args:
            output_dir: the connector directory, eg: `/sys/class/drm/card1-DP-2`

        Returns:
            The name of the bus (eg: `i2c-7`), or None if this layout does not apply.
            May raise `OSError` if the directory cannot be read.
        '''
        ...


class AMDSubdirectory(BusLocator):
    '''amdgpu registers the DDC adapter as a direct child of the connector, eg: `card1-DP-2/i2c-7`'''

    @classmethod
    def locate(cls, output_dir: str) -> Optional[str]:
        for name in sorted(os.listdir(output_dir)):
            if name.startswith(BUS_PREFIX):
                return name
        return None


class AMDSymlink(BusLocator):
    '''Connector has a `ddc` symlink pointing at the adapter, eg: `ddc -> ../../../i2c-7`'''

    @classmethod
    def locate(cls, output_dir: str) -> Optional[str]:
        link = os.path.join(output_dir, 'ddc')
        if not os.path.islink(link):
            return None
        return os.path.basename(os.path.normpath(os.readlink(link))) or None


class IntelI2CDev(BusLocator):
    '''i915 exposes the character device under `ddc/i2c-dev/i2c-N`'''

    @classmethod
    def locate(cls, output_dir: str) -> Optional[str]:
        path = os.path.join(output_dir, 'ddc', 'i2c-dev')
        if not os.path.isdir(path):
            return None
        entries = sorted(os.listdir(path))
        return entries[0] if entries else None


LOCATORS: Tuple[Type[BusLocator], ...] = (AMDSubdirectory, AMDSymlink, IntelI2CDev)
'''Bus locators in the order they are tried'''


def is_embedded(output: DisplayOutput) -> bool:
    '''Whether an output is an embedded panel, which must be controlled via its backlight'''
    return output.startswith(config.EMBEDDED_PREFIX)


def list_outputs(drm_path: Optional[str] = None) -> List[dict]:
    '''
    Lists the display connectors known to the kernel

    Args:
        drm_path: the DRM class directory. Defaults to `.config.DRM_PATH`

    Returns:
        A list of dictionaries with the keys `name` (eg: `DP-2`),
        `path` (the sysfs directory) and `status` (eg: `connected`)
    '''
    drm_path = config.DRM_PATH if drm_path is None else drm_path
    try:
        entries = sorted(os.listdir(drm_path))
    except OSError as e:
        raise OutputNotFoundError(f'cannot list {drm_path} - {format_exc(e)}') from e

    outputs = []
    for entry in entries:
        status_file = os.path.join(drm_path, entry, 'status')
        if not os.path.isfile(status_file):
            # cards and render nodes live here too
            continue
        try:
            with open(status_file) as f:
                status = f.read().strip()
        except OSError as e:
            status = format_exc(e)
        outputs.append({
            'name': entry.split('-', 1)[1] if '-' in entry else entry,
            'path': os.path.join(drm_path, entry),
            'status': status
        })
    return outputs


def find_output_dir(output: DisplayOutput, drm_path: Optional[str] = None) -> str:
    '''
    Find the sysfs directory of a connector by name.

    Entries are named `card<N>-<output>`, so an entry matches when it ends with
    `-<output>`. The hyphen stops `DP-1` from matching `card0-eDP-1`.

    Raises:
        OutputNotFoundError: if no connector matches
    '''
    drm_path = config.DRM_PATH if drm_path is None else drm_path
    try:
        entries = sorted(os.listdir(drm_path))
    except OSError as e:
        raise OutputNotFoundError(f'cannot list {drm_path} - {format_exc(e)}') from e

    for entry in entries:
        if entry == output or entry.endswith(f'-{output}'):
            return os.path.join(drm_path, entry)
    raise OutputNotFoundError(f'no such output: {output!r}')


def resolve_output(output: DisplayOutput, drm_path: Optional[str] = None) -> I2CDevicePath:
    '''
    Find the I2C device node that carries DDC/CI for a display output

    Args:
        output: the connector name, eg: `DP-2`
        drm_path: the DRM class directory. Defaults to `.config.DRM_PATH`

    Returns:
        The device path, eg: `/dev/i2c-7`

    Raises:
        UnsupportedOutputError: if the output is an embedded panel
        OutputNotFoundError: if no connector matches the output
        DeviceNotFoundError: if none of the `LOCATORS` could find a bus

    Example:
        ```python
        from ddc_backlight.linux import resolve_output

        print(resolve_output('DP-2'))
        # '/dev/i2c-7'
        ```
    '''
    if is_embedded(output):
        raise UnsupportedOutputError(
            f'{output!r} is an embedded display port panel and does not support DDC/CI.'
            ' Use its backlight instead'
        )

    output_dir = find_output_dir(output, drm_path=drm_path)
    for locator in LOCATORS:
        try:
            bus = locator.locate(output_dir)
        except OSError as e:
            _logger.debug(f'{locator.__name__}: error reading {output_dir} - {format_exc(e)}')
            continue
        if bus is None:
            _logger.debug(f'{locator.__name__}: no I2C device for output {output}')
            continue

        device_path = os.path.join(config.DEVICE_PATH, bus)
        _logger.info(f'{locator.__name__}: found I2C device {device_path} for output {output}')
        return device_path

    raise DeviceNotFoundError(
        f'could not find I2C device for output {output!r} in {output_dir}.'
        f' Tried layouts: {", ".join(i.__name__ for i in LOCATORS)}'
    )


class I2C(BrightnessMethod):
    '''
    Reads and writes the brightness of a monitor over the I2C bus, without
    relying on any 3rd party software.

    Usage of this class requires read and write permission for `/dev/i2c-*`
    and the `i2c-dev` kernel module.

    The device is opened once when the class is created and held until `close`
    is called, so a read followed by a write uses the same connection.

    References:
        * [ddcci.py](https://github.com/siemer/ddcci)
        * [DDCCI Spec](https://milek7.pl/ddcbacklight/ddcci.pdf)

    Example:
        ```python
        from ddc_backlight.linux import I2C

        with I2C('/dev/i2c-7') as display:
            print(display.get_value())
            # VCPValue(current=32, maximum=100)
        ```
    '''
    _logger = _logger.getChild('I2C')

    # vcp commands
    GET_VCP_CMD = 0x01
    '''VCP command to get the value of a feature (eg: brightness)'''
    GET_VCP_REPLY = 0x02
    '''VCP feature reply op code'''
    SET_VCP_CMD = 0x03
    '''VCP command to set the value of a feature (eg: brightness)'''

    # addresses
    DDCCI_ADDR = 0x37
    '''DDC packets are transmittred using this I2C address'''
    HOST_ADDR_R = 0x50
    '''Packet source address (the computer) when reading data'''
    HOST_ADDR_W = 0x51
    '''Packet source address (the computer) when writing data'''
    DESTINATION_ADDR_W = 0x6e
    '''Packet destination address (the monitor) when writing data'''
    I2C_SLAVE = 0x0703
    '''ioctl request that sets the slave address of an I2C file descriptor'''

    # timings
    WAIT_TIME = 0.05
    '''How long to wait between I2C commands'''

    class I2CDevice():
        '''
        Class to read and write data to an I2C bus,
        based on the `I2CDev` class from [ddcci.py](https://github.com/siemer/ddcci)
        '''

        def __init__(self, fname: str, slave_addr: int):
            '''
            Args:
                fname: the I2C path, eg: `/dev/i2c-2`
                slave_addr: the address of the device on the bus to talk to

            Raises:
                DeviceAccessError: if the device cannot be opened
            '''
            self.fname = fname
            try:
                self.device: Optional[int] = os.open(fname, os.O_RDWR)
            except OSError as e:
                raise DeviceAccessError(f'cannot open I2C device {fname} - {format_exc(e)}') from e

            try:
                fcntl.ioctl(self.device, I2C.I2C_SLAVE, slave_addr)
            except OSError as e:
                self.close()
                raise DeviceAccessError(
                    f'cannot set slave address {slave_addr:#04x} on {fname} - {format_exc(e)}'
                ) from e

        def read(self, length: int) -> bytes:
            '''
            Read a certain number of bytes from the I2C bus

            Args:
                length: the number of bytes to read

            Returns:
                bytes
            '''
            return os.read(self.device, length)

        def write(self, data: bytes) -> int:
            '''
            Writes data to the I2C bus

            Args:
                data: the data to write

            Returns:
                The number of bytes written
            '''
            return os.write(self.device, data)

        def close(self):
            if self.device is not None:
                os.close(self.device)
                self.device = None

        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            self.close()

    class DDCInterface(I2CDevice):
        '''
        Class to send DDC (Display Data Channel) commands to an I2C device,
        based on the `Ddcci` and `Mccs` classes from [ddcci.py](https://github.com/siemer/ddcci)
        '''

        PROTOCOL_FLAG = 0x80

        def __init__(self, i2c_path: str):
            '''
            Args:
                i2c_path: the path to the I2C device, eg: `/dev/i2c-2`
            '''
            self.logger = _logger.getChild(
                self.__class__.__name__).getChild(i2c_path)
            super().__init__(i2c_path, I2C.DDCCI_ADDR)

        def write(self, *args) -> int:
            '''
            Write some data to the I2C device.

            It is recommended to use `setvcp` to set VCP values on the DDC device
            instead of using this function directly.

            Args:
                *args: variable length list of arguments. This will be put
                    into a `bytearray` and wrapped up in various flags and
                    checksums before being written to the I2C device

            Returns:
                The number of bytes that were written

            Raises:
                ProtocolError: if the monitor does not acknowledge the write
            '''
            time.sleep(I2C.WAIT_TIME)

            ba = bytearray(args)
            ba.insert(0, len(ba) | self.PROTOCOL_FLAG)  # add length info
            ba.insert(0, I2C.HOST_ADDR_W)  # insert source address
            ba.append(functools.reduce(operator.xor, ba,
                      I2C.DESTINATION_ADDR_W))  # checksum

            try:
                return super().write(ba)
            except OSError as e:
                self.logger.error(f'i2c write failed - {format_exc(e)}')
                raise ProtocolError(f'write to {self.fname} failed - {format_exc(e)}') from e

        def setvcp(self, vcp_code: int, value: int) -> int:
            '''
            Set a VCP value on the device

            Args:
                vcp_code: the VCP command to send, eg: `0x10` is brightness
                value: what to set the value to

            Returns:
                The number of bytes written to the device

            Raises:
                InvalidInputError: if the value does not fit in 16 bits
            '''
            if not 0 <= value <= 0xffff:
                raise InvalidInputError(f'VCP value {value} does not fit in 16 bits')
            return self.write(I2C.SET_VCP_CMD, vcp_code, *value.to_bytes(2, 'big'))

        def read(self, amount: int) -> bytes:
            '''
            Reads data from the DDC device.

            It is recommended to use `getvcp` to retrieve VCP values from the
            DDC device instead of using this function directly.

            Args:
                amount: the number of payload bytes to read

            Raises:
                ProtocolError: if the read fails or the data is deemed invalid
            '''
            time.sleep(I2C.WAIT_TIME)

            try:
                ba = super().read(amount + 3)
            except OSError as e:
                self.logger.error(f'i2c read failed - {format_exc(e)}')
                raise ProtocolError(f'read from {self.fname} failed - {format_exc(e)}') from e

            if len(ba) < 3:
                raise ProtocolError(f'i2c read returned {len(ba)} bytes')

            length = ba[1] & ~self.PROTOCOL_FLAG
            checks = {
                'source address': ba[0] == I2C.DESTINATION_ADDR_W,
                'length': len(ba) >= length + 3,
                'checksum': functools.reduce(operator.xor, ba[:length + 3]) == I2C.HOST_ADDR_R
            }
            if False in checks.values():
                self.logger.error('i2c read check failed: ' + repr(checks))
                raise ProtocolError(
                    'i2c read check failed: ' + repr(checks))

            return ba[2:length + 2]

        def getvcp(self, vcp_code: int) -> VCPValue:
            '''
            Retrieves a VCP value from the DDC device.

            Args:
                vcp_code: the VCP value to read, eg: `0x10` is brightness

            Returns:
                The current and maximum value

            Raises:
                ProtocolError: if the read data is deemed invalid
            '''
            self.write(I2C.GET_VCP_CMD, vcp_code)
            ba = self.read(8)

            if len(ba) < 8:
                self.logger.error(f'short VCP reply: {ba.hex()}')
                raise ProtocolError(f'VCP reply too short ({len(ba)} bytes)')

            checks = {
                'is feature reply': ba[0] == I2C.GET_VCP_REPLY,
                'supported VCP opcode': ba[1] == 0,
                'answer matches request': ba[2] == vcp_code
            }
            if False in checks.values():
                self.logger.error('i2c read check failed: ' + repr(checks))
                raise ProtocolError(
                    'i2c read check failed: ' + repr(checks))

            # reply layout: opcode, result, vcp code, type, max high, max low, current high, current low
            return VCPValue.from_bytes(ba[6], ba[7], ba[4], ba[5])

    def __init__(self, i2c_path: I2CDevicePath):
        '''
        Args:
            i2c_path: the path to the I2C device, eg: `/dev/i2c-7`

        Raises:
            DeviceAccessError: if the device cannot be opened
        '''
        self.i2c_path = i2c_path
        self.interface = self.DDCInterface(i2c_path)

    def get_value(self) -> VCPValue:
        value = self.interface.getvcp(BRIGHTNESS_VCP_CODE)
        self._logger.debug(f'{self.i2c_path} brightness: {value.current}/{value.maximum}')
        return value

    def set_value(self, value: RawValue):
        self._logger.debug(f'{self.i2c_path} set brightness: {value}')
        self.interface.setvcp(BRIGHTNESS_VCP_CODE, value)

    def close(self):
        self.interface.close()


class LogindSession:
    '''
    Handle on the calling process' logind session.

    logind will set the brightness of backlight devices on behalf of the user
    of an active session, so no root access, udev rules or filesystem ACLs
    are needed for `/sys/class/backlight`.

    Requires the `dbus-python` package (`pip install ddc_backlight[logind]`).
    '''
    BUS_NAME = 'org.freedesktop.login1'
    INTERFACE = 'org.freedesktop.login1.Session'

    def __init__(self, bus=None, object_path: Optional[str] = None):
        '''
        Args:
            bus: an existing `dbus.SystemBus`. A new connection is made if not given
            object_path: the session object. Defaults to `.config.LOGIND_SESSION_PATH`

        Raises:
            DeviceAccessError: if the system bus or session cannot be reached
        '''
        # only embedded panels need the system bus
        try:
            import dbus
        except ImportError as e:
            raise DeviceAccessError(
                'dbus-python is required to set embedded panel brightness (pip install ddc_backlight[logind])'
            ) from e

        self._dbus = dbus
        object_path = config.LOGIND_SESSION_PATH if object_path is None else object_path
        try:
            self.bus = dbus.SystemBus() if bus is None else bus
            self.session = self.bus.get_object(self.BUS_NAME, object_path)
        except dbus.exceptions.DBusException as e:
            raise DeviceAccessError(f'cannot reach logind session {object_path} - {format_exc(e)}') from e

    def set_brightness(self, subsystem: str, name: str, value: RawValue):
        '''
        Args:
            subsystem: the device class, eg: `backlight`
            name: the device, eg: `intel_backlight`
            value: the raw brightness level to write

        Raises:
            DeviceAccessError: if logind refuses or fails the request
        '''
        try:
            self.session.SetBrightness(
                subsystem, name, self._dbus.UInt32(value),
                dbus_interface=self.INTERFACE
            )
        except self._dbus.exceptions.DBusException as e:
            raise DeviceAccessError(f'logind could not set {subsystem}/{name} - {format_exc(e)}') from e


class SysFiles(BrightnessMethod):
    '''
    A way of adjusting the brightness of embedded panels, which do not speak DDC/CI.

    This class works with displays that show up in the `/sys/class/backlight`
    directory (so usually laptop displays). The brightness is read straight
    from sysfs, but writes are delegated to logind (see `LogindSession`)
    so that no write permission is needed.
    '''
    _logger = _logger.getChild('SysFiles')

    subsystem: str = 'backlight'
    '''The device class passed to logind'''

    def __init__(self, name: str, session: Optional[LogindSession] = None, backlight_path: Optional[str] = None):
        '''
        Args:
            name: the backlight device, eg: `intel_backlight`
            session: used to set the brightness. Connects to logind on first write if not given
            backlight_path: the backlight class directory. Defaults to `.config.BACKLIGHT_PATH`
        '''
        backlight_path = config.BACKLIGHT_PATH if backlight_path is None else backlight_path
        self.name = name
        self.path = os.path.join(backlight_path, name)
        self.session = session

    @staticmethod
    def _read_int(file: str) -> int:
        with open(file) as f:
            return int(f.read().rstrip(' \n'))

    @classmethod
    def list_devices(cls, backlight_path: Optional[str] = None) -> List[dict]:
        '''
        Returns:
            A list of dictionaries with the keys `name`, `path` and `max_brightness`.
            Devices whose `max_brightness` cannot be read are skipped.
        '''
        backlight_path = config.BACKLIGHT_PATH if backlight_path is None else backlight_path
        try:
            folders = sorted(os.listdir(backlight_path))
        except OSError as e:
            cls._logger.error(f'cannot list {backlight_path} - {format_exc(e)}')
            return []

        devices = []
        for folder in folders:
            path = os.path.join(backlight_path, folder)
            try:
                max_brightness = cls._read_int(os.path.join(path, 'max_brightness'))
            except (OSError, ValueError) as e:
                cls._logger.error(f'error reading max brightness for {folder} - {format_exc(e)}')
                continue
            devices.append({'name': folder, 'path': path, 'max_brightness': max_brightness})
        return devices

    @classmethod
    def find_device(cls, backlight_path: Optional[str] = None) -> str:
        '''
        Pick the backlight device to use for the embedded panel.

        Panels like intel_backlight usually have an acpi_video0 counterpart with a
        much coarser scale, so the device with the largest `max_brightness` wins.

        Raises:
            DeviceNotFoundError: if there are no usable backlight devices
        '''
        best = None
        for device in cls.list_devices(backlight_path=backlight_path):
            if best is None or device['max_brightness'] > best['max_brightness']:
                best = device
        if best is None:
            raise DeviceNotFoundError(
                f'no backlight devices found in {config.BACKLIGHT_PATH if backlight_path is None else backlight_path}'
            )
        cls._logger.info(f'using backlight {best["name"]} (max brightness {best["max_brightness"]})')
        return best['name']

    def get_value(self) -> VCPValue:
        try:
            current = self._read_int(os.path.join(self.path, 'brightness'))
            maximum = self._read_int(os.path.join(self.path, 'max_brightness'))
        except OSError as e:
            raise DeviceAccessError(f'cannot read backlight {self.name} - {format_exc(e)}') from e
        except ValueError as e:
            raise InvalidDeviceStateError(f'backlight {self.name} reported a non-integer value - {e}') from e
        return VCPValue(current=current, maximum=maximum)

    def set_value(self, value: RawValue):
        if self.session is None:
            self.session = LogindSession()
        self._logger.debug(f'{self.name} set brightness: {value}')
        self.session.set_brightness(self.subsystem, self.name, value)


class SwayIPC:
    '''Asks the sway compositor which output currently has focus, using `swaymsg`'''

    executable: str = 'swaymsg'
    '''the swaymsg executable to be called'''

    def get_focused_output(self) -> DisplayOutput:
        '''
        Returns:
            The name of the focused output, eg: `DP-2`

        Raises:
            CompositorError: if sway cannot be queried or reports no focused output
        '''
        try:
            raw = check_output([self.executable, '-t', 'get_outputs', '--raw'])
        except (CommandError, OSError) as e:
            raise CompositorError(f'cannot query outputs with {self.executable} - {format_exc(e)}') from e

        try:
            outputs = json.loads(raw)
        except ValueError as e:
            raise CompositorError(f'{self.executable} returned invalid JSON - {e}') from e

        if isinstance(outputs, list):
            for output in outputs:
                if isinstance(output, dict) and output.get('focused'):
                    return output['name']
        raise CompositorError(f'{self.executable} reported no focused output')
