from pathlib import Path
from types import SimpleNamespace
from typing import List, Type

import pytest
from pytest_mock import MockerFixture

from ddc_backlight import config, linux

from .mocks.linux_mock import FakeBus, MockI2C


@pytest.fixture
def sysfs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> SimpleNamespace:
    '''An empty DRM and backlight class directory, with the config pointed at them'''
    drm = tmp_path / 'drm'
    backlight = tmp_path / 'backlight'
    drm.mkdir()
    backlight.mkdir()
    monkeypatch.setattr(config, 'DRM_PATH', str(drm))
    monkeypatch.setattr(config, 'BACKLIGHT_PATH', str(backlight))
    return SimpleNamespace(drm=drm, backlight=backlight)


@pytest.fixture
def mock_ddc(mocker: MockerFixture) -> Type[MockI2C.MockDDCInterface]:
    '''
    Replaces `I2C.DDCInterface` with an in-memory display.
    Every interface created during the test is recorded in `opened`
    '''
    class Interface(MockI2C.MockDDCInterface):
        opened: List[MockI2C.MockDDCInterface] = []

    mocker.patch.object(linux.I2C, 'DDCInterface', Interface)
    return Interface


@pytest.fixture
def bus(mocker: MockerFixture) -> FakeBus:
    '''Patches the raw I2C device so DDC frames can be inspected and replies injected'''
    fake = FakeBus()

    def init(self, fname: str, slave_addr: int):
        self.fname = fname
        self.device = None
        fake.slave_addr = slave_addr
        fake.opens += 1

    mocker.patch.object(linux.I2C.I2CDevice, '__init__', init)
    mocker.patch.object(linux.I2C.I2CDevice, 'read', lambda self, length: fake.read(length))
    mocker.patch.object(linux.I2C.I2CDevice, 'write', lambda self, data: fake.write(data))
    mocker.patch.object(linux.time, 'sleep')
    return fake
