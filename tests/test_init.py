from types import SimpleNamespace
from typing import Type

import pytest
from pytest import MonkeyPatch
from pytest_mock import MockerFixture

import ddc_backlight as DDC
from ddc_backlight import linux

from .helpers import add_backlight, make_connector
from .mocks.linux_mock import FakeCompositor, FakeSession, MockI2C


class TestOpenDisplay:
    def test_explicit_i2c_path(self, mock_ddc: Type[MockI2C.MockDDCInterface], mocker: MockerFixture):
        compositor = mocker.Mock()
        display = DDC.open_display(i2c_path='/dev/i2c-3', compositor=compositor)
        assert isinstance(display, linux.I2C)
        assert mock_ddc.opened[0].i2c_path == '/dev/i2c-3'
        compositor.get_focused_output.assert_not_called()

    def test_explicit_output(self, sysfs: SimpleNamespace, mock_ddc: Type[MockI2C.MockDDCInterface]):
        (make_connector(sysfs.drm, 'card1-DP-2') / 'i2c-7').mkdir()
        display = DDC.open_display(output='DP-2')
        assert isinstance(display, linux.I2C)
        assert display.i2c_path == '/dev/i2c-7'

    def test_focused_output(self, sysfs: SimpleNamespace, mock_ddc: Type[MockI2C.MockDDCInterface]):
        (make_connector(sysfs.drm, 'card1-HDMI-A-1') / 'i2c-4').mkdir()
        display = DDC.open_display(compositor=FakeCompositor('HDMI-A-1'))
        assert display.i2c_path == '/dev/i2c-4'

    def test_default_compositor_is_sway(self, sysfs: SimpleNamespace, mock_ddc, mocker: MockerFixture):
        (make_connector(sysfs.drm, 'card1-DP-2') / 'i2c-7').mkdir()
        mock = mocker.patch.object(linux.SwayIPC, 'get_focused_output', return_value='DP-2')
        assert DDC.open_display().i2c_path == '/dev/i2c-7'
        mock.assert_called_once()

    def test_embedded_output_uses_backlight(self, sysfs: SimpleNamespace, mock_ddc: Type[MockI2C.MockDDCInterface]):
        add_backlight(sysfs.backlight, 'acpi_video0', 1, 15)
        add_backlight(sysfs.backlight, 'intel_backlight', 1, 960)
        display = DDC.open_display(compositor=FakeCompositor('eDP-1'))
        assert isinstance(display, linux.SysFiles)
        assert display.name == 'intel_backlight'
        assert mock_ddc.opened == []

    def test_explicit_backlight(self, sysfs: SimpleNamespace, mocker: MockerFixture):
        compositor = mocker.Mock()
        display = DDC.open_display(backlight='amdgpu_bl0', compositor=compositor)
        assert isinstance(display, linux.SysFiles)
        assert display.path == str(sysfs.backlight / 'amdgpu_bl0')
        compositor.get_focused_output.assert_not_called()

    def test_compositor_error_propagates(self, mocker: MockerFixture):
        compositor = mocker.Mock()
        compositor.get_focused_output.side_effect = DDC.CompositorError('sway is not running')
        with pytest.raises(DDC.CompositorError):
            DDC.open_display(compositor=compositor)


class TestGetBrightness:
    def test_returns_percentage(self, mock_ddc: Type[MockI2C.MockDDCInterface], monkeypatch: MonkeyPatch):
        monkeypatch.setattr(mock_ddc, 'initial', 32)
        monkeypatch.setattr(mock_ddc, 'maximum', 64)
        assert DDC.get_brightness(i2c_path='/dev/i2c-7') == 50

    def test_closes_device(self, mock_ddc: Type[MockI2C.MockDDCInterface]):
        DDC.get_brightness(i2c_path='/dev/i2c-7')
        assert mock_ddc.opened[0].closed

    def test_zero_maximum(self, mock_ddc: Type[MockI2C.MockDDCInterface], monkeypatch: MonkeyPatch):
        monkeypatch.setattr(mock_ddc, 'initial', 0)
        monkeypatch.setattr(mock_ddc, 'maximum', 0)
        with pytest.raises(DDC.InvalidDeviceStateError):
            DDC.get_brightness(i2c_path='/dev/i2c-7')
        assert mock_ddc.opened[0].closed

    def test_embedded_panel(self, sysfs: SimpleNamespace):
        add_backlight(sysfs.backlight, 'intel_backlight', 240, 960)
        assert DDC.get_brightness(compositor=FakeCompositor('eDP-1')) == 25


class TestSetBrightness:
    @pytest.fixture(autouse=True)
    def display(self, mock_ddc: Type[MockI2C.MockDDCInterface], monkeypatch: MonkeyPatch):
        monkeypatch.setattr(mock_ddc, 'initial', 32)
        monkeypatch.setattr(mock_ddc, 'maximum', 64)
        return mock_ddc

    def test_absolute(self, display: Type[MockI2C.MockDDCInterface]):
        assert DDC.set_brightness('50', i2c_path='/dev/i2c-7') == 50
        assert display.opened[0].writes == [(0x10, 32)]

    def test_relative(self, display: Type[MockI2C.MockDDCInterface]):
        assert DDC.set_brightness('+10', i2c_path='/dev/i2c-7') == 60
        assert display.opened[0].writes == [(0x10, 38)]

    def test_relative_clamped(self, display: Type[MockI2C.MockDDCInterface], subtests):
        for value, percentage, raw in (('+80', 100, 64), ('-80', 0, 0)):
            with subtests.test(value=value):
                display.opened.clear()
                assert DDC.set_brightness(value, i2c_path='/dev/i2c-7') == percentage
                assert display.opened[0].writes == [(0x10, raw)]

    def test_int_is_clamped(self, display: Type[MockI2C.MockDDCInterface]):
        assert DDC.set_brightness(150, i2c_path='/dev/i2c-7') == 100
        assert display.opened[0].writes == [(0x10, 64)]

    def test_accepts_command(self, display: Type[MockI2C.MockDDCInterface]):
        assert DDC.set_brightness(DDC.BrightnessCommand.delta(-25), i2c_path='/dev/i2c-7') == 25
        assert display.opened[0].writes == [(0x10, 16)]

    def test_single_connection(self, display: Type[MockI2C.MockDDCInterface]):
        DDC.set_brightness('20', i2c_path='/dev/i2c-7')
        assert len(display.opened) == 1
        assert display.opened[0].closed

    @pytest.mark.parametrize('value', ['abc', '101', '', '50%'])
    def test_invalid_input_opens_nothing(self, display: Type[MockI2C.MockDDCInterface], value: str, mocker: MockerFixture):
        compositor = mocker.Mock()
        with pytest.raises(DDC.InvalidInputError):
            DDC.set_brightness(value, compositor=compositor)
        assert display.opened == []
        compositor.get_focused_output.assert_not_called()

    def test_device_state_checked_before_write(self, display: Type[MockI2C.MockDDCInterface], monkeypatch: MonkeyPatch):
        monkeypatch.setattr(display, 'initial', 70)
        with pytest.raises(DDC.InvalidDeviceStateError):
            DDC.set_brightness('50', i2c_path='/dev/i2c-7')
        assert display.opened[0].writes == []

    def test_embedded_panel(self, sysfs: SimpleNamespace):
        add_backlight(sysfs.backlight, 'intel_backlight', 480, 960)
        session = FakeSession()
        result = DDC.set_brightness('+10', compositor=FakeCompositor('eDP-1'), session=session)
        assert result == 60
        assert session.calls == [('backlight', 'intel_backlight', 576)]
