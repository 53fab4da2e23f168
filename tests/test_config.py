from ddc_backlight import config
from pytest import MonkeyPatch


def test_default_params(monkeypatch: MonkeyPatch):
    func = config.default_params(lambda **kw: kw)

    assert func() == {
        'drm_path': config.DRM_PATH,
        'backlight_path': config.BACKLIGHT_PATH,
    }, 'sets default kwarg values'

    monkeypatch.setattr(config, 'DRM_PATH', '/tmp/drm')
    monkeypatch.setattr(config, 'BACKLIGHT_PATH', '/tmp/backlight')
    assert func() == {'drm_path': '/tmp/drm', 'backlight_path': '/tmp/backlight'}

    assert func(drm_path='/a', backlight_path='/b') == {
        'drm_path': '/a', 'backlight_path': '/b'
    }, 'should not override kwargs'


def test_defaults():
    assert config.DRM_PATH == '/sys/class/drm'
    assert config.BACKLIGHT_PATH == '/sys/class/backlight'
    assert config.DEVICE_PATH == '/dev'
    assert config.EMBEDDED_PREFIX == 'eDP'
