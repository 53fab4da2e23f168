'''
A small helper module to assist with debugging I2C device detection.

DDC/CI device layouts in sysfs vary by GPU vendor and kernel version, so this
collects everything the library can see about each output.
'''
import logging
import platform
import traceback


def info() -> dict:
    '''
    Gather and return information that may (or may not) be useful for debugging
    issues with the library.

    Each section is gathered separately, so a failure in one part is recorded
    as a formatted traceback and does not stop the rest of the report.
    '''
    import ddc_backlight as DDC
    from ddc_backlight import config, linux

    # configure logging
    logger = logging.getLogger(__name__).getChild('info')

    debug_info = {
        'version': DDC.__version__,
        'platform': platform.system(),
        'file': DDC.__file__,
        'drm_path': config.DRM_PATH,
        'backlight_path': config.BACKLIGHT_PATH
    }

    logger.debug('gathering list of all outputs')

    try:
        outputs = linux.list_outputs()
    except Exception:
        outputs = traceback.format_exc()
    finally:
        debug_info['outputs'] = outputs

    if not isinstance(outputs, str):  # if it is not a formatted traceback error msg
        for output in outputs:
            locators = {}
            for locator in linux.LOCATORS:
                logger.debug(f'{locator.__name__} for output {output["name"]}')
                try:
                    locators[locator.__name__] = locator.locate(output['path'])
                except Exception:
                    locators[locator.__name__] = traceback.format_exc()
            output['locators'] = locators

            try:
                output['i2c_path'] = linux.resolve_output(output['name'])
            except Exception:
                output['i2c_path'] = traceback.format_exc()

    logger.debug('gathering list of backlight devices')

    try:
        backlights = linux.SysFiles.list_devices()
    except Exception:
        backlights = traceback.format_exc()
    finally:
        debug_info['backlights'] = backlights

    return debug_info
