import argparse
import json
import logging
import sys
from typing import List, Optional

import ddc_backlight as DDC
from ddc_backlight import _debug
from ddc_backlight.exceptions import DDCBacklightError, format_exc

_logger = logging.getLogger('ddc_backlight')


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='ddcbacklight', description='Controls monitor brightness using DDC/CI protocol'
    )
    parser.add_argument('-i', '--i2c-path', help='path to the I2C device, eg: /dev/i2c-7. Skips output detection')
    parser.add_argument('-o', '--output', help='the output to adjust, eg: DP-2. Defaults to the focused output')
    parser.add_argument('-b', '--backlight', help='adjust this /sys/class/backlight device instead of using DDC/CI')
    parser.add_argument('-l', '--list', action='store_true', help='list display outputs')
    parser.add_argument('--debug', action='store_true', help='print what was detected for each output as JSON')
    parser.add_argument('-v', '--verbose', action='count', default=0, help='log more detail (repeat for debug logs)')
    parser.add_argument('-V', '--version', action='store_true', help='print the current version')

    subparsers = parser.add_subparsers(dest='command')
    subparsers.add_parser('get-brightness', help='get current brightness value')
    set_parser = subparsers.add_parser('set-brightness', help='set brightness value')
    set_parser.add_argument('value', help='brightness value (0-100), or a relative change like +10 or -10')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = get_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        format='%(name)s: %(levelname)s: %(message)s',
        level=(logging.WARNING, logging.INFO, logging.DEBUG)[min(args.verbose, 2)]
    )

    if args.version:
        print(DDC.__version__)
        return 0
    if args.debug:
        print(json.dumps(_debug.info(), indent=2, default=str))
        return 0

    try:
        if args.list:
            outputs = DDC.linux.list_outputs()
            if not outputs:
                print('No outputs detected')
            for output in outputs:
                print(f'{output["name"]}: {output["status"]}')
        elif args.command == 'get-brightness':
            brightness = DDC.get_brightness(i2c_path=args.i2c_path, output=args.output, backlight=args.backlight)
            print(f'Current brightness: {brightness}%')
        elif args.command == 'set-brightness':
            brightness = DDC.set_brightness(
                args.value, i2c_path=args.i2c_path, output=args.output, backlight=args.backlight
            )
            print(f'Brightness set to {brightness}%')
        else:
            parser.error('please specify either get-brightness or set-brightness')
    except DDCBacklightError as e:
        _logger.debug(format_exc(e), exc_info=True)
        print(f'{parser.prog}: {e.stage} error: {e}', file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
