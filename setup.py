import sys

from setuptools import setup

sys.path.insert(0, 'ddc_backlight')
from _version import __author__, __version__  # noqa: E402

setup(
    name='ddc_backlight',
    version=__version__,
    url='https://github.com/jaakko/ddcbacklight',
    license='MIT',
    author=__author__,
    author_email='jaakko.s@iki.fi',
    packages=['ddc_backlight'],
    extras_require={
        'logind': ['dbus-python>=1.3.2'],
        'test': ['pytest', 'pytest-mock', 'pytest-subtests']
    },
    entry_points={
        'console_scripts': [
            'ddcbacklight=ddc_backlight.__main__:main',
        ],
    },
    description='Control monitor brightness over DDC/CI on Linux',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    classifiers=[
        'Development Status :: 4 - Beta',
        'License :: OSI Approved :: MIT License',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python :: 3 :: Only'
    ],
    python_requires='>=3.8'
)
